"""Data models for Firebase payloads and customer records."""

from pytailor.models._base import FirestoreTimestamp, TailorBaseModel, format_timestamp, parse_timestamp
from pytailor.models.document import Document
from pytailor.models.record import NewRecord, Record
from pytailor.models.token import AuthToken

__all__ = [
    "AuthToken",
    "Document",
    "FirestoreTimestamp",
    "NewRecord",
    "Record",
    "TailorBaseModel",
    "format_timestamp",
    "parse_timestamp",
]
