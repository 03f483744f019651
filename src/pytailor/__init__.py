"""pytailor - Async Python client keeping a customer list in sync with Firebase."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pytailor")
except PackageNotFoundError:
    __version__ = "0+local"
from pytailor._api.firestore import Direction
from pytailor._constants import SERVER_TIMESTAMP, customers_path
from pytailor._registration import Registration
from pytailor.backends import AuthBackend, DocumentStore, FirebaseAuthBackend, FirestoreDocumentStore
from pytailor.client import TailorClient
from pytailor.config import TailorConfig
from pytailor.controller import SessionController
from pytailor.exceptions import (
    AuthFailure,
    SubscriptionError,
    TailorApiError,
    TailorConfigError,
    TailorError,
    TailorTransportError,
    ValidationFailure,
    WriteFailure,
)
from pytailor.identity import IdentityProvider
from pytailor.models import AuthToken, Document, NewRecord, Record
from pytailor.state import SessionStatus, SyncState, SyncStateStore
from pytailor.submit import MutationSubmitter
from pytailor.sync import CollectionSynchronizer

__all__ = [
    "__version__",
    "AuthBackend",
    "AuthFailure",
    "AuthToken",
    "CollectionSynchronizer",
    "Direction",
    "Document",
    "DocumentStore",
    "FirebaseAuthBackend",
    "FirestoreDocumentStore",
    "IdentityProvider",
    "MutationSubmitter",
    "NewRecord",
    "Record",
    "Registration",
    "SERVER_TIMESTAMP",
    "SessionController",
    "SessionStatus",
    "SubscriptionError",
    "SyncState",
    "SyncStateStore",
    "TailorApiError",
    "TailorClient",
    "TailorConfig",
    "TailorConfigError",
    "TailorError",
    "TailorTransportError",
    "ValidationFailure",
    "WriteFailure",
    "customers_path",
]
