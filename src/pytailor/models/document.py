"""Firestore document model."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from pytailor.models._base import FirestoreTimestamp, TailorBaseModel


class Document(TailorBaseModel):
    """One document of a query result, with its fields already decoded.

    ``path`` is relative to the database's document root
    (e.g. ``users/u1/customers/abc``); ``id`` is its last segment.
    """

    id: str
    path: str
    data: dict[str, Any] = Field(default_factory=dict)
    create_time: FirestoreTimestamp = None
    update_time: FirestoreTimestamp = None

    @property
    def collection_path(self) -> str:
        """Path of the collection holding this document."""
        return self.path.rpartition("/")[0]

    def version(self) -> tuple[str, str]:
        """``(id, update_time)`` pair used to detect changes between reads."""
        stamp = self.update_time.isoformat() if self.update_time is not None else ""
        return self.id, stamp
