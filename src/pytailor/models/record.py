"""Customer record models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pytailor._constants import CREATED_AT_FIELD, SERVER_TIMESTAMP
from pytailor.models._base import FirestoreTimestamp, TailorBaseModel
from pytailor.models.document import Document


class Record(TailorBaseModel):
    """A customer entry as stored under ``users/{identity}/customers``.

    Records are immutable from the client's perspective; the id and the
    creation time are assigned by the store.
    """

    id: str
    """Document id assigned at creation."""
    name: str
    """Customer name."""
    phone: str
    """Customer phone number, free-form."""
    measurements: str = ""
    """Measurements or order details, free-form and possibly empty."""
    created_at: FirestoreTimestamp = None
    """Server commit time of the create. ``None`` only while unresolved."""

    @field_validator("name", "phone")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be non-empty")
        return value

    @classmethod
    def from_document(cls, document: Document) -> Record:
        """Build a record from a decoded customer document."""
        return cls.model_validate({**document.data, "id": document.id})


class NewRecord(BaseModel):
    """Fields a caller supplies to create a customer record."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    measurements: str = ""

    def to_fields(self) -> dict[str, Any]:
        """Document fields to write, with a server-assigned creation time."""
        return {
            "name": self.name,
            "phone": self.phone,
            "measurements": self.measurements,
            CREATED_AT_FIELD: SERVER_TIMESTAMP,
        }
