"""Session status values and the immutable state snapshot."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pytailor.models.record import Record


class SessionStatus(StrEnum):
    INITIALIZING = "initializing"
    AWAITING_IDENTITY = "awaiting_identity"
    SUBSCRIPTION_ACTIVE = "subscription_active"
    SUBSCRIPTION_ERROR = "subscription_error"
    AUTH_FAILED = "auth_failed"
    DISPOSED = "disposed"

    @property
    def is_terminal(self) -> bool:
        """Whether the session can only recover through a restart."""
        return self in (SessionStatus.SUBSCRIPTION_ERROR, SessionStatus.AUTH_FAILED, SessionStatus.DISPOSED)


class SyncState(BaseModel):
    """What the presentation layer reads: one consistent snapshot."""

    model_config = ConfigDict(frozen=True)

    records: tuple[Record, ...] = Field(default_factory=tuple)
    loading: bool = True
    feedback: str = ""
    status: SessionStatus = SessionStatus.INITIALIZING
    identity: str | None = None
    submitting: bool = False
