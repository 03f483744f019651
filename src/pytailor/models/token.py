"""Authentication token model."""

from __future__ import annotations

from pydantic import Field, field_validator

from pytailor.models._base import TailorBaseModel


class AuthToken(TailorBaseModel):
    """Token returned after a successful sign-in or refresh.

    Parameters
    ----------
    user_id : str
        The authenticated user's id (the session identity).
    id_token : str
        Bearer token sent to Firestore.
    refresh_token : str
        Token used to obtain a new ``id_token``.
    expires_in : float
        Seconds until ``id_token`` expires.
    is_new_user : bool
        Whether the sign-in created the account (anonymous sign-up).
    raw : dict
        Full response dict for access to additional fields.
    """

    user_id: str = Field(validation_alias="localId")
    id_token: str
    refresh_token: str
    expires_in: float = 3600.0
    is_new_user: bool = False

    @field_validator("user_id", "id_token", "refresh_token")
    @classmethod
    def _require_value(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must be non-empty")
        return value
