"""Session state management for authenticated requests."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field

from pytailor.models.token import AuthToken

#: Default ID token lifetime in seconds. The Identity Toolkit reports the
#: real value in ``expiresIn``; this is only used when it is missing.
DEFAULT_TOKEN_TTL: float = 3600.0


class Session(BaseModel):
    """Immutable session state after a successful sign-in.

    Parameters
    ----------
    user_id : str
        The authenticated user's id. This is the session identity.
    id_token : str
        Bearer token for Firestore requests.
    refresh_token : str
        Token exchanged for a new ``id_token`` once this one expires.
    created_at : float
        Monotonic timestamp (``time.monotonic()``) when the tokens were
        issued. Defaults to *now* if not provided.
    ttl : float
        Seconds the ``id_token`` stays valid.
    refresh_margin : float
        Seconds before expiry at which the session already counts as
        expired, so in-flight requests never carry a dying token.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    user_id: str = Field(min_length=1)
    id_token: str = Field(min_length=1, repr=False)
    refresh_token: str = Field(min_length=1, repr=False)
    created_at: float = Field(default_factory=time.monotonic)
    ttl: float = DEFAULT_TOKEN_TTL
    refresh_margin: float = 0.0

    @classmethod
    def from_token(cls, token: AuthToken, *, refresh_margin: float = 0.0) -> Session:
        """Start a session from a sign-in or refresh response."""
        return cls(
            user_id=token.user_id,
            id_token=token.id_token,
            refresh_token=token.refresh_token,
            ttl=token.expires_in if token.expires_in > 0 else DEFAULT_TOKEN_TTL,
            refresh_margin=refresh_margin,
        )

    @property
    def identity(self) -> str:
        """Opaque identity handle scoping all record access."""
        return self.user_id

    @property
    def is_expired(self) -> bool:
        """Whether the ID token is past its TTL (minus the refresh margin)."""
        return self.age >= max(self.ttl - self.refresh_margin, 0.0)

    @property
    def age(self) -> float:
        """Seconds since the tokens were issued."""
        return time.monotonic() - self.created_at
