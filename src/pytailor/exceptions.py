"""Custom exception hierarchy for pytailor."""

from __future__ import annotations


class TailorError(Exception):
    """Base exception for all pytailor errors."""


class TailorConfigError(TailorError):
    """Invalid or missing configuration."""


class TailorTransportError(TailorError):
    """HTTP-level failure (network, timeout, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class TailorApiError(TailorError):
    """A Google API returned an error body (application-level error).

    ``reason`` carries the service-provided error text (for the Identity
    Toolkit this is a code such as ``ADMIN_ONLY_OPERATION``).
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
        reason: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(message)


class AuthFailure(TailorApiError):
    """An identity could not be established or refreshed.

    Fatal for the session: no subscription is attempted without an
    identity.
    """


class SubscriptionError(TailorApiError):
    """The live collection feed broke after it was opened.

    Fatal for the subscription; the caller must re-subscribe to recover.
    """


class WriteFailure(TailorApiError):
    """The remote store rejected or never acknowledged a create."""


class ValidationFailure(TailorError):
    """A record was rejected locally, before any network call."""

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)
