"""Internal constants shared across the library."""

from __future__ import annotations

from typing import Final

AUTH_BASE_URL = "https://identitytoolkit.googleapis.com/v1"
TOKEN_BASE_URL = "https://securetoken.googleapis.com/v1"
FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"
USER_AGENT = "pytailor"

# ------------------------------------------------------------------
# Customer collection layout
# ------------------------------------------------------------------

CUSTOMERS_PATH_TEMPLATE = "users/{identity}/customers"
CREATED_AT_FIELD = "createdAt"


def customers_path(identity: str) -> str:
    """Collection path holding the customers of *identity*.

    Raises :class:`ValueError` for an empty identity or one that would
    escape its own namespace.
    """
    value = identity.strip()
    if not value or "/" in value:
        raise ValueError(f"identity must be a single non-empty path segment, got {identity!r}")
    return CUSTOMERS_PATH_TEMPLATE.format(identity=value)


class _ServerTimestamp:
    """Sentinel asking the store to fill a field with its commit time."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP: Final = _ServerTimestamp()

# ------------------------------------------------------------------
# Feedback texts shown to the presentation layer
# ------------------------------------------------------------------

FEEDBACK_INITIALIZING = "Initialized. Authenticating..."
FEEDBACK_AUTHENTICATED = "Authenticated as user: {identity}. Loading data..."
FEEDBACK_SIGNED_OUT = "Signed out. Waiting for authentication..."
FEEDBACK_AUTH_ERROR = "Error: {message}"
FEEDBACK_LOADED = "Data loaded successfully."
FEEDBACK_LOAD_ERROR = "Error loading data: {message}"
FEEDBACK_MISSING_FIELDS = "Please fill in both name and phone number."
FEEDBACK_ADDING = "Adding new customer..."
FEEDBACK_ADDED = "Customer added successfully!"
FEEDBACK_ADD_ERROR = "Failed to add customer: {message}"
FEEDBACK_DISPOSED = "Session closed."
