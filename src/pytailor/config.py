"""Client configuration for pytailor."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pytailor._constants import AUTH_BASE_URL, FIRESTORE_BASE_URL, TOKEN_BASE_URL
from pytailor.exceptions import TailorConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class TailorConfig:
    """Client configuration.

    Parameters
    ----------
    api_key : str
        Web API key of the Firebase project.
    project_id : str
        Firebase / Google Cloud project id.
    database : str
        Firestore database id.
    app_id : str
        Firebase app id. Informational only; sent nowhere.
    custom_token : str or None
        When set, the session is established with this custom token
        instead of an anonymous sign-in.
    auth_base_url : str
        Identity Toolkit base URL.
    token_base_url : str
        Secure Token (refresh) base URL.
    firestore_base_url : str
        Firestore REST base URL.
    poll_interval : float
        Seconds between two reads of a live collection query.
    request_timeout : float
        Total timeout in seconds for one HTTP request.
    token_refresh_margin : float
        Seconds before the ID token expiry at which it is refreshed.
    api_trace_enabled : bool
        Log redacted request/response bodies at DEBUG level.
    """

    api_key: str
    project_id: str
    database: str = "(default)"
    app_id: str = ""
    custom_token: str | None = None
    auth_base_url: str = AUTH_BASE_URL
    token_base_url: str = TOKEN_BASE_URL
    firestore_base_url: str = FIRESTORE_BASE_URL
    poll_interval: float = 2.0
    request_timeout: float = 30.0
    token_refresh_margin: float = 60.0
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if not self.api_key:
            raise TailorConfigError("api_key is required")
        if not self.project_id:
            raise TailorConfigError("project_id is required")
        if self.poll_interval <= 0:
            raise TailorConfigError(f"poll_interval must be positive, got {self.poll_interval}")

    @property
    def documents_root(self) -> str:
        """Resource name of the database's document root."""
        return f"projects/{self.project_id}/databases/{self.database}/documents"

    @classmethod
    def from_env(cls, **overrides: Any) -> TailorConfig:
        """Create configuration from environment variables.

        Reads ``TAILOR_API_KEY``, ``TAILOR_PROJECT_ID`` and the optional
        ``TAILOR_*`` variables below. Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TailorConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "TAILOR_API_KEY": "api_key",
            "TAILOR_PROJECT_ID": "project_id",
            "TAILOR_DATABASE": "database",
            "TAILOR_APP_ID": "app_id",
            "TAILOR_CUSTOM_TOKEN": "custom_token",
            "TAILOR_AUTH_BASE_URL": "auth_base_url",
            "TAILOR_TOKEN_BASE_URL": "token_base_url",
            "TAILOR_FIRESTORE_BASE_URL": "firestore_base_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Numeric fields, handled separately
        _ENV_FLOAT_MAP = {
            "TAILOR_POLL_INTERVAL": "poll_interval",
            "TAILOR_REQUEST_TIMEOUT": "request_timeout",
            "TAILOR_TOKEN_REFRESH_MARGIN": "token_refresh_margin",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise TailorConfigError(f"{env_key} must be a number, got {val!r}") from exc

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(env.get("TAILOR_API_TRACE_ENABLED"), False)

        config_kwargs.update(overrides)
        config_kwargs.setdefault("api_key", "")
        config_kwargs.setdefault("project_id", "")

        return cls(**config_kwargs)
