"""Helpers for safe debug logging.

pytailor handles ID tokens, refresh tokens, custom tokens and the project
API key. Secrets are hidden by key name (``idToken``, ``refresh_token``,
``key``, ...) and, wherever they appear, by shape: JWTs and ``Bearer``
header values never reach a log line.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "idtoken",
        "refreshtoken",
        "accesstoken",
        "customtoken",
        "token",
        "key",
        "apikey",
        "authorization",
        "cookie",
    }
)

# Three base64url segments; Firebase ID and custom tokens always start with "eyJ".
_JWT_RE = re.compile(r"eyJ[\w-]*\.[\w-]+\.[\w-]*")
_BEARER_RE = re.compile(r"(?i)\bbearer\s+\S+")

_MAX_DEPTH = 20


def _is_sensitive(key: object) -> bool:
    return str(key).replace("_", "").replace("-", "").lower() in _SENSITIVE_KEYS


def _scrub_text(text: str, max_string: int) -> str:
    text = _BEARER_RE.sub(f"Bearer {REDACTED}", text)
    text = _JWT_RE.sub(REDACTED, text)
    if len(text) > max_string:
        return f"{text[:max_string]}…<truncated>"
    return text


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of *value* that is safe to log at DEBUG level.

    Mappings lose the values of sensitive keys, strings are scrubbed of
    token-shaped substrings and truncated, bytes are summarized by length.
    Unknown objects are logged through ``repr``.
    """

    def _walk(item: Any, depth: int) -> Any:
        if depth > _MAX_DEPTH:
            return "<max-depth>"
        if item is None or isinstance(item, (bool, int, float)):
            return item
        if isinstance(item, str):
            return _scrub_text(item, max_string)
        if isinstance(item, (bytes, bytearray)):
            return f"<bytes:{len(item)}b>"
        if isinstance(item, Mapping):
            return {
                str(key): REDACTED if _is_sensitive(key) else _walk(inner, depth + 1)
                for key, inner in item.items()
            }
        if isinstance(item, (list, tuple, set, frozenset)):
            return [_walk(inner, depth + 1) for inner in item]
        return _scrub_text(repr(item), max_string)

    return _walk(value, 0)
