"""Identity Toolkit and Secure Token endpoints.

Endpoints:
  - /accounts:signUp                (anonymous sign-in)
  - /accounts:signInWithCustomToken
  - /token                          (ID token refresh, Secure Token API)
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any

from pydantic import ValidationError

from pytailor._redact import redact_for_log
from pytailor._transport import Transport
from pytailor.config import TailorConfig
from pytailor.exceptions import AuthFailure, TailorApiError, TailorTransportError
from pytailor.models.token import AuthToken

_logger = logging.getLogger(__name__)

SIGN_UP_ENDPOINT = "/accounts:signUp"
CUSTOM_TOKEN_ENDPOINT = "/accounts:signInWithCustomToken"
REFRESH_ENDPOINT = "/token"

# Identity Toolkit error codes worth a readable explanation.
_AUTH_ERROR_HINTS: dict[str, str] = {
    "ADMIN_ONLY_OPERATION": "anonymous sign-in is disabled for this project",
    "OPERATION_NOT_ALLOWED": "this sign-in method is disabled for this project",
    "INVALID_CUSTOM_TOKEN": "the custom token is malformed or was issued for another project",
    "CREDENTIAL_MISMATCH": "the custom token was issued for another project",
    "TOKEN_EXPIRED": "the session token has expired, sign in again",
    "USER_DISABLED": "the user account has been disabled",
    "USER_NOT_FOUND": "the user account no longer exists",
    "INVALID_REFRESH_TOKEN": "the refresh token is invalid",
    "INVALID_GRANT_TYPE": "the refresh request was malformed",
    "API_KEY_INVALID": "the API key is not valid",
}


def build_anonymous_sign_in_request() -> dict[str, Any]:
    """Request body for an anonymous ``accounts:signUp`` call."""
    return {"returnSecureToken": True}


def build_custom_token_request(custom_token: str) -> dict[str, Any]:
    """Request body for ``accounts:signInWithCustomToken``."""
    token = custom_token.strip()
    if not token:
        raise ValueError("custom_token must be non-empty")
    return {"token": token, "returnSecureToken": True}


def build_refresh_form(refresh_token: str) -> dict[str, str]:
    """Form body for the Secure Token refresh call."""
    return {"grant_type": "refresh_token", "refresh_token": refresh_token}


def decode_id_token_claims(id_token: str) -> dict[str, Any]:
    """Decode the (unverified) claims segment of a JWT ID token.

    The token was just received over TLS from Google, so the claims are
    only read, never trusted for anything beyond the user id.
    """
    parts = id_token.split(".")
    if len(parts) != 3:
        return {}
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(segment))
    except (binascii.Error, ValueError):
        return {}
    return claims if isinstance(claims, dict) else {}


def describe_auth_error(code: str, message: str) -> str:
    """Human-readable text for an Identity Toolkit error message."""
    # Messages look like "INVALID_CUSTOM_TOKEN : extra detail".
    key = message.split(":", 1)[0].strip().upper() or code.upper()
    hint = _AUTH_ERROR_HINTS.get(key)
    if hint is None:
        return message or code or "unknown error"
    return f"{hint} ({key})"


def parse_sign_in_response(response: Any, *, endpoint: str) -> AuthToken:
    """Parse a sign-in response into an :class:`AuthToken`.

    Raises
    ------
    AuthFailure
        If the response is missing token fields.
    """
    _logger.debug("Sign-in response endpoint=%s parsed=%s", endpoint, redact_for_log(response))
    if not isinstance(response, dict):
        raise AuthFailure("Sign-in response is not an object", endpoint=endpoint)

    payload = dict(response)
    if not payload.get("localId") and isinstance(payload.get("idToken"), str):
        # signInWithCustomToken does not echo the uid; read it from the token.
        claims = decode_id_token_claims(payload["idToken"])
        uid = claims.get("user_id") or claims.get("sub")
        if isinstance(uid, str) and uid:
            payload["localId"] = uid

    try:
        return AuthToken.model_validate(payload)
    except ValidationError as exc:
        raise AuthFailure("Sign-in response missing token fields", endpoint=endpoint) from exc


def parse_refresh_response(response: Any) -> AuthToken:
    """Parse a Secure Token refresh response (snake_case keys)."""
    _logger.debug("Refresh response parsed=%s", redact_for_log(response))
    if not isinstance(response, dict):
        raise AuthFailure("Refresh response is not an object", endpoint=REFRESH_ENDPOINT)
    try:
        return AuthToken.model_validate(
            {
                "localId": response.get("user_id"),
                "idToken": response.get("id_token"),
                "refreshToken": response.get("refresh_token"),
                "expiresIn": response.get("expires_in"),
            }
        )
    except ValidationError as exc:
        raise AuthFailure("Refresh response missing token fields", endpoint=REFRESH_ENDPOINT) from exc


async def _post_auth(
    config: TailorConfig,
    transport: Transport,
    *,
    base_url: str,
    endpoint: str,
    json_body: dict[str, Any] | None = None,
    form: dict[str, str] | None = None,
) -> Any:
    try:
        return await transport.request_json(
            "POST",
            f"{base_url}{endpoint}",
            endpoint=endpoint,
            json_body=json_body,
            form=form,
            params={"key": config.api_key},
        )
    except TailorApiError as exc:
        raise AuthFailure(
            f"Authentication failed: {describe_auth_error(exc.code, exc.reason)}",
            code=exc.code,
            endpoint=endpoint,
        ) from exc
    except TailorTransportError as exc:
        raise AuthFailure(
            f"Authentication service unreachable: {exc}",
            code="unreachable",
            endpoint=endpoint,
        ) from exc


async def sign_in_anonymously(config: TailorConfig, transport: Transport) -> AuthToken:
    """Create an anonymous account and return its tokens."""
    response = await _post_auth(
        config,
        transport,
        base_url=config.auth_base_url,
        endpoint=SIGN_UP_ENDPOINT,
        json_body=build_anonymous_sign_in_request(),
    )
    return parse_sign_in_response(response, endpoint=SIGN_UP_ENDPOINT)


async def sign_in_with_custom_token(config: TailorConfig, transport: Transport, custom_token: str) -> AuthToken:
    """Exchange a custom token for ID and refresh tokens."""
    response = await _post_auth(
        config,
        transport,
        base_url=config.auth_base_url,
        endpoint=CUSTOM_TOKEN_ENDPOINT,
        json_body=build_custom_token_request(custom_token),
    )
    return parse_sign_in_response(response, endpoint=CUSTOM_TOKEN_ENDPOINT)


async def refresh_id_token(config: TailorConfig, transport: Transport, refresh_token: str) -> AuthToken:
    """Exchange a refresh token for a fresh ID token."""
    response = await _post_auth(
        config,
        transport,
        base_url=config.token_base_url,
        endpoint=REFRESH_ENDPOINT,
        form=build_refresh_form(refresh_token),
    )
    return parse_refresh_response(response)
