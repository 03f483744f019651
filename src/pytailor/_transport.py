"""JSON-over-HTTPS transport shared by the auth and Firestore endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pytailor._constants import USER_AGENT
from pytailor._redact import redact_for_log
from pytailor.config import TailorConfig
from pytailor.exceptions import TailorApiError, TailorTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`RestTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        endpoint: str,
        json_body: Any = None,
        form: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        bearer: str | None = None,
    ) -> Any:
        ...


def parse_google_error(text: str) -> tuple[str, str] | None:
    """Extract ``(code, message)`` from a Google API error body.

    Google APIs answer failures with ``{"error": {"code", "message",
    "status"}}``; some list endpoints wrap it in a one-element array.
    Returns ``None`` when *text* is not such a body.
    """
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        return None
    if isinstance(body, list) and len(body) == 1:
        body = body[0]
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, str):
        # Secure Token endpoint: {"error": "invalid_grant", "error_description": ...}
        return error, str(body.get("error_description") or error)
    if not isinstance(error, dict):
        return None
    message = str(error.get("message") or error.get("status") or "")
    code = str(error.get("status") or error.get("code") or "")
    return code, message


class RestTransport:
    """aiohttp transport that decodes JSON bodies and maps Google API errors."""

    def __init__(self, config: TailorConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        endpoint: str,
        json_body: Any = None,
        form: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        bearer: str | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON response.

        Raises :class:`TailorApiError` when the service answered with a
        Google error body, :class:`TailorTransportError` for everything
        else that is not a JSON 2xx answer.
        """
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if bearer:
            headers["authorization"] = f"Bearer {bearer}"

        _logger.debug("%s %s", method, endpoint)
        if self._config.api_trace_enabled:
            _logger.debug("Request body endpoint=%s body=%s", endpoint, redact_for_log(json_body or form))

        try:
            async with self._http.request(
                method,
                url,
                json=json_body if form is None else None,
                data=dict(form) if form is not None else None,
                params=dict(params) if params else None,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                status = resp.status
                text = await resp.text()
        except TimeoutError as exc:
            raise TailorTransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc
        except aiohttp.ClientError as exc:
            raise TailorTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        if not 200 <= status < 300:
            parsed = parse_google_error(text)
            if parsed is not None:
                code, message = parsed
                raise TailorApiError(
                    f"{endpoint} failed: {message or code} (HTTP {status})",
                    code=code,
                    endpoint=endpoint,
                    reason=message,
                )
            raise TailorTransportError(
                f"HTTP {status} from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            )

        try:
            result = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as exc:
            raise TailorTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from exc

        if self._config.api_trace_enabled:
            _logger.debug("Response body endpoint=%s body=%s", endpoint, redact_for_log(result))
        return result
