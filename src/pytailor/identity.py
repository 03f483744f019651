"""Identity provider adapter.

Wraps an :class:`~pytailor.backends.AuthBackend` and exposes the current
identity plus identity-change notifications. Only anonymous and
custom-token sessions are established; no user credentials are involved.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from pytailor._registration import Registration
from pytailor.backends import AuthBackend
from pytailor.exceptions import AuthFailure, TailorError
from pytailor.models.token import AuthToken
from pytailor.session import Session

_logger = logging.getLogger(__name__)

IdentityCallback = Callable[[str | None], None]


class IdentityProvider:
    """Tracks the authenticated session and notifies identity changes.

    Usage::

        provider = IdentityProvider(backend)
        registration = provider.on_identity_change(print)
        identity = await provider.start()
        ...
        registration.cancel()
    """

    def __init__(
        self,
        backend: AuthBackend,
        *,
        custom_token: str | None = None,
        refresh_margin: float = 0.0,
    ) -> None:
        self._backend = backend
        self._custom_token = custom_token
        self._refresh_margin = refresh_margin
        self._session: Session | None = None
        self._listeners: list[IdentityCallback] = []
        self._sign_in_lock = asyncio.Lock()

    @property
    def session(self) -> Session | None:
        """The active session, if any."""
        return self._session

    @property
    def current_identity(self) -> str | None:
        """Identity of the active session, ``None`` before sign-in."""
        return self._session.identity if self._session is not None else None

    def on_identity_change(self, callback: IdentityCallback) -> Registration:
        """Register *callback* for identity changes.

        The callback runs right away when a session already exists.
        """
        self._listeners.append(callback)

        def _release() -> None:
            try:
                self._listeners.remove(callback)
            except ValueError:
                pass

        registration = Registration(_release, name="identity-listener")
        identity = self.current_identity
        if identity is not None:
            self._invoke(callback, identity)
        return registration

    async def start(self) -> str:
        """Return the current identity, signing in first when needed.

        Raises
        ------
        AuthFailure
            The service is unreachable or rejected the sign-in.
        """
        async with self._sign_in_lock:
            if self._session is not None:
                return self._session.identity
            try:
                if self._custom_token:
                    _logger.info("Signing in with custom token")
                    token = await self._backend.sign_in_with_custom_token(self._custom_token)
                else:
                    _logger.info("Signing in anonymously")
                    token = await self._backend.sign_in_anonymously()
            except AuthFailure:
                raise
            except TailorError as exc:
                raise AuthFailure(f"Authentication failed: {exc}", code="sign_in_failed") from exc
            self._install(token)
            assert self._session is not None  # noqa: S101
            return self._session.identity

    async def sign_in_with_custom_token(self, custom_token: str) -> str:
        """Replace the current session with one for *custom_token*.

        Listeners are notified when the resulting identity differs from
        the current one.
        """
        async with self._sign_in_lock:
            try:
                token = await self._backend.sign_in_with_custom_token(custom_token)
            except AuthFailure:
                raise
            except TailorError as exc:
                raise AuthFailure(f"Authentication failed: {exc}", code="sign_in_failed") from exc
            self._custom_token = custom_token
            self._install(token)
            assert self._session is not None  # noqa: S101
            return self._session.identity

    async def get_id_token(self) -> str:
        """Return a valid ID token, refreshing the session when expired."""
        session = self._session
        if session is None:
            raise AuthFailure("Not signed in", code="no_session")
        if not session.is_expired:
            return session.id_token
        async with self._sign_in_lock:
            current = self._session
            if current is None:
                raise AuthFailure("Not signed in", code="no_session")
            if current is not session and not current.is_expired:
                # Another caller refreshed while we waited.
                return current.id_token
            _logger.debug("ID token expired after %.0fs, refreshing", current.age)
            try:
                token = await self._backend.refresh(current.refresh_token)
            except AuthFailure:
                raise
            except TailorError as exc:
                raise AuthFailure(f"Token refresh failed: {exc}", code="refresh_failed") from exc
            self._install(token)
            return self._session.id_token  # type: ignore[union-attr]

    def sign_out(self) -> None:
        """Forget the local session and notify ``None``."""
        if self._session is None:
            return
        _logger.info("Signing out identity=%s", self._session.identity)
        self._session = None
        self._notify(None)

    def close(self) -> None:
        """Drop every registered listener."""
        self._listeners.clear()

    def _install(self, token: AuthToken) -> None:
        previous = self.current_identity
        self._session = Session.from_token(token, refresh_margin=self._refresh_margin)
        identity = self._session.identity
        if identity != previous:
            _logger.info("Identity changed from %s to %s", previous, identity)
            self._notify(identity)

    def _notify(self, identity: str | None) -> None:
        for callback in list(self._listeners):
            self._invoke(callback, identity)

    @staticmethod
    def _invoke(callback: IdentityCallback, identity: str | None) -> None:
        try:
            callback(identity)
        except Exception:
            _logger.warning("Identity listener failed", exc_info=True)
