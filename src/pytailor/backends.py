"""Remote collaborators: authentication service and document store.

The engine only talks to these two protocols. The Firebase
implementations below speak the Identity Toolkit and Firestore REST APIs;
tests inject in-memory doubles instead.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from pytailor._api import auth as _auth_api
from pytailor._api import firestore as _firestore_api
from pytailor._api.firestore import Direction
from pytailor._listen import SnapshotListener
from pytailor._registration import Registration
from pytailor._transport import Transport
from pytailor.config import TailorConfig
from pytailor.models.document import Document
from pytailor.models.token import AuthToken

_logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[Exception], None]


class AuthBackend(Protocol):
    """Authentication service used by :class:`~pytailor.identity.IdentityProvider`."""

    async def sign_in_anonymously(self) -> AuthToken:
        ...

    async def sign_in_with_custom_token(self, custom_token: str) -> AuthToken:
        ...

    async def refresh(self, refresh_token: str) -> AuthToken:
        ...


class DocumentStore(Protocol):
    """Document store used by the synchronizer and the submitter."""

    def subscribe_ordered_collection(
        self,
        path: str,
        order_field: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Registration:
        ...

    async def create_document(self, path: str, fields: Mapping[str, Any]) -> str:
        ...


class FirebaseAuthBackend:
    """:class:`AuthBackend` on the Identity Toolkit REST API."""

    def __init__(self, config: TailorConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport

    async def sign_in_anonymously(self) -> AuthToken:
        return await _auth_api.sign_in_anonymously(self._config, self._transport)

    async def sign_in_with_custom_token(self, custom_token: str) -> AuthToken:
        return await _auth_api.sign_in_with_custom_token(self._config, self._transport, custom_token)

    async def refresh(self, refresh_token: str) -> AuthToken:
        return await _auth_api.refresh_id_token(self._config, self._transport, refresh_token)


class FirestoreDocumentStore:
    """:class:`DocumentStore` on the Firestore REST API.

    *token_provider* returns a valid ID token for every request; it is
    usually :meth:`IdentityProvider.get_id_token`.
    """

    def __init__(
        self,
        config: TailorConfig,
        transport: Transport,
        token_provider: Callable[[], Awaitable[str]],
    ) -> None:
        self._config = config
        self._transport = transport
        self._token_provider = token_provider
        self._listeners: set[SnapshotListener] = set()

    @property
    def listener_count(self) -> int:
        """Number of live listeners."""
        return len(self._listeners)

    def subscribe_ordered_collection(
        self,
        path: str,
        order_field: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Registration:
        """Open a live ordered query on *path*; must run inside the event loop."""
        # Validate eagerly so a bad path fails the caller, not the task.
        _firestore_api.build_ordered_query(path, order_field=order_field, direction=direction)

        async def _fetch() -> list[Document]:
            token = await self._token_provider()
            return await _firestore_api.run_ordered_query(
                self._config,
                self._transport,
                token,
                path,
                order_field=order_field,
                direction=direction,
            )

        listener = SnapshotListener(
            path=path,
            fetch=_fetch,
            on_snapshot=on_snapshot,
            on_error=on_error,
            interval=self._config.poll_interval,
            logger=_logger,
        )
        self._listeners.add(listener)
        listener.start()

        def _release() -> None:
            listener.stop()
            self._listeners.discard(listener)

        return Registration(_release, name=f"listen:{path}")

    async def create_document(self, path: str, fields: Mapping[str, Any]) -> str:
        """Create a document under *path* and return its id once committed."""
        token = await self._token_provider()
        doc_id = await _firestore_api.commit_create(self._config, self._transport, token, path, fields)
        # Let live queries on the same collection observe the write promptly.
        for listener in list(self._listeners):
            if listener.path == path:
                listener.poke()
        return doc_id

    def close(self) -> None:
        """Stop every live listener."""
        for listener in list(self._listeners):
            listener.stop()
        self._listeners.clear()
