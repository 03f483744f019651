"""High-level async engine for the customer collection."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pytailor._registration import Registration
from pytailor._transport import RestTransport
from pytailor.backends import AuthBackend, DocumentStore, FirebaseAuthBackend, FirestoreDocumentStore
from pytailor.config import TailorConfig
from pytailor.controller import SessionController
from pytailor.exceptions import TailorError
from pytailor.identity import IdentityProvider
from pytailor.state.events import SyncState
from pytailor.state.store import StateCallback
from pytailor.submit import MutationSubmitter
from pytailor.sync import CollectionSynchronizer

_logger = logging.getLogger(__name__)


class TailorClient:
    """Async engine keeping a local, ordered view of the user's customers.

    Owns the identity provider, the synchronizer, the submitter and the
    controller; nothing is process-global.

    Usage::

        async with TailorClient(config) as client:
            await client.start()
            await client.add_record("Alice", "555-0100", "waist 32in")
            print(client.state.records)

    Parameters
    ----------
    config : TailorConfig
        Client configuration.
    session : aiohttp.ClientSession, optional
        External HTTP session. Not closed by the client.
    auth_backend : AuthBackend, optional
        Replaces the Identity Toolkit backend (tests, emulators).
    store : DocumentStore, optional
        Replaces the Firestore backend (tests, emulators).
    on_state_change : callable, optional
        Called with every new :class:`SyncState`.
    """

    def __init__(
        self,
        config: TailorConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        auth_backend: AuthBackend | None = None,
        store: DocumentStore | None = None,
        on_state_change: StateCallback | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._auth_backend = auth_backend
        self._store = store
        self._on_state_change = on_state_change
        self._identity: IdentityProvider | None = None
        self._controller: SessionController | None = None
        self._owned_store: FirestoreDocumentStore | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TailorClient:
        transport: RestTransport | None = None
        if self._auth_backend is None or self._store is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            transport = RestTransport(self._config, self._http_session)

        auth_backend = self._auth_backend
        if auth_backend is None:
            assert transport is not None  # noqa: S101
            auth_backend = FirebaseAuthBackend(self._config, transport)

        identity = IdentityProvider(
            auth_backend,
            custom_token=self._config.custom_token,
            refresh_margin=self._config.token_refresh_margin,
        )

        store = self._store
        if store is None:
            assert transport is not None  # noqa: S101
            self._owned_store = FirestoreDocumentStore(self._config, transport, identity.get_id_token)
            store = self._owned_store

        self._identity = identity
        self._controller = SessionController(
            identity,
            CollectionSynchronizer(store),
            MutationSubmitter(store),
        )
        if self._on_state_change is not None:
            self._controller.on_change(self._on_state_change)
        _logger.debug("Client ready project=%s", self._config.project_id)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.dispose()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
        self._http_session = None

    # ------------------------------------------------------------------
    # Engine API
    # ------------------------------------------------------------------

    def _require_controller(self) -> SessionController:
        if self._controller is None:
            raise TailorError("Client not initialized. Use 'async with TailorClient(...) as client:'")
        return self._controller

    @property
    def state(self) -> SyncState:
        """Current ``{records, loading, feedback}`` state and status."""
        return self._require_controller().state

    @property
    def identity(self) -> str | None:
        """Identity of the authenticated session, if any."""
        return self._identity.current_identity if self._identity is not None else None

    @property
    def identity_provider(self) -> IdentityProvider:
        """The identity provider adapter owned by this client."""
        if self._identity is None:
            raise TailorError("Client not initialized. Use 'async with TailorClient(...) as client:'")
        return self._identity

    async def start(self) -> SyncState:
        """Authenticate and open the live customer subscription."""
        controller = self._require_controller()
        await controller.start()
        return controller.state

    async def add_record(self, name: str, phone: str, measurements: str = "") -> str | None:
        """Create a customer; see :meth:`SessionController.add_record`."""
        return await self._require_controller().add_record(name, phone, measurements)

    def on_state_change(self, callback: StateCallback) -> Registration:
        """Register a callback receiving every new :class:`SyncState`."""
        return self._require_controller().on_change(callback)

    async def dispose(self) -> None:
        """Release subscriptions and listeners. Idempotent."""
        controller = self._controller
        if controller is not None:
            controller.dispose()
        if self._owned_store is not None:
            self._owned_store.close()
            self._owned_store = None
        if self._identity is not None:
            self._identity.close()
