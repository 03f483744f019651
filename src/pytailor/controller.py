"""Session/status controller.

Orchestrates the session lifecycle: waits for an identity, activates the
synchronizer for it and turns every outcome (snapshots, failures, writes)
into one coherent :class:`~pytailor.state.SyncState`.

State machine::

    initializing -> awaiting_identity -> subscription_active
                         |                      |
                         v                      v
                    auth_failed         subscription_error
    (any) -> disposed

``submitting`` is orthogonal and only brackets :meth:`add_record`.
"""

from __future__ import annotations

import logging

from pytailor._constants import (
    FEEDBACK_ADD_ERROR,
    FEEDBACK_ADDED,
    FEEDBACK_ADDING,
    FEEDBACK_AUTH_ERROR,
    FEEDBACK_AUTHENTICATED,
    FEEDBACK_DISPOSED,
    FEEDBACK_INITIALIZING,
    FEEDBACK_LOAD_ERROR,
    FEEDBACK_LOADED,
    FEEDBACK_MISSING_FIELDS,
    FEEDBACK_SIGNED_OUT,
)
from pytailor._registration import Registration
from pytailor.exceptions import AuthFailure, SubscriptionError, ValidationFailure, WriteFailure
from pytailor.identity import IdentityProvider
from pytailor.models.record import Record
from pytailor.state.events import SessionStatus, SyncState
from pytailor.state.store import StateCallback, SyncStateStore
from pytailor.submit import MutationSubmitter
from pytailor.sync import CollectionSynchronizer

_logger = logging.getLogger(__name__)


class SessionController:
    """Owns the session state machine and the materialized state.

    Every subscription is tagged with a generation number; a callback
    whose generation is not the current one is ignored, so late
    deliveries from a released subscription never reach the state.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        synchronizer: CollectionSynchronizer,
        submitter: MutationSubmitter,
        *,
        store: SyncStateStore | None = None,
    ) -> None:
        self._identity = identity
        self._synchronizer = synchronizer
        self._submitter = submitter
        self._store = store or SyncStateStore()
        self._identity_registration: Registration | None = None
        self._subscription: Registration | None = None
        self._generation = 0
        self._active_identity: str | None = None
        self._writes_in_flight = 0
        self._disposed = False

    @property
    def state(self) -> SyncState:
        """Current state snapshot for the presentation layer."""
        return self._store.snapshot()

    @property
    def status(self) -> SessionStatus:
        return self._store.snapshot().status

    @property
    def generation(self) -> int:
        """Generation of the current subscription."""
        return self._generation

    def on_change(self, callback: StateCallback) -> Registration:
        """Register a presentation callback receiving every new state."""
        return self._store.on_change(callback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Authenticate and activate the synchronizer for the identity.

        Never raises for an authentication failure; the failure is
        reflected in the state instead.
        """
        if self._disposed:
            raise RuntimeError("controller is disposed")
        if self._identity_registration is not None:
            return

        self._store.apply(
            status=SessionStatus.AWAITING_IDENTITY,
            loading=True,
            feedback=FEEDBACK_INITIALIZING,
        )
        self._identity_registration = self._identity.on_identity_change(self._handle_identity)

        try:
            await self._identity.start()
        except AuthFailure as exc:
            if self._disposed:
                return
            _logger.warning("Authentication failed: %s", exc)
            self._release_subscription()
            self._store.apply(
                status=SessionStatus.AUTH_FAILED,
                loading=False,
                records=(),
                identity=None,
                feedback=FEEDBACK_AUTH_ERROR.format(message=exc),
            )

    def dispose(self) -> None:
        """Release the subscription and the identity listener. Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        self._release_subscription()
        registration = self._identity_registration
        self._identity_registration = None
        if registration is not None:
            registration.cancel()
        self._store.apply(
            status=SessionStatus.DISPOSED,
            loading=False,
            submitting=False,
            feedback=FEEDBACK_DISPOSED,
        )
        self._store.close()
        _logger.info("Session disposed")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_record(self, name: str, phone: str, measurements: str = "") -> str | None:
        """Create a customer record for the current identity.

        Returns the new record id, or ``None`` when the record was not
        created; the reason is in :attr:`state` ``.feedback``. The list
        itself only changes once the subscription redelivers.
        """
        if self._disposed:
            raise RuntimeError("controller is disposed")

        try:
            self._submitter.validate(name, phone, measurements)
        except ValidationFailure:
            self._store.set_feedback(FEEDBACK_MISSING_FIELDS)
            return None

        identity = self._identity.current_identity
        if identity is None:
            self._store.set_feedback(FEEDBACK_ADD_ERROR.format(message="not authenticated"))
            return None

        # Concurrent calls queue on the submitter; the flag stays set until the last one ends.
        self._writes_in_flight += 1
        self._store.apply(submitting=True, feedback=FEEDBACK_ADDING)
        feedback = FEEDBACK_ADD_ERROR.format(message="interrupted")
        doc_id: str | None = None
        try:
            doc_id = await self._submitter.add_record(identity, name, phone, measurements)
        except ValidationFailure:
            feedback = FEEDBACK_MISSING_FIELDS
        except WriteFailure as exc:
            _logger.warning("Adding customer failed: %s", exc)
            feedback = FEEDBACK_ADD_ERROR.format(message=exc)
        else:
            feedback = FEEDBACK_ADDED
        finally:
            self._writes_in_flight -= 1
            if not self._disposed:
                self._store.apply(submitting=self._writes_in_flight > 0, feedback=feedback)
        return doc_id

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _handle_identity(self, identity: str | None) -> None:
        if self._disposed:
            return
        if identity == self._active_identity and self._subscription is not None:
            return

        self._release_subscription()
        self._active_identity = identity

        if identity is None:
            self._store.apply(
                status=SessionStatus.AWAITING_IDENTITY,
                identity=None,
                records=(),
                loading=True,
                feedback=FEEDBACK_SIGNED_OUT,
            )
            return

        self._store.apply(
            status=SessionStatus.SUBSCRIPTION_ACTIVE,
            identity=identity,
            records=(),
            loading=True,
            feedback=FEEDBACK_AUTHENTICATED.format(identity=identity),
        )
        self._generation += 1
        generation = self._generation
        try:
            self._subscription = self._synchronizer.subscribe(
                identity,
                lambda ident, records: self._handle_snapshot(generation, ident, records),
                lambda ident, error: self._handle_error(generation, ident, error),
            )
        except SubscriptionError as exc:
            self._handle_error(generation, identity, exc)

    def _is_current(self, generation: int, identity: str) -> bool:
        return not self._disposed and generation == self._generation and identity == self._active_identity

    def _handle_snapshot(self, generation: int, identity: str, records: list[Record]) -> None:
        if not self._is_current(generation, identity):
            _logger.debug("Ignoring stale snapshot generation=%d identity=%s", generation, identity)
            return
        self._store.apply(
            status=SessionStatus.SUBSCRIPTION_ACTIVE,
            records=records,
            loading=False,
            feedback=FEEDBACK_LOADED,
        )

    def _handle_error(self, generation: int, identity: str, error: SubscriptionError) -> None:
        if not self._is_current(generation, identity):
            _logger.debug("Ignoring stale subscription error generation=%d: %s", generation, error)
            return
        self._subscription = None
        self._store.apply(
            status=SessionStatus.SUBSCRIPTION_ERROR,
            loading=False,
            feedback=FEEDBACK_LOAD_ERROR.format(message=error),
        )

    def _release_subscription(self) -> None:
        subscription = self._subscription
        self._subscription = None
        # Bumping the generation invalidates callbacks already in flight.
        self._generation += 1
        if subscription is not None:
            subscription.cancel()
