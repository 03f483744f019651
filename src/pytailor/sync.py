"""Collection synchronizer.

Keeps exactly one live subscription to the customer collection of one
identity and turns every store delivery into a complete, ordered list of
:class:`~pytailor.models.Record`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import ValidationError

from pytailor._api.firestore import Direction
from pytailor._constants import CREATED_AT_FIELD, customers_path
from pytailor._registration import Registration
from pytailor.backends import DocumentStore
from pytailor.exceptions import SubscriptionError, TailorApiError, TailorTransportError
from pytailor.models.document import Document
from pytailor.models.record import Record
from pytailor.state.policy import sort_records

_logger = logging.getLogger(__name__)

RecordsCallback = Callable[[str, list[Record]], None]
SyncErrorCallback = Callable[[str, SubscriptionError], None]


def _as_subscription_error(exc: Exception, path: str) -> SubscriptionError:
    if isinstance(exc, SubscriptionError):
        return exc
    code = ""
    if isinstance(exc, TailorApiError):
        code = exc.code
    elif isinstance(exc, TailorTransportError) and exc.status_code is not None:
        code = str(exc.status_code)
    return SubscriptionError(str(exc) or type(exc).__name__, code=code, endpoint=path)


class _ActiveSubscription:
    __slots__ = ("identity", "path", "handle")

    def __init__(self, identity: str, path: str) -> None:
        self.identity = identity
        self.path = path
        self.handle: Registration | None = None


class CollectionSynchronizer:
    """Materializes the ordered record collection of one identity.

    Parameters
    ----------
    store : DocumentStore
        Remote document store.
    path_for : callable
        Maps an identity to its collection path. Defaults to
        ``users/{identity}/customers``.
    order_field : str
        Field the store orders by.
    direction : Direction
        Sort direction of *order_field*.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        path_for: Callable[[str], str] = customers_path,
        order_field: str = CREATED_AT_FIELD,
        direction: Direction = Direction.DESCENDING,
    ) -> None:
        self._store = store
        self._path_for = path_for
        self._order_field = order_field
        self._direction = direction
        self._active: _ActiveSubscription | None = None

    @property
    def active_identity(self) -> str | None:
        """Identity of the open subscription, if any."""
        return self._active.identity if self._active is not None else None

    def path_for(self, identity: str) -> str:
        """Collection path of *identity*."""
        return self._path_for(identity)

    def subscribe(
        self,
        identity: str,
        on_snapshot: RecordsCallback,
        on_error: SyncErrorCallback,
    ) -> Registration:
        """Open the live subscription for *identity*.

        Any previous subscription is released first, so deliveries bound
        to a stale identity can never reach *on_snapshot*.

        Raises
        ------
        SubscriptionError
            The subscription could not be opened; nothing stays active.
        """
        self.unsubscribe()
        try:
            path = self._path_for(identity)
        except ValueError as exc:
            raise SubscriptionError(str(exc), code="invalid_path") from exc
        active = _ActiveSubscription(identity, path)
        self._active = active
        _logger.info("Subscribing to %s", path)

        def _deliver(documents: list[Document]) -> None:
            if self._active is not active:
                _logger.debug("Dropping stale snapshot for identity=%s", identity)
                return
            on_snapshot(identity, self._to_records(path, documents))

        def _fail(exc: Exception) -> None:
            if self._active is not active:
                _logger.debug("Dropping stale error for identity=%s: %s", identity, exc)
                return
            self._release(active)
            error = _as_subscription_error(exc, path)
            _logger.warning("Subscription to %s failed: %s", path, error)
            on_error(identity, error)

        try:
            handle = self._store.subscribe_ordered_collection(
                path,
                self._order_field,
                self._direction,
                _deliver,
                _fail,
            )
        except Exception as exc:
            if self._active is active:
                self._active = None
            error = _as_subscription_error(exc, path)
            _logger.warning("Opening subscription to %s failed: %s", path, error)
            if error is exc:
                raise
            raise error from exc
        if self._active is not active:
            # Released (or failed) while the store was opening it.
            handle.cancel()
        else:
            active.handle = handle

        return Registration(lambda: self._release(active), name=f"sync:{identity}")

    def unsubscribe(self) -> None:
        """Release the active subscription, if any."""
        if self._active is not None:
            self._release(self._active)

    def _release(self, active: _ActiveSubscription) -> None:
        if self._active is not active:
            return
        self._active = None
        handle = active.handle
        active.handle = None
        _logger.info("Unsubscribing from %s", active.path)
        if handle is not None:
            handle.cancel()

    @staticmethod
    def _to_records(path: str, documents: list[Document]) -> list[Record]:
        records: list[Record] = []
        for document in documents:
            if document.collection_path and document.collection_path != path:
                _logger.warning("Ignoring document %s outside %s", document.path, path)
                continue
            try:
                records.append(Record.from_document(document))
            except ValidationError as exc:
                _logger.warning("Skipping malformed record %s: %s", document.path or document.id, exc)
        return sort_records(records)
