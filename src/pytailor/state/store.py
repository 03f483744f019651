"""In-memory state store.

This is the only component allowed to mutate the materialized state.
Every mutation produces a new immutable :class:`SyncState` and notifies
the registered listeners with it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from pytailor._registration import Registration
from pytailor.models.record import Record
from pytailor.state.events import SessionStatus, SyncState
from pytailor.state.policy import sort_records

_logger = logging.getLogger(__name__)

StateCallback = Callable[[SyncState], None]


class SyncStateStore:
    """Holds the current :class:`SyncState` and publishes its changes."""

    def __init__(self, initial: SyncState | None = None) -> None:
        self._state = initial or SyncState()
        self._listeners: list[StateCallback] = []

    def snapshot(self) -> SyncState:
        """The current state. Immutable; safe to keep."""
        return self._state

    def on_change(self, callback: StateCallback) -> Registration:
        """Register *callback*; it receives the new state after each change."""
        self._listeners.append(callback)

        def _release() -> None:
            try:
                self._listeners.remove(callback)
            except ValueError:
                pass

        return Registration(_release, name="state-listener")

    def replace_records(self, records: Iterable[Record]) -> None:
        """Replace the whole list (never a delta) in display order."""
        self._update(records=tuple(sort_records(records)))

    def set_loading(self, loading: bool) -> None:
        self._update(loading=loading)

    def set_feedback(self, feedback: str) -> None:
        self._update(feedback=feedback)

    def set_status(self, status: SessionStatus) -> None:
        self._update(status=status)

    def set_identity(self, identity: str | None) -> None:
        self._update(identity=identity)

    def set_submitting(self, submitting: bool) -> None:
        self._update(submitting=submitting)

    def apply(self, **changes: Any) -> None:
        """Apply several field changes as one atomic update."""
        if "records" in changes:
            changes["records"] = tuple(sort_records(changes["records"]))
        self._update(**changes)

    def close(self) -> None:
        self._listeners.clear()

    def _update(self, **changes: Any) -> None:
        current = self._state
        if all(getattr(current, key) == value for key, value in changes.items()):
            return
        self._state = current.model_copy(update=changes)
        for callback in list(self._listeners):
            try:
                callback(self._state)
            except Exception:
                _logger.warning("State listener failed", exc_info=True)
