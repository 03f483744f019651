"""State/store layer.

This package is the single source of truth for what the presentation
layer renders: the materialized customer list, the loading flag, the
feedback text and the session status.
"""

from pytailor.state.events import SessionStatus, SyncState
from pytailor.state.policy import record_sort_key, sort_records
from pytailor.state.store import SyncStateStore

__all__ = [
    "SessionStatus",
    "SyncState",
    "SyncStateStore",
    "record_sort_key",
    "sort_records",
]
