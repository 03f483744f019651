"""Deterministic ordering policy for the materialized list.

Newest first by ``created_at``. Records whose server timestamp is not
resolved yet count as newest. Equal timestamps fall back to the document
id, ascending, so every snapshot yields the same order for the same
content.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from pytailor.models.record import Record


def record_sort_key(record: Record) -> tuple[int, float, str]:
    """Sort key implementing the policy above with an ascending sort."""
    created: datetime | None = record.created_at
    if created is None:
        return (0, 0.0, record.id)
    return (1, -created.timestamp(), record.id)


def sort_records(records: Iterable[Record]) -> list[Record]:
    """Return *records* in display order."""
    return sorted(records, key=record_sort_key)
