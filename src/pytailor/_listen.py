"""Live-query runtime that turns repeated reads into a snapshot stream."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pytailor.models.document import Document


class SnapshotListener:
    """asyncio runtime that re-reads one query and emits full snapshots.

    The Firestore REST API offers no push channel, so a listener owns one
    task that runs *fetch* every *interval* seconds. A snapshot is emitted
    for the first read and afterwards whenever the ``(id, update_time)``
    sequence changes. The first failed read is reported to *on_error* and
    ends the task. After :meth:`stop` nothing is emitted any more.
    """

    def __init__(
        self,
        *,
        path: str,
        fetch: Callable[[], Awaitable[list[Document]]],
        on_snapshot: Callable[[list[Document]], None],
        on_error: Callable[[Exception], None],
        interval: float,
        logger: logging.Logger | None = None,
    ) -> None:
        self._path = path
        self._fetch = fetch
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._interval = interval
        self._logger = logger or logging.getLogger(__name__)
        self._task: asyncio.Task[None] | None = None
        self._wake: asyncio.Event | None = None
        self._stopped = False
        self._deliveries = 0

    @property
    def path(self) -> str:
        """Collection path this listener reads."""
        return self._path

    @property
    def is_running(self) -> bool:
        """Whether the read loop is still active."""
        return self._task is not None and not self._task.done() and not self._stopped

    @property
    def deliveries(self) -> int:
        """Number of snapshots emitted so far."""
        return self._deliveries

    def start(self) -> None:
        """Start the read loop on the running event loop."""
        if self._task is not None:
            return
        self._logger.debug("Snapshot listener start path=%s interval=%.2fs", self._path, self._interval)
        self._wake = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"pytailor-listen:{self._path}")

    def poke(self) -> None:
        """Read again now instead of waiting for the next interval."""
        if self._wake is not None and not self._stopped:
            self._wake.set()

    def stop(self) -> None:
        """Stop the read loop. Safe to call more than once."""
        if self._stopped:
            return
        self._stopped = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()
        self._logger.debug("Snapshot listener stopped path=%s deliveries=%d", self._path, self._deliveries)

    async def _sleep(self) -> None:
        wake = self._wake
        if wake is None:
            await asyncio.sleep(self._interval)
            return
        try:
            await asyncio.wait_for(wake.wait(), self._interval)
        except TimeoutError:
            pass
        wake.clear()

    async def _run(self) -> None:
        last_versions: list[tuple[str, str]] | None = None
        while not self._stopped:
            try:
                documents = await self._fetch()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # reported through on_error, never retried
                if self._stopped:
                    return
                self._stopped = True
                self._logger.warning("Snapshot listener failed path=%s: %s", self._path, exc)
                self._on_error(exc)
                return

            if self._stopped:
                return

            versions = [document.version() for document in documents]
            if versions != last_versions:
                last_versions = versions
                self._deliveries += 1
                self._logger.debug(
                    "Snapshot delivery path=%s documents=%d seq=%d",
                    self._path,
                    len(documents),
                    self._deliveries,
                )
                try:
                    self._on_snapshot(documents)
                except Exception:
                    self._logger.warning("Snapshot callback failed path=%s", self._path, exc_info=True)

            await self._sleep()
