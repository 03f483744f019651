"""Cancellable register/unregister handle returned by every listener API."""

from __future__ import annotations

import logging
from collections.abc import Callable

_logger = logging.getLogger(__name__)


class Registration:
    """Handle for a registered listener or an open subscription.

    ``cancel()`` runs the release callback exactly once; later calls are
    no-ops. Calling the handle is the same as ``cancel()``.
    """

    __slots__ = ("_release", "_name")

    def __init__(self, release: Callable[[], None], *, name: str = "") -> None:
        self._release: Callable[[], None] | None = release
        self._name = name

    @property
    def active(self) -> bool:
        """Whether the release callback has not run yet."""
        return self._release is not None

    def cancel(self) -> None:
        release = self._release
        self._release = None
        if release is None:
            return
        _logger.debug("Releasing registration %s", self._name or hex(id(self)))
        release()

    def __call__(self) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "active" if self.active else "released"
        return f"Registration({self._name!r}, {state})"
