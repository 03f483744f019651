"""Mutation submitter: creates customer records."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from pydantic import ValidationError

from pytailor._constants import customers_path
from pytailor.backends import DocumentStore
from pytailor.exceptions import TailorApiError, TailorError, ValidationFailure, WriteFailure
from pytailor.models.record import NewRecord

_logger = logging.getLogger(__name__)


class MutationSubmitter:
    """Appends records to an identity's collection.

    The local materialized list is never touched here: a new record shows
    up only once the live subscription redelivers the collection.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        path_for: Callable[[str], str] = customers_path,
    ) -> None:
        self._store = store
        self._path_for = path_for
        self._lock = asyncio.Lock()

    @staticmethod
    def validate(name: str, phone: str, measurements: str = "") -> NewRecord:
        """Validate input fields without touching the network.

        Raises
        ------
        ValidationFailure
            ``name`` or ``phone`` is empty (after stripping whitespace).
        """
        try:
            return NewRecord(name=name, phone=phone, measurements=measurements or "")
        except ValidationError as exc:
            errors = exc.errors()
            field = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else ""
            raise ValidationFailure(f"{field or 'record'} is required", field=field) from exc

    async def add_record(
        self,
        identity: str,
        name: str,
        phone: str,
        measurements: str = "",
    ) -> str:
        """Create a record and return its id once the store acknowledged it.

        Raises
        ------
        ValidationFailure
            Missing required field; no network call was made.
        WriteFailure
            The store rejected the write; nothing was created.
        """
        record = self.validate(name, phone, measurements)
        try:
            path = self._path_for(identity)
        except ValueError as exc:
            raise WriteFailure(str(exc), code="invalid_path") from exc

        async with self._lock:
            _logger.debug("Creating record under %s", path)
            try:
                doc_id = await self._store.create_document(path, record.to_fields())
            except WriteFailure:
                raise
            except TailorError as exc:
                code = exc.code if isinstance(exc, TailorApiError) else ""
                raise WriteFailure(str(exc), code=code, endpoint=path) from exc

        _logger.info("Created record %s under %s", doc_id, path)
        return doc_id
