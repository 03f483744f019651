from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from pytailor._api.firestore import Direction
from pytailor.backends import FirestoreDocumentStore
from pytailor.config import TailorConfig
from pytailor.models.document import Document

ROOT = "projects/tailor-test/databases/(default)/documents"


@dataclass
class _FirestoreTransport:
    documents: list[dict[str, Any]] = field(default_factory=list)
    endpoints: list[str] = field(default_factory=list)

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        endpoint: str,
        json_body: Any = None,
        form: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        bearer: str | None = None,
    ) -> Any:
        self.endpoints.append(endpoint)
        if endpoint.endswith(":runQuery"):
            return [{"document": document} for document in self.documents] or [{"readTime": "2026-01-01T12:00:00Z"}]
        name = json_body["writes"][0]["update"]["name"]
        self.documents.insert(0, {"name": name, "fields": {}, "updateTime": "2026-01-01T12:00:05Z"})
        return {"writeResults": [{"updateTime": "2026-01-01T12:00:05Z"}]}


async def _token() -> str:
    return "id-token"


async def _until(predicate: Any, timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.mark.asyncio
async def test_subscription_owns_one_listener_until_cancelled(config: TailorConfig) -> None:
    transport = _FirestoreTransport()
    store = FirestoreDocumentStore(config, transport, _token)
    snapshots: list[list[Document]] = []

    registration = store.subscribe_ordered_collection(
        "users/u1/customers", "createdAt", Direction.DESCENDING, snapshots.append, lambda exc: None
    )
    await _until(lambda: len(snapshots) == 1)

    assert store.listener_count == 1
    registration.cancel()
    assert store.listener_count == 0


@pytest.mark.asyncio
async def test_create_is_observed_by_listener_on_same_path(config: TailorConfig) -> None:
    transport = _FirestoreTransport()
    store = FirestoreDocumentStore(config, transport, _token)
    snapshots: list[list[Document]] = []
    store.subscribe_ordered_collection(
        "users/u1/customers", "createdAt", Direction.DESCENDING, snapshots.append, lambda exc: None
    )
    await _until(lambda: len(snapshots) == 1)

    doc_id = await store.create_document("users/u1/customers", {"name": "Alice"})
    await _until(lambda: len(snapshots) == 2)
    store.close()

    assert [d.id for d in snapshots[1]] == [doc_id]
    assert store.listener_count == 0
    assert f"/{ROOT}:commit" in transport.endpoints


def test_invalid_path_fails_before_any_listener_starts(config: TailorConfig) -> None:
    store = FirestoreDocumentStore(config, _FirestoreTransport(), _token)

    with pytest.raises(ValueError):
        store.subscribe_ordered_collection("users/u1", "createdAt", Direction.DESCENDING, lambda docs: None, lambda exc: None)

    assert store.listener_count == 0
