from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from pytailor._api.firestore import Direction
from pytailor._constants import SERVER_TIMESTAMP
from pytailor._registration import Registration
from pytailor.backends import ErrorCallback, SnapshotCallback
from pytailor.config import TailorConfig
from pytailor.exceptions import AuthFailure, TailorTransportError
from pytailor.models.document import Document
from pytailor.models.token import AuthToken

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


@dataclass
class FakeAuthBackend:
    """In-memory authentication service."""

    anonymous_uid: str = "u1"
    custom_tokens: dict[str, str] = field(default_factory=dict)
    refresh_uid: str | None = None
    fail_with: Exception | None = None
    expires_in: float = 3600.0
    calls: dict[str, int] = field(default_factory=dict)

    def _record_call(self, name: str) -> int:
        self.calls[name] = self.calls.get(name, 0) + 1
        return self.calls[name]

    def _token(self, uid: str, seq: int) -> AuthToken:
        return AuthToken(
            user_id=uid,
            id_token=f"id-{uid}-{seq}",
            refresh_token=f"refresh-{uid}",
            expires_in=self.expires_in,
        )

    async def sign_in_anonymously(self) -> AuthToken:
        seq = self._record_call("sign_in_anonymously")
        if self.fail_with is not None:
            raise self.fail_with
        return self._token(self.anonymous_uid, seq)

    async def sign_in_with_custom_token(self, custom_token: str) -> AuthToken:
        seq = self._record_call("sign_in_with_custom_token")
        if self.fail_with is not None:
            raise self.fail_with
        uid = self.custom_tokens.get(custom_token)
        if uid is None:
            raise AuthFailure("Authentication failed: INVALID_CUSTOM_TOKEN", code="INVALID_ARGUMENT")
        return self._token(uid, seq)

    async def refresh(self, refresh_token: str) -> AuthToken:
        seq = self._record_call("refresh")
        uid = self.refresh_uid or refresh_token.removeprefix("refresh-")
        return self._token(uid, seq)


@dataclass
class FakeSubscription:
    path: str
    order_field: str
    direction: Direction
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback
    active: bool = True


@dataclass
class FakeDocumentStore:
    """In-memory document store; deliveries happen only through :meth:`emit`."""

    documents: dict[str, list[Document]] = field(default_factory=dict)
    subscriptions: list[FakeSubscription] = field(default_factory=list)
    create_calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    fail_writes_with: Exception | None = None
    _seq: int = 0

    def subscribe_ordered_collection(
        self,
        path: str,
        order_field: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Registration:
        subscription = FakeSubscription(path, order_field, direction, on_snapshot, on_error)
        self.subscriptions.append(subscription)

        def _release() -> None:
            subscription.active = False

        return Registration(_release, name=f"fake:{path}")

    def active_subscriptions(self, path: str | None = None) -> list[FakeSubscription]:
        return [s for s in self.subscriptions if s.active and (path is None or s.path == path)]

    async def create_document(self, path: str, fields: Mapping[str, Any]) -> str:
        self.create_calls.append((path, dict(fields)))
        if self.fail_writes_with is not None:
            raise self.fail_writes_with
        self._seq += 1
        doc_id = f"doc-{self._seq:03d}"
        data = {
            key: (BASE_TIME + timedelta(seconds=self._seq) if value is SERVER_TIMESTAMP else value)
            for key, value in fields.items()
        }
        self.add(path, doc_id, **data)
        return doc_id

    def add(self, path: str, doc_id: str, **data: Any) -> Document:
        document = Document(id=doc_id, path=f"{path}/{doc_id}", data=data)
        self.documents.setdefault(path, []).append(document)
        return document

    def emit(self, path: str) -> None:
        """Deliver the current content of *path* to every active listener."""
        for subscription in self.active_subscriptions(path):
            subscription.on_snapshot(list(self.documents.get(path, [])))

    def fail(self, path: str, exc: Exception) -> None:
        for subscription in self.active_subscriptions(path):
            subscription.on_error(exc)


def customer(doc_id: str, name: str, seconds: int, *, path: str = "users/u1/customers") -> Document:
    return Document(
        id=doc_id,
        path=f"{path}/{doc_id}",
        data={
            "name": name,
            "phone": "555-0000",
            "measurements": "",
            "createdAt": BASE_TIME + timedelta(seconds=seconds),
        },
    )


@pytest.fixture
def config() -> TailorConfig:
    return TailorConfig(api_key="test-key", project_id="tailor-test", poll_interval=0.01)


@pytest.fixture
def auth_backend() -> FakeAuthBackend:
    return FakeAuthBackend()


@pytest.fixture
def doc_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def unreachable() -> TailorTransportError:
    return TailorTransportError("Request to /accounts:signUp failed: Cannot connect to host", endpoint="/accounts:signUp")
