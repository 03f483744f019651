from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pytailor._constants import SERVER_TIMESTAMP
from pytailor.models import AuthToken, Document, NewRecord, Record, parse_timestamp
from pytailor.session import Session


def test_parse_timestamp_truncates_nanoseconds() -> None:
    parsed = parse_timestamp("2026-01-01T12:00:00.123456789Z")
    assert parsed == datetime(2026, 1, 1, 12, 0, 0, 123456, tzinfo=UTC)


def test_parse_timestamp_handles_offsets_and_short_fractions() -> None:
    assert parse_timestamp("2026-01-01T14:00:00.5+02:00") == datetime(2026, 1, 1, 12, 0, 0, 500000, tzinfo=UTC)
    assert parse_timestamp("2026-01-01T12:00:00Z") == datetime(2026, 1, 1, 12, tzinfo=UTC)
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None


def test_record_from_document_maps_camel_case_fields() -> None:
    document = Document(
        id="abc",
        path="users/u1/customers/abc",
        data={
            "name": "Alice",
            "phone": "555-0100",
            "measurements": "waist 32in",
            "createdAt": "2026-01-01T12:00:00Z",
        },
    )

    record = Record.from_document(document)

    assert record.id == "abc"
    assert record.name == "Alice"
    assert record.measurements == "waist 32in"
    assert record.created_at == datetime(2026, 1, 1, 12, tzinfo=UTC)
    assert document.collection_path == "users/u1/customers"


def test_record_measurements_default_to_empty() -> None:
    record = Record.model_validate({"id": "x", "name": "Bob", "phone": "1", "measurements": None})
    assert record.measurements == ""
    assert record.created_at is None


def test_record_requires_name_and_phone() -> None:
    with pytest.raises(ValidationError):
        Record.model_validate({"id": "x", "name": "  ", "phone": "1"})
    with pytest.raises(ValidationError):
        Record.model_validate({"id": "x", "name": "Bob"})


def test_new_record_strips_and_marks_server_timestamp() -> None:
    new = NewRecord(name="  Alice ", phone=" 555-0100", measurements="chest 40")
    fields = new.to_fields()

    assert fields["name"] == "Alice"
    assert fields["phone"] == "555-0100"
    assert fields["createdAt"] is SERVER_TIMESTAMP


@pytest.mark.parametrize(("name", "phone"), [("", "555"), ("Alice", ""), ("   ", "555")])
def test_new_record_rejects_missing_required_fields(name: str, phone: str) -> None:
    with pytest.raises(ValidationError):
        NewRecord(name=name, phone=phone)


def test_auth_token_accepts_identity_toolkit_payload() -> None:
    token = AuthToken.model_validate(
        {
            "kind": "identitytoolkit#SignupNewUserResponse",
            "idToken": "ID",
            "refreshToken": "REFRESH",
            "expiresIn": "3600",
            "localId": "uid-1",
        }
    )
    assert token.user_id == "uid-1"
    assert token.expires_in == 3600.0
    assert token.raw["kind"] == "identitytoolkit#SignupNewUserResponse"


def test_session_expiry_honours_refresh_margin() -> None:
    token = AuthToken(user_id="u1", id_token="ID", refresh_token="R", expires_in=100)
    session = Session.from_token(token, refresh_margin=40)

    assert session.identity == "u1"
    assert session.is_expired is False
    aged = session.model_copy(update={"created_at": session.created_at - 61})
    assert aged.is_expired is True
