from __future__ import annotations

import pytest
from conftest import FakeAuthBackend

from pytailor.exceptions import AuthFailure, TailorTransportError
from pytailor.identity import IdentityProvider


@pytest.mark.asyncio
async def test_start_signs_in_anonymously_once(auth_backend: FakeAuthBackend) -> None:
    provider = IdentityProvider(auth_backend)

    assert provider.current_identity is None
    assert await provider.start() == "u1"
    assert await provider.start() == "u1"
    assert auth_backend.calls == {"sign_in_anonymously": 1}


@pytest.mark.asyncio
async def test_listener_registered_after_sign_in_fires_immediately(auth_backend: FakeAuthBackend) -> None:
    provider = IdentityProvider(auth_backend)
    await provider.start()
    seen: list[str | None] = []

    provider.on_identity_change(seen.append)

    assert seen == ["u1"]


@pytest.mark.asyncio
async def test_custom_token_is_used_when_configured() -> None:
    backend = FakeAuthBackend(custom_tokens={"tok-2": "u2"})
    provider = IdentityProvider(backend, custom_token="tok-2")

    assert await provider.start() == "u2"
    assert "sign_in_anonymously" not in backend.calls


@pytest.mark.asyncio
async def test_switching_identity_notifies_listeners() -> None:
    backend = FakeAuthBackend(custom_tokens={"tok-2": "u2", "tok-1": "u1"})
    provider = IdentityProvider(backend)
    seen: list[str | None] = []
    provider.on_identity_change(seen.append)

    await provider.start()
    await provider.sign_in_with_custom_token("tok-1")
    await provider.sign_in_with_custom_token("tok-2")

    assert seen == ["u1", "u2"]


@pytest.mark.asyncio
async def test_transport_failure_becomes_auth_failure(
    auth_backend: FakeAuthBackend, unreachable: TailorTransportError
) -> None:
    auth_backend.fail_with = unreachable
    provider = IdentityProvider(auth_backend)
    seen: list[str | None] = []
    provider.on_identity_change(seen.append)

    with pytest.raises(AuthFailure) as excinfo:
        await provider.start()

    assert excinfo.value.code == "sign_in_failed"
    assert excinfo.value.__cause__ is unreachable
    assert provider.current_identity is None
    assert seen == []


@pytest.mark.asyncio
async def test_get_id_token_refreshes_expired_session() -> None:
    backend = FakeAuthBackend(expires_in=10)
    provider = IdentityProvider(backend, refresh_margin=30)
    await provider.start()

    token = await provider.get_id_token()

    assert token == "id-u1-1"
    assert backend.calls["refresh"] == 1


@pytest.mark.asyncio
async def test_get_id_token_without_session_fails(auth_backend: FakeAuthBackend) -> None:
    provider = IdentityProvider(auth_backend)

    with pytest.raises(AuthFailure) as excinfo:
        await provider.get_id_token()

    assert excinfo.value.code == "no_session"


@pytest.mark.asyncio
async def test_sign_out_notifies_none_and_close_drops_listeners(auth_backend: FakeAuthBackend) -> None:
    provider = IdentityProvider(auth_backend)
    seen: list[str | None] = []
    provider.on_identity_change(seen.append)
    await provider.start()

    provider.sign_out()
    provider.close()
    await provider.start()

    assert seen == ["u1", None]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_sign_in(auth_backend: FakeAuthBackend) -> None:
    provider = IdentityProvider(auth_backend)

    def _boom(_: str | None) -> None:
        raise RuntimeError("listener bug")

    provider.on_identity_change(_boom)

    assert await provider.start() == "u1"


@pytest.mark.asyncio
async def test_refresh_with_different_subject_notifies() -> None:
    backend = FakeAuthBackend(expires_in=10, refresh_uid="u9")
    provider = IdentityProvider(backend, refresh_margin=30)
    seen: list[str | None] = []
    provider.on_identity_change(seen.append)
    await provider.start()

    await provider.get_id_token()

    assert seen == ["u1", "u9"]
    assert provider.current_identity == "u9"
