"""
tests.test_auth_client

Auth client: sign-in/out, events, refresh.
"""

from __future__ import annotations

import time

import httpx
import pytest

from facility_portal.backend.auth import AuthClient, AuthEvent, AuthSession
from facility_portal.backend.errors import BackendError
from facility_portal.settings import Settings
from tests.conftest import make_token


class Recorder:
    def __init__(self) -> None:
        self.events: list[tuple[AuthEvent, AuthSession | None]] = []

    async def __call__(self, event: AuthEvent, session: AuthSession | None) -> None:
        self.events.append((event, session))


def test_session_reads_subject_and_expiry_from_token() -> None:
    token = make_token("u-1", ttl=120)

    session = AuthSession.from_token_response({"access_token": token, "refresh_token": "r"})

    assert session.user_id == "u-1"
    assert session.expires_at is not None
    assert session.expires_at > time.time()
    assert not session.expired


@pytest.mark.asyncio
async def test_sign_in_and_out_emit_events(settings: Settings, http: httpx.AsyncClient) -> None:
    auth = AuthClient(settings=settings, http=http)
    recorder = Recorder()
    auth.on_auth_state_change(recorder)

    session = await auth.sign_in_with_password(email="admin@example.org", password="admin-pass")
    assert session.user_id == "u-admin"
    assert (await auth.get_user())["id"] == "u-admin"

    await auth.sign_out()

    assert [e for e, _ in recorder.events] == [AuthEvent.signed_in, AuthEvent.signed_out]
    assert recorder.events[0][1] is session
    assert recorder.events[1][1] is None
    assert auth.session is None
    assert await auth.get_user() is None


@pytest.mark.asyncio
async def test_bad_credentials_raise_backend_error(
    settings: Settings, http: httpx.AsyncClient
) -> None:
    auth = AuthClient(settings=settings, http=http)

    with pytest.raises(BackendError) as excinfo:
        await auth.sign_in_with_password(email="admin@example.org", password="wrong")

    assert excinfo.value.status == 400
    assert excinfo.value.payload["error"] == "invalid_grant"
    assert excinfo.value.message == "Invalid login credentials"
    assert auth.session is None


@pytest.mark.asyncio
async def test_unsubscribe_stops_notifications(settings: Settings, http: httpx.AsyncClient) -> None:
    auth = AuthClient(settings=settings, http=http)
    recorder = Recorder()
    sub = auth.on_auth_state_change(recorder)

    sub.unsubscribe()
    await auth.sign_in_with_password(email="admin@example.org", password="admin-pass")

    assert recorder.events == []
    assert auth.subscriber_count == 0


@pytest.mark.asyncio
async def test_expired_token_is_refreshed(settings: Settings, http: httpx.AsyncClient, backend) -> None:
    backend.token_ttl = -60
    auth = AuthClient(settings=settings, http=http)
    recorder = Recorder()
    auth.on_auth_state_change(recorder)
    await auth.sign_in_with_password(email="staff@example.org", password="staff-pass")
    stale = auth.session

    backend.token_ttl = 3600
    token = await auth.access_token()

    assert token is not None
    assert token != stale.access_token
    assert [e for e, _ in recorder.events] == [AuthEvent.signed_in, AuthEvent.token_refreshed]


@pytest.mark.asyncio
async def test_failed_refresh_signs_out(settings: Settings, http: httpx.AsyncClient, backend) -> None:
    backend.token_ttl = -60
    auth = AuthClient(settings=settings, http=http)
    recorder = Recorder()
    auth.on_auth_state_change(recorder)
    await auth.sign_in_with_password(email="staff@example.org", password="staff-pass")
    backend.refresh_tokens.clear()

    assert await auth.access_token() is None
    assert auth.session is None
    assert recorder.events[-1] == (AuthEvent.signed_out, None)
