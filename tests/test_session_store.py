"""
tests.test_session_store

Session Store: initial resolution, auth-event handling, teardown.
"""

from __future__ import annotations

import pytest

from facility_portal.auth.models import Role
from facility_portal.backend.client import BackendClient
from facility_portal.backend.errors import BackendError
from facility_portal.repositories.users import UserRepo
from facility_portal.session.store import SessionState, SessionStore


def make_store(client: BackendClient) -> SessionStore:
    return SessionStore(users=UserRepo(client), auth=client.auth)


@pytest.mark.asyncio
async def test_starts_resolving_then_settles_without_session(client: BackendClient) -> None:
    store = make_store(client)
    assert store.snapshot() == SessionState(identity=None, resolving=True)

    await store.start()

    assert store.snapshot() == SessionState(identity=None, resolving=False)
    assert await store.wait_resolved(0.1)


@pytest.mark.asyncio
async def test_resolves_existing_session_on_start(client: BackendClient) -> None:
    await client.auth.sign_in_with_password(email="staff@example.org", password="staff-pass")
    store = make_store(client)

    await store.start()

    identity = store.identity
    assert identity is not None
    assert identity.id == "u-staff"
    assert identity.role is Role.staff
    assert identity.facility_id == "f2"
    assert store.resolving is False


@pytest.mark.asyncio
async def test_failed_lookup_clears_loading_and_leaves_identity_absent(
    client: BackendClient, backend
) -> None:
    await client.auth.sign_in_with_password(email="staff@example.org", password="staff-pass")
    backend.fail("GET", "users", status=500, payload={"message": "boom"})
    store = make_store(client)

    await store.start()

    assert store.resolving is False
    assert store.identity is None


@pytest.mark.asyncio
async def test_resolve_itself_raises(client: BackendClient, backend) -> None:
    await client.auth.sign_in_with_password(email="staff@example.org", password="staff-pass")
    backend.fail("GET", "users", status=500, payload={"message": "boom"})

    with pytest.raises(BackendError):
        await make_store(client).resolve()


@pytest.mark.asyncio
async def test_follows_sign_in_and_sign_out(client: BackendClient) -> None:
    store = make_store(client)
    await store.start()

    await client.auth.sign_in_with_password(email="admin@example.org", password="admin-pass")
    assert store.identity is not None
    assert store.identity.is_admin

    await client.auth.sign_out()
    assert store.identity is None
    assert store.resolving is False


@pytest.mark.asyncio
async def test_failed_re_resolution_fails_closed(client: BackendClient, backend) -> None:
    store = make_store(client)
    await store.start()
    backend.fail("GET", "users", status=503, payload={"message": "unavailable"})

    await client.auth.sign_in_with_password(email="admin@example.org", password="admin-pass")

    assert store.identity is None
    assert store.resolving is False


@pytest.mark.asyncio
async def test_close_unsubscribes(client: BackendClient) -> None:
    store = make_store(client)
    await store.start()
    assert client.auth.subscriber_count == 1

    store.close()
    await client.auth.sign_in_with_password(email="admin@example.org", password="admin-pass")

    assert client.auth.subscriber_count == 0
    assert store.identity is None
