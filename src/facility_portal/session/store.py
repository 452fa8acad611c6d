"""
facility_portal.session.store

Session Store for one browser session.

Responsibilities:
- Resolve the current identity once at start and clear `resolving` when done.
- Follow auth-state events: re-resolve on events carrying a session, clear on
  events without one.
- Unsubscribe and reset on close.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from facility_portal.auth.models import Identity
from facility_portal.backend.auth import AuthClient, AuthEvent, AuthSession, Subscription
from facility_portal.backend.errors import BackendError
from facility_portal.observability.logging import get_logger
from facility_portal.repositories.users import UserRepo

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SessionState:
    identity: Identity | None = None
    resolving: bool = True


class SessionStore:
    def __init__(self, *, users: UserRepo, auth: AuthClient) -> None:
        self._users = users
        self._auth = auth
        self._state = SessionState()
        self._subscription: Subscription | None = None
        self._resolved = asyncio.Event()

    def snapshot(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Identity | None:
        return self._state.identity

    @property
    def resolving(self) -> bool:
        return self._state.resolving

    async def resolve(self) -> Identity | None:
        """
        Fetch the user row for the current principal. Raises on backend failure;
        returns None when nobody is signed in.
        """

        row = await self._users.get_current()
        if row is None:
            return None
        identity = Identity.from_row(row)
        log.info("identity_resolved", user_id=identity.id, role=identity.role.value)
        return identity

    async def start(self) -> None:
        if self._subscription is None:
            self._subscription = self._auth.on_auth_state_change(self._on_auth_change)

        identity: Identity | None = None
        try:
            identity = await self.resolve()
        except (BackendError, httpx.HTTPError) as e:
            # Fail closed: the visitor is treated as signed out.
            log.warning("identity_resolution_failed", phase="start", error=str(e))
        finally:
            self._state = SessionState(identity=identity, resolving=False)
            self._resolved.set()

    async def _on_auth_change(self, event: AuthEvent, session: AuthSession | None) -> None:
        if session is None:
            self._state = SessionState(identity=None, resolving=False)
            return

        identity: Identity | None = None
        try:
            identity = await self.resolve()
        except (BackendError, httpx.HTTPError) as e:
            log.warning(
                "identity_resolution_failed", phase=event.value, error=str(e)
            )
        self._state = SessionState(identity=identity, resolving=False)

    async def wait_resolved(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._resolved.wait(), timeout)
        except TimeoutError:
            return False
        return True

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._state = SessionState(identity=None, resolving=False)
        self._resolved.set()


# --- Module Notes -----------------------------------------------------------
# Request handlers never mutate the store; they read `snapshot()` through the
# route guard. Only `start`, auth events and `close` change it.
