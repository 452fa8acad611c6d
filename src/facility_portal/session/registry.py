"""
facility_portal.session.registry

Registry of browser sessions.

Responsibilities:
- Build one `PortalSession` per browser cookie: auth client, backend client,
  Session Store, request cache and facility editor.
- Start identity resolution in the background when a session opens.
- Close sessions (unsubscribe, cancel background fetches) on sign-out, after
  an idle period and on shutdown.
"""

from __future__ import annotations

import asyncio
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from facility_portal.backend.auth import AuthClient
from facility_portal.backend.client import BackendClient
from facility_portal.observability.logging import get_logger
from facility_portal.query_cache import QueryCache
from facility_portal.repositories.facilities import FacilityRepo
from facility_portal.repositories.users import UserRepo
from facility_portal.session.store import SessionStore
from facility_portal.settings import Settings
from facility_portal.views.facilities import FacilityEditor

log = get_logger(__name__)


@dataclass(slots=True)
class PortalSession:
    sid: str
    client: BackendClient
    store: SessionStore
    cache: QueryCache
    editor: FacilityEditor
    last_seen: float = 0.0
    started: asyncio.Task[None] | None = field(default=None, repr=False)

    async def close(self) -> None:
        self.store.close()
        if self.started is not None and not self.started.done():
            self.started.cancel()
        await self.cache.close()


def _report_start_failure(sid: str):
    def _callback(t: asyncio.Task[None]) -> None:
        if t.cancelled():
            return
        error = t.exception()
        if error is not None:
            # The store has already settled to signed-out in `start`'s finally.
            log.warning(
                "identity_resolution_failed",
                phase="start",
                session=sid[:8],
                error=repr(error),
            )

    return _callback


class SessionRegistry:
    def __init__(
        self,
        *,
        settings: Settings,
        http: httpx.AsyncClient,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._http = http
        self._clock = clock
        self._sessions: dict[str, PortalSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, sid: str) -> PortalSession | None:
        portal = self._sessions.get(sid)
        if portal is not None:
            portal.last_seen = self._clock()
        return portal

    def open(self) -> PortalSession:
        sid = secrets.token_urlsafe(32)
        auth = AuthClient(settings=self._settings, http=self._http)
        client = BackendClient(settings=self._settings, http=self._http, auth=auth)
        cache = QueryCache.from_settings(self._settings)
        portal = PortalSession(
            sid=sid,
            client=client,
            store=SessionStore(users=UserRepo(client), auth=auth),
            cache=cache,
            editor=FacilityEditor(facilities=FacilityRepo(client), cache=cache),
            last_seen=self._clock(),
        )
        portal.started = asyncio.create_task(portal.store.start())
        portal.started.add_done_callback(_report_start_failure(sid))
        self._sessions[sid] = portal
        log.info("session_opened", sessions=len(self._sessions))
        return portal

    async def close(self, sid: str) -> None:
        portal = self._sessions.pop(sid, None)
        if portal is not None:
            await portal.close()
            log.info("session_closed", sessions=len(self._sessions))

    async def evict_idle(self) -> int:
        """
        Close every session not seen for `session_idle_seconds`. Returns the
        number of sessions closed.
        """

        cutoff = self._clock() - self._settings.session_idle_seconds
        idle = [sid for sid, p in self._sessions.items() if p.last_seen <= cutoff]
        for sid in idle:
            portal = self._sessions.pop(sid, None)
            if portal is not None:
                await portal.close()
        if idle:
            log.info("sessions_evicted", count=len(idle), sessions=len(self._sessions))
        return len(idle)

    async def close_all(self) -> None:
        portals = list(self._sessions.values())
        self._sessions.clear()
        for portal in portals:
            await portal.close()
        log.info("sessions_closed", count=len(portals))


# --- Module Notes -----------------------------------------------------------
# All sessions share one httpx.AsyncClient (connection pool); everything else is
# per session so one visitor's identity or cache never leaks into another's.
# Eviction runs whenever a new session is opened (see `api.deps.portal_session`),
# so cookieless traffic cannot grow the registry past one idle window.
