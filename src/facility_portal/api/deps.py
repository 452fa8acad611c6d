"""
facility_portal.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and the session registry.
- Resolve (or open) the caller's portal session from the session cookie.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, Request

from facility_portal.observability.middleware import session_tag
from facility_portal.session.registry import PortalSession, SessionRegistry
from facility_portal.settings import Settings


def settings_dep(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


def registry_from_app(request: Request) -> SessionRegistry:
    # The registry is created on app startup in `facility_portal.api.app.create_app`.
    return request.app.state.registry  # type: ignore[attr-defined]


async def portal_session(
    request: Request,
    registry: SessionRegistry = Depends(registry_from_app),
    settings: Settings = Depends(settings_dep),
) -> PortalSession:
    sid = request.cookies.get(settings.session_cookie_name)
    portal = registry.get(sid) if sid else None
    if portal is None:
        await registry.evict_idle()
        portal = registry.open()
        # SessionCookieMiddleware attaches the cookie to whatever response goes out.
        request.state.issued_session_id = portal.sid

    structlog.contextvars.bind_contextvars(session=session_tag(portal.sid))
    await portal.store.wait_resolved(settings.session_resolve_timeout)
    return portal


# --- Module Notes -----------------------------------------------------------
# A timed-out wait is not an error: the guard then reports Loading.
