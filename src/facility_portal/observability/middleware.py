"""
facility_portal.observability.middleware

HTTP middleware for request-scoped logging context.

Responsibilities:
- Generate/propagate request IDs.
- Bind request metadata (and the browser session, when the cookie is present)
  into structlog contextvars.
"""

from __future__ import annotations

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


def session_tag(sid: str) -> str:
    # Log a prefix only; the full id is a bearer credential for the session.
    return sid[:8]


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Ensures every request has a request id
    - Binds request-scoped contextvars for structured logs, including a tag for
      the caller's portal session
    """

    def __init__(self, app, *, session_cookie: str | None = None) -> None:
        super().__init__(app)
        self._session_cookie = session_cookie

    async def dispatch(self, request: Request, call_next) -> Response:
        # Prefer a caller-provided request id for trace continuity; otherwise generate one.
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        sid = request.cookies.get(self._session_cookie) if self._session_cookie else None
        if sid:
            structlog.contextvars.bind_contextvars(session=session_tag(sid))
        try:
            response: Response = await call_next(request)
        finally:
            # Avoid leaking context across requests under async concurrency.
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response


# --- Module Notes -----------------------------------------------------------
# Sessions opened during the request (no cookie yet) are tagged by
# `api.deps.portal_session` once the new id exists.
