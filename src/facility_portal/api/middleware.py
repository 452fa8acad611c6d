from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """
    Owns the browser-session cookie. Sets it when `portal_session` opened a new
    session (including on redirects and error responses produced by exception
    handlers) and deletes it when the request closed the session.
    """

    def __init__(self, app, *, cookie_name: str, secure: bool = False) -> None:
        super().__init__(app)
        self._cookie_name = cookie_name
        self._secure = secure

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        if getattr(request.state, "session_closed", False):
            response.delete_cookie(self._cookie_name, path="/")
            return response

        sid = getattr(request.state, "issued_session_id", None)
        if sid:
            response.set_cookie(
                self._cookie_name,
                sid,
                httponly=True,
                samesite="lax",
                secure=self._secure,
                path="/",
            )
        return response
