"""
facility_portal.api.app

FastAPI app factory for the Facility Portal service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (backend http client, session registry).
- Render backend errors and route-guard outcomes.
"""

from __future__ import annotations

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.status import HTTP_202_ACCEPTED, HTTP_303_SEE_OTHER, HTTP_502_BAD_GATEWAY

from facility_portal import __version__
from facility_portal.api.middleware import SessionCookieMiddleware
from facility_portal.api.routers.admin import router as admin_router
from facility_portal.api.routers.auth import router as auth_router
from facility_portal.api.routers.facilities import router as facilities_router
from facility_portal.api.routers.health import router as health_router
from facility_portal.api.routers.home import router as home_router
from facility_portal.auth.guard import GuardPending, GuardRedirect
from facility_portal.backend.client import create_http_client
from facility_portal.backend.errors import BackendError
from facility_portal.observability.logging import configure_logging, get_logger
from facility_portal.observability.middleware import RequestContextMiddleware
from facility_portal.session.registry import SessionRegistry
from facility_portal.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    app = FastAPI(
        title="Facility Portal",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings

    # Cookie middleware sits inside the request-context one so its logs carry request ids.
    app.add_middleware(
        SessionCookieMiddleware,
        cookie_name=settings.session_cookie_name,
        secure=settings.env == "prod",
    )
    app.add_middleware(RequestContextMiddleware, session_cookie=settings.session_cookie_name)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(home_router)
    app.include_router(facilities_router)
    app.include_router(admin_router)

    @app.exception_handler(BackendError)
    async def _backend_error(_: Request, exc: BackendError) -> JSONResponse:
        # The backend's payload is passed through unchanged.
        status = exc.status if 400 <= exc.status < 600 else HTTP_502_BAD_GATEWAY
        log.warning("backend_error", status=exc.status, message=exc.message)
        return JSONResponse({"error": exc.payload}, status_code=status)

    @app.exception_handler(httpx.HTTPError)
    async def _transport_error(_: Request, exc: httpx.HTTPError) -> JSONResponse:
        log.error("backend_unreachable", error=str(exc))
        return JSONResponse({"error": {"message": str(exc)}}, status_code=HTTP_502_BAD_GATEWAY)

    @app.exception_handler(GuardRedirect)
    async def _guard_redirect(_: Request, exc: GuardRedirect) -> RedirectResponse:
        return RedirectResponse(exc.location, status_code=HTTP_303_SEE_OTHER)

    @app.exception_handler(GuardPending)
    async def _guard_pending(_: Request, __: GuardPending) -> JSONResponse:
        return JSONResponse(
            {"state": "loading"},
            status_code=HTTP_202_ACCEPTED,
            headers={"Retry-After": "1"},
        )

    @app.on_event("startup")
    async def _startup() -> None:
        log.info("startup", env=settings.env, backend_url=settings.backend_url)
        extra = {"transport": transport} if transport is not None else {}
        http = create_http_client(settings, **extra)
        app.state.http = http
        app.state.registry = SessionRegistry(settings=settings, http=http)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        registry = getattr(app.state, "registry", None)
        if registry is not None:
            await registry.close_all()
        http = getattr(app.state, "http", None)
        if http is not None:
            await http.aclose()
        log.info("shutdown")

    return app


# --- Module Notes -----------------------------------------------------------
# `transport` exists so tests can point the backend client at an
# httpx.MockTransport without touching the network.
