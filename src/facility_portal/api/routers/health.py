"""
facility_portal.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) that checks the backend's auth API.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from facility_portal.api.deps import settings_dep
from facility_portal.backend.auth import AuthClient
from facility_portal.settings import Settings

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request, settings: Settings = Depends(settings_dep)) -> dict[str, str]:
    # Readiness: the backend answers. Failures surface through the BackendError handler.
    await AuthClient(settings=settings, http=request.app.state.http).health()
    return {"status": "ready"}
