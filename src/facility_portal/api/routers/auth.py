"""
facility_portal.api.routers.auth

Public sign-in endpoints.

Responsibilities:
- Report the caller's sign-in status (`GET /auth`).
- Password sign-in and sign-out against the backend's auth API.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field
from starlette.status import HTTP_303_SEE_OTHER

from facility_portal.api.deps import portal_session, registry_from_app
from facility_portal.auth.guard import LOGIN_PATH, ROOT_PATH
from facility_portal.session.registry import PortalSession, SessionRegistry

router = APIRouter(prefix=LOGIN_PATH, tags=["auth"])


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1)


@router.get("")
async def auth_status(portal: PortalSession = Depends(portal_session)) -> dict[str, Any]:
    state = portal.store.snapshot()
    return {
        "resolving": state.resolving,
        "authenticated": state.identity is not None,
        "identity": state.identity.as_dict() if state.identity else None,
    }


@router.post("/login")
async def login(
    body: LoginRequest,
    portal: PortalSession = Depends(portal_session),
) -> RedirectResponse:
    # The SIGNED_IN event re-resolves the identity before this returns.
    await portal.client.auth.sign_in_with_password(email=body.email, password=body.password)
    return RedirectResponse(ROOT_PATH, status_code=HTTP_303_SEE_OTHER)


@router.post("/logout")
async def logout(
    request: Request,
    portal: PortalSession = Depends(portal_session),
    registry: SessionRegistry = Depends(registry_from_app),
) -> RedirectResponse:
    await portal.client.auth.sign_out()
    # The whole portal session goes: store, cache and editor state.
    await registry.close(portal.sid)
    request.state.session_closed = True
    return RedirectResponse(LOGIN_PATH, status_code=HTTP_303_SEE_OTHER)
