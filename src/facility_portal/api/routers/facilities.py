"""
facility_portal.api.routers.facilities

Facility list/editor endpoints.

Responsibilities:
- Render the ownership-filtered facility list with per-row actions and form state.
- Drive the facility form (open, edit, patch fields, submit, cancel).
- Delete facilities and update PPE stock for facilities the caller can manage.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.status import HTTP_403_FORBIDDEN, HTTP_404_NOT_FOUND, HTTP_409_CONFLICT

from facility_portal.api.deps import portal_session
from facility_portal.auth.deps import require_identity
from facility_portal.auth.models import Identity, Role, can_manage
from facility_portal.models import PPEStock
from facility_portal.session.registry import PortalSession
from facility_portal.views.facilities import FacilityFormPatch

router = APIRouter(prefix="/facilities", tags=["facilities"])


def _ensure_can_manage(identity: Identity, facility_id: str) -> None:
    if not can_manage(identity, facility_id):
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Facility not manageable")


def _ensure_form_open(portal: PortalSession) -> None:
    if not portal.editor.is_open:
        raise HTTPException(status_code=HTTP_409_CONFLICT, detail="No facility form is open")


@router.get("")
async def facilities_view(
    identity: Identity = Depends(require_identity()),
    portal: PortalSession = Depends(portal_session),
) -> dict[str, Any]:
    rows = await portal.editor.load()
    return portal.editor.render(rows, identity)


@router.post("/form", dependencies=[Depends(require_identity(Role.admin))])
async def open_create_form(portal: PortalSession = Depends(portal_session)) -> dict[str, Any]:
    # Only admins are offered "add facility"; others are sent home by the guard.
    portal.editor.open_create()
    return portal.editor.form_state()


@router.patch("/form", dependencies=[Depends(require_identity())])
async def patch_form(
    body: FacilityFormPatch,
    portal: PortalSession = Depends(portal_session),
) -> dict[str, Any]:
    _ensure_form_open(portal)
    portal.editor.set_fields(body)
    return portal.editor.form_state()


@router.post("/form/submit")
async def submit_form(
    identity: Identity = Depends(require_identity()),
    portal: PortalSession = Depends(portal_session),
) -> dict[str, Any]:
    editor = portal.editor
    _ensure_form_open(portal)
    if editor.editing_id is not None:
        _ensure_can_manage(identity, editor.editing_id)
    elif not identity.is_admin:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Only admins add facilities")

    try:
        saved = await editor.submit()
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False)) from e
    return {"facility": saved, "form": editor.form_state()}


@router.post("/form/cancel", dependencies=[Depends(require_identity())])
async def cancel_form(portal: PortalSession = Depends(portal_session)) -> dict[str, Any]:
    portal.editor.reset()
    return portal.editor.form_state()


@router.post("/{facility_id}/edit")
async def edit_facility(
    facility_id: str,
    identity: Identity = Depends(require_identity()),
    portal: PortalSession = Depends(portal_session),
) -> dict[str, Any]:
    _ensure_can_manage(identity, facility_id)
    rows = await portal.editor.load()
    row = next((r for r in rows if str(r.get("id")) == facility_id), None)
    if row is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Facility not found")
    portal.editor.begin_edit(row)
    return portal.editor.form_state()


@router.delete("/{facility_id}")
async def delete_facility(
    facility_id: str,
    identity: Identity = Depends(require_identity()),
    portal: PortalSession = Depends(portal_session),
) -> dict[str, Any]:
    _ensure_can_manage(identity, facility_id)
    await portal.editor.delete(facility_id)
    return {"deleted": facility_id}


@router.put("/{facility_id}/ppe-stock")
async def update_ppe_stock(
    facility_id: str,
    body: PPEStock,
    identity: Identity = Depends(require_identity()),
    portal: PortalSession = Depends(portal_session),
) -> dict[str, Any]:
    _ensure_can_manage(identity, facility_id)
    return await portal.editor.update_ppe_stock(facility_id, body)


# --- Module Notes -----------------------------------------------------------
# The 403s here gate what the portal offers; row-level security in the backend
# is the real enforcement.
