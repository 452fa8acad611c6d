from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from facility_portal.auth.deps import require_identity
from facility_portal.auth.models import Identity

router = APIRouter(tags=["home"])


@router.get("/")
async def home(identity: Identity = Depends(require_identity())) -> dict[str, Any]:
    links = {"facilities": "/facilities"}
    if identity.is_admin:
        links.update({"users": "/users", "audit_logs": "/audit-logs"})
    return {"identity": identity.as_dict(), "links": links}
