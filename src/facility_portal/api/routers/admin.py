"""
facility_portal.api.routers.admin

Admin-only read endpoints.

Responsibilities:
- List users.
- Query the audit trail by actor, table and limit (newest-first).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from facility_portal.api.deps import portal_session
from facility_portal.auth.deps import require_identity
from facility_portal.auth.models import Role
from facility_portal.repositories.audit import AuditLogRepo
from facility_portal.repositories.users import UserRepo
from facility_portal.session.registry import PortalSession

router = APIRouter(tags=["admin"], dependencies=[Depends(require_identity(Role.admin))])


@router.get("/users")
async def list_users(portal: PortalSession = Depends(portal_session)) -> list[dict[str, Any]]:
    return await portal.cache.fetch(("users",), UserRepo(portal.client).list_all)


@router.get("/audit-logs")
async def list_audit_logs(
    user_id: str | None = None,
    table_name: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=1000),
    portal: PortalSession = Depends(portal_session),
) -> list[dict[str, Any]]:
    repo = AuditLogRepo(portal.client)

    async def _fetch() -> list[dict[str, Any]]:
        return await repo.list_logs(user_id=user_id, table_name=table_name, limit=limit)

    return await portal.cache.fetch(("audit_logs", user_id, table_name, limit), _fetch)


# --- Module Notes -----------------------------------------------------------
# Audit rows are returned as the backend sends them; no reshaping.
