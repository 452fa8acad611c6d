"""
facility_portal.repositories.audit

Repository for the `audit_logs` table.

Responsibilities:
- Query the audit trail by actor, table and recency (read-only).
"""

from __future__ import annotations

from typing import Any

from facility_portal.backend.client import BackendClient
from facility_portal.backend.query import QueryBuilder

TABLE = "audit_logs"


class AuditLogRepo:
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    def query(
        self,
        *,
        user_id: str | None = None,
        table_name: str | None = None,
        limit: int | None = None,
    ) -> QueryBuilder:
        # Newest-first always; filters are optional and combine with AND.
        q = self._client.table(TABLE).select("*").order("created_at", desc=True)
        if user_id:
            q = q.eq("user_id", user_id)
        if table_name:
            q = q.eq("table_name", table_name)
        if limit:
            q = q.limit(limit)
        return q

    async def list_logs(
        self,
        *,
        user_id: str | None = None,
        table_name: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        res = await self.query(user_id=user_id, table_name=table_name, limit=limit).execute()
        res.raise_for_error()
        return res.data


# --- Module Notes -----------------------------------------------------------
# `query()` is split out so the composed filter can be inspected without I/O.
