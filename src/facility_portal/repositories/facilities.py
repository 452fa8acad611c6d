"""
facility_portal.repositories.facilities

Repository for the `facilities` table.

Responsibilities:
- List/get/create/update/delete facility rows.
- Replace a facility's PPE stock mapping.
"""

from __future__ import annotations

from typing import Any

from facility_portal.backend.client import BackendClient
from facility_portal.models import FacilityUpdate, NewFacility, PPEStock

TABLE = "facilities"


class FacilityRepo:
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def list_all(self) -> list[dict[str, Any]]:
        res = await self._client.table(TABLE).select("*").execute()
        res.raise_for_error()
        return res.data

    async def get(self, facility_id: str) -> dict[str, Any]:
        res = await self._client.table(TABLE).select("*").eq("id", facility_id).single().execute()
        res.raise_for_error()
        return res.data

    async def create(self, facility: NewFacility) -> dict[str, Any]:
        res = await (
            self._client.table(TABLE).insert(facility.as_payload()).select().single().execute()
        )
        res.raise_for_error()
        return res.data

    async def update(self, facility_id: str, updates: FacilityUpdate) -> dict[str, Any]:
        res = await (
            self._client.table(TABLE)
            .update(updates.as_payload())
            .eq("id", facility_id)
            .select()
            .single()
            .execute()
        )
        res.raise_for_error()
        return res.data

    async def delete(self, facility_id: str) -> None:
        res = await self._client.table(TABLE).delete().eq("id", facility_id).execute()
        res.raise_for_error()

    async def update_ppe_stock(self, facility_id: str, stock: PPEStock) -> dict[str, Any]:
        res = await (
            self._client.table(TABLE)
            .update({"ppe_stock": stock.as_payload()})
            .eq("id", facility_id)
            .select()
            .single()
            .execute()
        )
        res.raise_for_error()
        return res.data
