from __future__ import annotations

from typing import Any

from facility_portal.backend.client import BackendClient

TABLE = "users"


class UserRepo:
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def list_all(self) -> list[dict[str, Any]]:
        res = await self._client.table(TABLE).select("*").execute()
        res.raise_for_error()
        return res.data

    async def get(self, user_id: str) -> dict[str, Any]:
        res = await self._client.table(TABLE).select("*").eq("id", user_id).single().execute()
        res.raise_for_error()
        return res.data

    async def get_current(self) -> dict[str, Any] | None:
        # No principal is a valid outcome, not an error.
        principal = await self._client.auth.get_user()
        if not principal:
            return None
        return await self.get(str(principal["id"]))
