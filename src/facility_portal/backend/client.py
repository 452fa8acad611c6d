"""
facility_portal.backend.client

Injectable handle for the hosted backend.

Responsibilities:
- Own the per-session auth client and attach credentials to every query.
- Send prepared queries to the REST query API.
- Build the shared httpx client from settings.
"""

from __future__ import annotations

import httpx

from facility_portal.backend.auth import AuthClient
from facility_portal.backend.query import PreparedRequest, QueryBuilder
from facility_portal.settings import Settings


def create_http_client(settings: Settings, **kwargs) -> httpx.AsyncClient:
    # kwargs lets tests inject a MockTransport.
    return httpx.AsyncClient(
        base_url=settings.backend_url,
        timeout=settings.backend_timeout_seconds,
        **kwargs,
    )


class BackendClient:
    def __init__(
        self,
        *,
        settings: Settings,
        http: httpx.AsyncClient,
        auth: AuthClient | None = None,
    ) -> None:
        self._settings = settings
        self._http = http
        self.auth = auth or AuthClient(settings=settings, http=http)

    def table(self, name: str) -> QueryBuilder:
        return QueryBuilder(self, name)

    async def _headers(self) -> dict[str, str]:
        # Anonymous requests use the anon key as bearer; row-level security decides.
        token = await self.auth.access_token()
        return {
            "apikey": self._settings.backend_anon_key,
            "Authorization": f"Bearer {token or self._settings.backend_anon_key}",
        }

    async def send(self, prepared: PreparedRequest) -> httpx.Response:
        headers = await self._headers()
        headers.update(prepared.headers)
        return await self._http.request(
            prepared.method,
            f"/rest/v1/{prepared.table}",
            params=list(prepared.params),
            headers=headers,
            json=prepared.json,
        )


# --- Module Notes -----------------------------------------------------------
# Transport errors (httpx.HTTPError) are not translated here; the API layer maps
# them to 502.
