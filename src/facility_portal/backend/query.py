"""
facility_portal.backend.query

Query builder for the backend's REST query API.

Responsibilities:
- Compose select/insert/update/delete requests with equality filters,
  ordering, limits and single-row mode.
- Expose the prepared request for inspection, then execute it through the
  owning `BackendClient` and return `{data, error}` without raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from facility_portal.backend.errors import BackendError

if TYPE_CHECKING:
    from facility_portal.backend.client import BackendClient

_SINGLE_OBJECT = "application/vnd.pgrst.object+json"


@dataclass(frozen=True, slots=True)
class PreparedRequest:
    method: str
    table: str
    params: tuple[tuple[str, str], ...]
    headers: dict[str, str] = field(default_factory=dict)
    json: Any = None

    def param(self, name: str) -> str | None:
        for key, value in self.params:
            if key == name:
                return value
        return None


@dataclass(frozen=True, slots=True)
class QueryResult:
    data: Any
    error: BackendError | None
    status: int

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class QueryBuilder:
    """
    Fluent builder mirroring the backend client's chaining style:

        await client.table("facilities").select("*").eq("id", fid).single().execute()
    """

    def __init__(self, client: BackendClient, table: str) -> None:
        self._client = client
        self._table = table
        self._method = "GET"
        self._columns: str | None = None
        self._body: Any = None
        self._filters: list[tuple[str, str]] = []
        self._single = False

    def select(self, columns: str = "*") -> QueryBuilder:
        # On writes, select() asks for the affected rows back.
        self._columns = columns
        return self

    def insert(self, values: dict[str, Any] | list[dict[str, Any]]) -> QueryBuilder:
        self._method = "POST"
        self._body = values
        return self

    def update(self, values: dict[str, Any]) -> QueryBuilder:
        self._method = "PATCH"
        self._body = values
        return self

    def delete(self) -> QueryBuilder:
        self._method = "DELETE"
        return self

    def eq(self, column: str, value: Any) -> QueryBuilder:
        self._filters.append((column, f"eq.{value}"))
        return self

    def order(self, column: str, *, desc: bool = False) -> QueryBuilder:
        self._filters.append(("order", f"{column}.{'desc' if desc else 'asc'}"))
        return self

    def limit(self, count: int) -> QueryBuilder:
        self._filters.append(("limit", str(int(count))))
        return self

    def single(self) -> QueryBuilder:
        self._single = True
        return self

    def build(self) -> PreparedRequest:
        params: list[tuple[str, str]] = []
        headers: dict[str, str] = {}

        if self._method == "GET":
            params.append(("select", self._columns or "*"))
        else:
            if self._columns is not None:
                params.append(("select", self._columns))
                headers["Prefer"] = "return=representation"
            else:
                headers["Prefer"] = "return=minimal"
        params.extend(self._filters)

        if self._single:
            headers["Accept"] = _SINGLE_OBJECT

        return PreparedRequest(
            method=self._method,
            table=self._table,
            params=tuple(params),
            headers=headers,
            json=self._body,
        )

    async def execute(self) -> QueryResult:
        prepared = self.build()
        response = await self._client.send(prepared)
        if response.is_success:
            data = response.json() if response.content else None
            return QueryResult(data=data, error=None, status=response.status_code)
        return QueryResult(
            data=None,
            error=BackendError.from_response(response),
            status=response.status_code,
        )


# --- Module Notes -----------------------------------------------------------
# Filters are kept in call order so the outgoing query string is predictable.
# The builder never raises for backend-reported errors; repositories decide.
