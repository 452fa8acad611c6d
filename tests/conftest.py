"""
tests.conftest

Shared fakes for the hosted backend.

Responsibilities:
- `FakeBackend`: an in-memory stand-in for the backend's REST query API and
  auth API, served through `httpx.MockTransport`.
- Fixtures for settings, the fake backend and a seeded data set.
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Any

import httpx
import jwt
import pytest

from facility_portal.backend.auth import AuthClient
from facility_portal.backend.client import BackendClient
from facility_portal.settings import Settings

TOKEN_SECRET = "test-secret"


def make_token(subject: str, *, ttl: int = 3600) -> str:
    now = int(time.time())
    return jwt.encode(
        {"sub": subject, "iat": now, "exp": now + ttl, "role": "authenticated"},
        TOKEN_SECRET,
        algorithm="HS256",
    )


class FakeBackend:
    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {
            "facilities": [],
            "users": [],
            "audit_logs": [],
        }
        self.accounts: dict[str, tuple[str, str]] = {}
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], tuple[int, dict[str, Any]]] = {}
        self.token_ttl = 3600
        self.refresh_tokens: dict[str, str] = {}
        self.unreachable = False

    # -- setup helpers -------------------------------------------------------

    def add_account(self, *, email: str, password: str, user_row: dict[str, Any]) -> None:
        self.accounts[email] = (password, str(user_row["id"]))
        self.tables["users"].append(dict(user_row))

    def fail(self, method: str, table: str, *, status: int, payload: dict[str, Any]) -> None:
        self.failures[(method, table)] = (status, payload)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def rest_requests(self, table: str, method: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.url.path == f"/rest/v1/{table}" and (method is None or r.method == method)
        ]

    # -- dispatch ------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        if self.unreachable:
            raise httpx.ConnectError("backend unreachable", request=request)
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/auth/v1/"):
            return self._handle_auth(request, path.removeprefix("/auth/v1/"))
        if path.startswith("/rest/v1/"):
            return self._handle_rest(request, path.removeprefix("/rest/v1/"))
        return httpx.Response(404, json={"message": "not found"})

    def _token_response(self, user_id: str) -> httpx.Response:
        refresh = f"refresh-{uuid.uuid4()}"
        self.refresh_tokens[refresh] = user_id
        return httpx.Response(
            200,
            json={
                "access_token": make_token(user_id, ttl=self.token_ttl),
                "refresh_token": refresh,
                "token_type": "bearer",
                "expires_in": self.token_ttl,
                "user": {"id": user_id},
            },
        )

    def _bearer_subject(self, request: httpx.Request) -> str | None:
        header = request.headers.get("authorization", "")
        token = header.removeprefix("Bearer ").strip()
        try:
            claims = jwt.decode(token, TOKEN_SECRET, algorithms=["HS256"])
        except jwt.InvalidTokenError:
            return None
        return str(claims["sub"])

    def _handle_auth(self, request: httpx.Request, endpoint: str) -> httpx.Response:
        if endpoint == "health":
            return httpx.Response(200, json={"name": "auth", "version": "test"})

        if endpoint == "token":
            body = json.loads(request.content or b"{}")
            grant = request.url.params.get("grant_type")
            if grant == "password":
                account = self.accounts.get(body.get("email", ""))
                if account is None or account[0] != body.get("password"):
                    return httpx.Response(
                        400,
                        json={
                            "error": "invalid_grant",
                            "error_description": "Invalid login credentials",
                        },
                    )
                return self._token_response(account[1])
            if grant == "refresh_token":
                user_id = self.refresh_tokens.pop(body.get("refresh_token", ""), None)
                if user_id is None:
                    return httpx.Response(400, json={"error": "invalid_grant"})
                return self._token_response(user_id)
            return httpx.Response(400, json={"error": "unsupported_grant_type"})

        if endpoint == "user":
            subject = self._bearer_subject(request)
            if subject is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json={"id": subject, "aud": "authenticated"})

        if endpoint == "logout":
            return httpx.Response(204)

        return httpx.Response(404, json={"message": "not found"})

    def _handle_rest(self, request: httpx.Request, table: str) -> httpx.Response:
        failure = self.failures.pop((request.method, table), None)
        if failure is not None:
            return httpx.Response(failure[0], json=failure[1])

        rows = self.tables.setdefault(table, [])
        filters: list[tuple[str, str]] = []
        order: tuple[str, bool] | None = None
        limit: int | None = None
        for key, value in request.url.params.multi_items():
            if key == "select":
                continue
            if key == "order":
                column, _, direction = value.partition(".")
                order = (column, direction == "desc")
            elif key == "limit":
                limit = int(value)
            else:
                op, _, operand = value.partition(".")
                assert op == "eq", f"unsupported operator {op}"
                filters.append((key, operand))

        def matches(row: dict[str, Any]) -> bool:
            return all(str(row.get(col)) == val for col, val in filters)

        single = request.headers.get("accept") == "application/vnd.pgrst.object+json"
        wants_rows = "return=representation" in request.headers.get("prefer", "")

        if request.method == "GET":
            selected = [dict(r) for r in rows if matches(r)]
            if order is not None:
                selected.sort(key=lambda r: r.get(order[0]) or "", reverse=order[1])
            if limit is not None:
                selected = selected[:limit]
            return self._rows_response(selected, single=single, status=200)

        if request.method == "POST":
            body = json.loads(request.content)
            new_rows = body if isinstance(body, list) else [body]
            created = []
            for row in new_rows:
                row = dict(row)
                row.setdefault("id", f"{table[0]}{len(rows) + 1}")
                rows.append(row)
                created.append(dict(row))
            if not wants_rows:
                return httpx.Response(201)
            return self._rows_response(created, single=single, status=201)

        if request.method == "PATCH":
            body = json.loads(request.content)
            updated = []
            for row in rows:
                if matches(row):
                    row.update(body)
                    updated.append(dict(row))
            if not wants_rows:
                return httpx.Response(204)
            return self._rows_response(updated, single=single, status=200)

        if request.method == "DELETE":
            self.tables[table] = [r for r in rows if not matches(r)]
            return httpx.Response(204)

        return httpx.Response(405, json={"message": "method not allowed"})

    @staticmethod
    def _rows_response(rows: list[dict[str, Any]], *, single: bool, status: int) -> httpx.Response:
        if not single:
            return httpx.Response(status, json=rows)
        if len(rows) != 1:
            return httpx.Response(
                406,
                json={
                    "code": "PGRST116",
                    "details": f"The result contains {len(rows)} rows",
                    "hint": None,
                    "message": "JSON object requested, multiple (or no) rows returned",
                },
            )
        return httpx.Response(status, json=rows[0])


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="test",
        backend_url="http://backend.test",
        backend_anon_key="anon-test-key",
        query_retries=0,
        query_stale_seconds=60.0,
        session_resolve_timeout=2.0,
    )


@pytest.fixture
def backend() -> FakeBackend:
    fake = FakeBackend()
    fake.tables["facilities"] = [
        {
            "id": "f1",
            "name": "North Clinic",
            "address": "1 North Rd",
            "contact_phone": "555-0101",
            "contact_email": "north@example.org",
            "ppe_stock": {"masks": 100, "gloves": 40},
        },
        {
            "id": "f2",
            "name": "South Clinic",
            "address": "2 South Rd",
            "contact_phone": None,
            "contact_email": None,
            "ppe_stock": {},
        },
    ]
    fake.add_account(
        email="admin@example.org",
        password="admin-pass",
        user_row={"id": "u-admin", "role": "admin", "facility_id": None, "email": "admin@example.org"},
    )
    fake.add_account(
        email="staff@example.org",
        password="staff-pass",
        user_row={"id": "u-staff", "role": "staff", "facility_id": "f2", "email": "staff@example.org"},
    )
    fake.tables["audit_logs"] = [
        {"id": "a1", "user_id": "u1", "table_name": "facilities", "change_type": "insert", "created_at": "2024-01-01T00:00:00Z"},
        {"id": "a2", "user_id": "u1", "table_name": "facilities", "change_type": "update", "created_at": "2024-01-03T00:00:00Z"},
        {"id": "a3", "user_id": "u2", "table_name": "facilities", "change_type": "delete", "created_at": "2024-01-02T00:00:00Z"},
        {"id": "a4", "user_id": "u1", "table_name": "users", "change_type": "update", "created_at": "2024-01-04T00:00:00Z"},
    ]
    return fake


@pytest.fixture
def http(settings: Settings, backend: FakeBackend) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=settings.backend_url, transport=backend.transport())


@pytest.fixture
def client(settings: Settings, http: httpx.AsyncClient) -> BackendClient:
    return BackendClient(settings=settings, http=http, auth=AuthClient(settings=settings, http=http))


# --- Module Notes -----------------------------------------------------------
# The fake implements just enough of the query language (eq/order/limit/select,
# single-object mode, return=representation) for the portal's own queries.
