"""
facility_portal.backend.errors

Error raised for backend-reported failures.

Responsibilities:
- Carry the backend's JSON error body unchanged, plus the HTTP status.
"""

from __future__ import annotations

from typing import Any

import httpx


class BackendError(Exception):
    """
    A failure reported by the backend (query API or auth API).

    `payload` is the backend's error body as returned; callers must not rely on
    any key beyond what the backend documents (`message`, `code`, `details`,
    `hint` for queries; `msg`/`error_description` for auth).
    """

    def __init__(self, payload: dict[str, Any], *, status: int) -> None:
        self.payload = payload
        self.status = status
        super().__init__(self.message)

    @property
    def message(self) -> str:
        for key in ("message", "msg", "error_description", "error"):
            value = self.payload.get(key)
            if value:
                return str(value)
        return f"backend error (HTTP {self.status})"

    @classmethod
    def from_response(cls, response: httpx.Response) -> BackendError:
        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}
        if not isinstance(body, dict):
            body = {"message": body}
        return cls(body, status=response.status_code)
