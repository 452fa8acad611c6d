"""
facility_portal.auth.jwt

Access-token claim helpers.

Responsibilities:
- Read claims (sub/exp) from backend-issued JWTs.

Note:
- Signature verification belongs to the backend, which issued the token and
  checks it on every request. The portal only needs the subject and expiry to
  decide when to refresh, so claims are read without verification.
"""

from __future__ import annotations

import time
from typing import Any

import jwt
from jwt import InvalidTokenError


class TokenClaimsError(Exception):
    pass


def read_claims(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except InvalidTokenError as e:
        raise TokenClaimsError(str(e)) from e


def is_expired(expires_at: int | None, *, leeway: int = 10) -> bool:
    if expires_at is None:
        return False
    return time.time() >= expires_at - leeway
