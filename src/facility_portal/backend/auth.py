"""
facility_portal.backend.auth

Auth client for the backend's auth API.

Responsibilities:
- Hold the current auth session (access/refresh tokens) for one browser session.
- Sign in with password, sign out, refresh expired access tokens.
- Resolve the current principal (`get_user`).
- Publish auth-state changes to subscribers (`on_auth_state_change`).
"""

from __future__ import annotations

import enum
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from facility_portal.auth.jwt import TokenClaimsError, is_expired, read_claims
from facility_portal.backend.errors import BackendError
from facility_portal.observability.logging import get_logger
from facility_portal.settings import Settings

log = get_logger(__name__)


class AuthEvent(enum.StrEnum):
    signed_in = "SIGNED_IN"
    signed_out = "SIGNED_OUT"
    token_refreshed = "TOKEN_REFRESHED"


@dataclass(frozen=True, slots=True)
class AuthSession:
    access_token: str
    refresh_token: str
    user_id: str
    expires_at: int | None = None

    @classmethod
    def from_token_response(cls, payload: dict[str, Any]) -> AuthSession:
        access_token = str(payload["access_token"])
        try:
            claims = read_claims(access_token)
        except TokenClaimsError:
            claims = {}

        expires_at = payload.get("expires_at") or claims.get("exp")
        if expires_at is None and payload.get("expires_in") is not None:
            expires_at = int(time.time()) + int(payload["expires_in"])

        user = payload.get("user") or {}
        return cls(
            access_token=access_token,
            refresh_token=str(payload.get("refresh_token") or ""),
            user_id=str(user.get("id") or claims.get("sub") or ""),
            expires_at=int(expires_at) if expires_at is not None else None,
        )

    @property
    def expired(self) -> bool:
        return is_expired(self.expires_at)


AuthCallback = Callable[[AuthEvent, AuthSession | None], Awaitable[None]]


class Subscription:
    """Handle returned by `AuthClient.on_auth_state_change`."""

    def __init__(self, auth: AuthClient, callback: AuthCallback) -> None:
        self.id = str(uuid.uuid4())
        self.callback = callback
        self._auth = auth

    def unsubscribe(self) -> None:
        self._auth._remove_subscription(self.id)


class AuthClient:
    def __init__(self, *, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http
        self._session: AuthSession | None = None
        self._subscriptions: dict[str, Subscription] = {}

    @property
    def session(self) -> AuthSession | None:
        return self._session

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        sub = Subscription(self, callback)
        self._subscriptions[sub.id] = sub
        return sub

    def _remove_subscription(self, subscription_id: str) -> None:
        self._subscriptions.pop(subscription_id, None)

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self._settings.backend_anon_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _notify(self, event: AuthEvent, session: AuthSession | None) -> None:
        log.info("auth_state_changed", auth_event=event.value, has_session=session is not None)
        # Snapshot: callbacks may unsubscribe while we iterate.
        for sub in list(self._subscriptions.values()):
            await sub.callback(event, session)

    async def sign_in_with_password(self, *, email: str, password: str) -> AuthSession:
        r = await self._http.post(
            "/auth/v1/token",
            params={"grant_type": "password"},
            headers=self._headers(),
            json={"email": email, "password": password},
        )
        if not r.is_success:
            raise BackendError.from_response(r)
        self._session = AuthSession.from_token_response(r.json())
        await self._notify(AuthEvent.signed_in, self._session)
        return self._session

    async def refresh_session(self) -> AuthSession | None:
        current = self._session
        if current is None or not current.refresh_token:
            return None
        r = await self._http.post(
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            headers=self._headers(),
            json={"refresh_token": current.refresh_token},
        )
        if not r.is_success:
            log.warning("session_refresh_failed", status=r.status_code)
            self._session = None
            await self._notify(AuthEvent.signed_out, None)
            return None
        self._session = AuthSession.from_token_response(r.json())
        await self._notify(AuthEvent.token_refreshed, self._session)
        return self._session

    async def access_token(self) -> str | None:
        session = self._session
        if session is None:
            return None
        if session.expired:
            session = await self.refresh_session()
        return session.access_token if session is not None else None

    async def get_user(self) -> dict[str, Any] | None:
        """
        Current principal as reported by the backend, or None when there is no
        session or the backend rejects it.
        """

        token = await self.access_token()
        if token is None:
            return None
        r = await self._http.get("/auth/v1/user", headers=self._headers(token))
        if not r.is_success:
            log.warning("get_user_rejected", status=r.status_code)
            return None
        return r.json()

    async def sign_out(self) -> None:
        session = self._session
        if session is not None:
            r = await self._http.post(
                "/auth/v1/logout", headers=self._headers(session.access_token)
            )
            if not r.is_success:
                # The local session is dropped regardless; the token expires on its own.
                log.warning("sign_out_rejected", status=r.status_code)
        self._session = None
        await self._notify(AuthEvent.signed_out, None)

    async def health(self) -> dict[str, Any]:
        r = await self._http.get("/auth/v1/health", headers=self._headers())
        if not r.is_success:
            raise BackendError.from_response(r)
        return r.json()


# --- Module Notes -----------------------------------------------------------
# One AuthClient exists per browser session (see `session.registry`); the
# underlying httpx.AsyncClient is shared across all of them.
