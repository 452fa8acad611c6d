"""
facility_portal.auth.guard

Route guard state machine.

Responsibilities:
- Map `{resolving, identity, required_role}` to Loading / Unauthenticated /
  Unauthorized / Authorized, with the redirect target for each outcome.
- Define the exceptions the API layer renders as placeholder or redirect.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from facility_portal.auth.models import Identity, Role
from facility_portal.session.store import SessionState

LOGIN_PATH = "/auth"
ROOT_PATH = "/"


class GuardState(enum.StrEnum):
    loading = "loading"
    unauthenticated = "unauthenticated"
    unauthorized = "unauthorized"
    authorized = "authorized"


@dataclass(frozen=True, slots=True)
class GuardDecision:
    state: GuardState
    identity: Identity | None = None
    redirect_to: str | None = None


class GuardPending(Exception):
    """Identity is still resolving; render a placeholder."""


class GuardRedirect(Exception):
    def __init__(self, location: str, *, state: GuardState) -> None:
        self.location = location
        self.state = state
        super().__init__(f"{state.value}: redirect to {location}")


def evaluate_guard(session: SessionState, required_role: Role | None = None) -> GuardDecision:
    if session.resolving:
        return GuardDecision(GuardState.loading)

    identity = session.identity
    if identity is None:
        return GuardDecision(GuardState.unauthenticated, redirect_to=LOGIN_PATH)

    if not identity.satisfies(required_role):
        return GuardDecision(GuardState.unauthorized, identity=identity, redirect_to=ROOT_PATH)

    return GuardDecision(GuardState.authorized, identity=identity)
