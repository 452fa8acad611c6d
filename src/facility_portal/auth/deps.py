"""
facility_portal.auth.deps

FastAPI dependency functions for route guarding.

Responsibilities:
- Evaluate the route guard against the caller's Session Store.
- Return the authorized `Identity` or raise the matching guard exception.
"""

from __future__ import annotations

from fastapi import Depends

from facility_portal.api.deps import portal_session
from facility_portal.auth.guard import GuardPending, GuardRedirect, GuardState, evaluate_guard
from facility_portal.auth.models import Identity, Role
from facility_portal.observability.logging import get_logger
from facility_portal.session.registry import PortalSession

log = get_logger(__name__)


def require_identity(required_role: Role | None = None):
    def _dep(portal: PortalSession = Depends(portal_session)) -> Identity:
        decision = evaluate_guard(portal.store.snapshot(), required_role)
        log.debug(
            "route_guard",
            state=decision.state.value,
            required_role=required_role.value if required_role else None,
        )
        if decision.state is GuardState.loading:
            raise GuardPending()
        if decision.redirect_to is not None:
            raise GuardRedirect(decision.redirect_to, state=decision.state)
        assert decision.identity is not None
        return decision.identity

    return _dep


# --- Module Notes -----------------------------------------------------------
# Used both as a parameter dependency (to receive the Identity) and in
# `dependencies=[...]` for routes that only need the gate.
