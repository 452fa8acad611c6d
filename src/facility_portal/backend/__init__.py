"""
facility_portal.backend

Client boundary for the hosted data/auth backend.

Responsibilities:
- Query builder + executor for the backend's REST query API.
- Auth client (sign-in, sign-out, current principal, auth-state events).
- Error type carrying the backend's error payload unchanged.
"""

from facility_portal.backend.auth import AuthClient, AuthEvent, AuthSession, Subscription
from facility_portal.backend.client import BackendClient, create_http_client
from facility_portal.backend.errors import BackendError
from facility_portal.backend.query import PreparedRequest, QueryBuilder, QueryResult

__all__ = [
    "AuthClient",
    "AuthEvent",
    "AuthSession",
    "BackendClient",
    "BackendError",
    "PreparedRequest",
    "QueryBuilder",
    "QueryResult",
    "Subscription",
    "create_http_client",
]
