"""
facility_portal.auth

Identity and authorization package.

Responsibilities:
- Identity model, roles and the facility ownership predicate.
- Access-token claim reading.
- Route guard state machine and its FastAPI dependency.
"""

# Package marker.
