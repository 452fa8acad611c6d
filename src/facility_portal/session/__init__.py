"""
facility_portal.session

Browser-session state package.

Responsibilities:
- Session Store: current identity + resolving flag, kept in sync with auth events.
- Session Registry: one portal session (auth, data client, cache, editor) per cookie.
"""

# Package marker.
