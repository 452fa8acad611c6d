"""
facility_portal.views

View-state package: form state and list derivation that routers render.
"""

# Package marker.
