"""
facility_portal.api

HTTP surface: app factory, dependencies, routers.
"""
