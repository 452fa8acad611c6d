"""
facility_portal.repositories

Data-access package.

Responsibilities:
- One thin repository per backend table, each taking an explicit `BackendClient`.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories issue exactly one backend request per call and raise the backend's
# error unchanged. Retry policy belongs to the request cache, not here.
