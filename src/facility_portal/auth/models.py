"""
facility_portal.auth.models

Identity domain models.

Responsibilities:
- Define roles and the authenticated identity type (`Identity`).
- Provide the single facility ownership predicate (`can_manage`).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class Role(enum.StrEnum):
    admin = "admin"
    staff = "staff"
    viewer = "viewer"


@dataclass(frozen=True, slots=True)
class Identity:
    """
    The user row backing the authenticated principal.
    """

    id: str
    role: Role
    facility_id: str | None = None
    row: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin

    def satisfies(self, required_role: Role | None) -> bool:
        # admin satisfies every role requirement.
        if required_role is None or self.is_admin:
            return True
        return self.role is required_role

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Identity:
        try:
            role = Role(str(row.get("role", "")).strip().lower())
        except ValueError:
            # Unknown roles map to viewer.
            role = Role.viewer
        facility_id = row.get("facility_id")
        return cls(
            id=str(row["id"]),
            role=role,
            facility_id=str(facility_id) if facility_id is not None else None,
            row=dict(row),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            **self.row,
            "id": self.id,
            "role": self.role.value,
            "facility_id": self.facility_id,
        }


def can_manage(identity: Identity | None, facility_id: Any) -> bool:
    """
    Ownership rule shared by the facility list filter and the per-row actions:
    admins manage every facility, everyone else only their own.
    """

    if identity is None:
        return False
    if identity.is_admin:
        return True
    return identity.facility_id is not None and identity.facility_id == str(facility_id)


# --- Module Notes -----------------------------------------------------------
# `can_manage` gates what the portal offers; the backend's row-level security is
# what actually enforces it.
