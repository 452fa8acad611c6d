"""
facility_portal.views.facilities

Facility list/editor view state for one browser session.

Responsibilities:
- Hold the facility form (fields, edit target, open/closed).
- Load the facility collection through the request cache.
- Derive the rows an identity may see and the actions offered per row.
- Run create/update/delete/stock writes as mutations that invalidate the
  facility collection on success.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from facility_portal.auth.models import Identity, can_manage
from facility_portal.models import FacilityUpdate, NewFacility, PPEStock
from facility_portal.observability.logging import get_logger
from facility_portal.query_cache import Mutation, QueryCache
from facility_portal.repositories.facilities import FacilityRepo

log = get_logger(__name__)

FACILITIES_KEY: tuple[str, ...] = ("facilities",)


class FacilityForm(BaseModel):
    name: str = ""
    address: str = ""
    contact_phone: str = ""
    contact_email: str = ""


class FacilityFormPatch(BaseModel):
    name: str | None = None
    address: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None


def visible_facilities(
    rows: list[dict[str, Any]], identity: Identity | None
) -> list[dict[str, Any]]:
    return [row for row in rows if can_manage(identity, row.get("id"))]


class FacilityEditor:
    def __init__(self, *, facilities: FacilityRepo, cache: QueryCache) -> None:
        self._facilities = facilities
        self._cache = cache
        self.form = FacilityForm()
        self.editing_id: str | None = None
        self.is_open = False

        self.create_mutation: Mutation[dict[str, Any]] = Mutation(
            self._facilities.create, on_success=self._after_save
        )
        self.update_mutation: Mutation[dict[str, Any]] = Mutation(
            self._facilities.update, on_success=self._after_save
        )
        self.delete_mutation: Mutation[None] = Mutation(
            self._facilities.delete, on_success=lambda _: self._invalidate()
        )
        self.stock_mutation: Mutation[dict[str, Any]] = Mutation(
            self._facilities.update_ppe_stock, on_success=lambda _: self._invalidate()
        )

    # -- queries -------------------------------------------------------------

    async def load(self) -> list[dict[str, Any]]:
        return await self._cache.fetch(FACILITIES_KEY, self._facilities.list_all)

    # -- form state ----------------------------------------------------------

    def reset(self) -> None:
        self.form = FacilityForm()
        self.editing_id = None
        self.is_open = False

    def open_create(self) -> None:
        self.reset()
        self.is_open = True

    def begin_edit(self, row: dict[str, Any]) -> None:
        self.form = FacilityForm(
            name=row.get("name") or "",
            address=row.get("address") or "",
            contact_phone=row.get("contact_phone") or "",
            contact_email=row.get("contact_email") or "",
        )
        self.editing_id = str(row["id"])
        self.is_open = True

    def set_fields(self, patch: FacilityFormPatch) -> None:
        self.form = self.form.model_copy(update=patch.model_dump(exclude_none=True))

    # -- writes --------------------------------------------------------------

    def _invalidate(self) -> None:
        self._cache.invalidate(FACILITIES_KEY)

    def _after_save(self, _: dict[str, Any]) -> None:
        # Invalidate first, then close the form.
        self._invalidate()
        self.reset()

    async def submit(self) -> dict[str, Any]:
        """
        Create or update from the current form. Raises pydantic.ValidationError
        when name or address is empty, before any backend call.
        """

        values = self.form.model_dump()
        new = NewFacility.model_validate(values)
        if self.editing_id is not None:
            facility_id = self.editing_id
            saved = await self.update_mutation.mutate(
                facility_id, FacilityUpdate.model_validate(values)
            )
            log.info("facility_updated", facility_id=facility_id)
            return saved

        saved = await self.create_mutation.mutate(new)
        log.info("facility_created", facility_id=saved.get("id") if saved else None)
        return saved

    async def delete(self, facility_id: str) -> None:
        await self.delete_mutation.mutate(facility_id)
        log.info("facility_deleted", facility_id=facility_id)

    async def update_ppe_stock(self, facility_id: str, stock: PPEStock) -> dict[str, Any]:
        saved = await self.stock_mutation.mutate(facility_id, stock)
        log.info("ppe_stock_updated", facility_id=facility_id)
        return saved

    # -- rendering -----------------------------------------------------------

    def form_state(self) -> dict[str, Any]:
        return {
            "open": self.is_open,
            "editing_id": self.editing_id,
            "mode": "edit" if self.editing_id is not None else "create",
            "fields": self.form.model_dump(),
        }

    def render(self, rows: list[dict[str, Any]], identity: Identity) -> dict[str, Any]:
        return {
            "can_create": identity.is_admin,
            "facilities": [
                {**row, "can_manage": can_manage(identity, row.get("id"))}
                for row in visible_facilities(rows, identity)
            ],
            "form": self.form_state(),
        }


# --- Module Notes -----------------------------------------------------------
# The list filter and the per-row `can_manage` flag use the same predicate; the
# flag is re-checked per row so a stale cached list never offers foreign rows.
