"""
facility_portal.models

Input schemas for facility writes and the PPE stock mapping.

Responsibilities:
- Constrain create/update payloads to the facility shape.
- Validate PPE stock as an open mapping of supply name to optional count.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PPEStock(BaseModel):
    model_config = ConfigDict(extra="allow")

    masks: int | None = Field(default=None, ge=0)
    gloves: int | None = Field(default=None, ge=0)
    gowns: int | None = Field(default=None, ge=0)
    shields: int | None = Field(default=None, ge=0)
    sanitizer: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _extra_counts_are_ints(self) -> PPEStock:
        for name, value in (self.model_extra or {}).items():
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"stock for {name!r} must be a non-negative integer or null")
        return self

    def as_payload(self) -> dict[str, int | None]:
        return self.model_dump(exclude_unset=True)


class NewFacility(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    contact_phone: str | None = None
    contact_email: str | None = None
    ppe_stock: PPEStock | None = None

    def as_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class FacilityUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    address: str | None = Field(default=None, min_length=1)
    contact_phone: str | None = None
    contact_email: str | None = None
    ppe_stock: PPEStock | None = None

    def as_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)
