"""Pydantic v2 schemas for waste prevention, alerts and collections."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from bakeflow.models.enums import TrackingStatus


class TrackingUpdate(BaseModel):
    tracking_id: uuid.UUID
    previous_quantity: Decimal
    new_quantity: Decimal
    quantity_sold: Decimal
    status: TrackingStatus


class RecipeWastePrevention(BaseModel):
    recipe_id: uuid.UUID
    recipe_name: str | None = None
    new_quantity: int
    waste_prevented_quantity: Decimal
    estimated_savings: Decimal
    updated_tracking_records: list[TrackingUpdate] = Field(default_factory=list)


class WastePreventionSummary(BaseModel):
    updated_items: list[RecipeWastePrevention] = Field(default_factory=list)
    total_savings: Decimal = Decimal("0")
    collections_updated: list[uuid.UUID] = Field(default_factory=list)
    collections_cancelled: list[uuid.UUID] = Field(default_factory=list)

    @property
    def waste_prevented(self) -> bool:
        return bool(self.updated_items)

    @property
    def total_prevented_quantity(self) -> Decimal:
        return sum((item.waste_prevented_quantity for item in self.updated_items), Decimal("0"))


class WasteAlert(BaseModel):
    tracking_id: uuid.UUID
    merchant_id: uuid.UUID
    merchant_name: str
    recipe_id: uuid.UUID
    recipe_name: str
    quantity: Decimal
    expiration_date: date
    days_until_expiration: int
    status: TrackingStatus
    estimated_waste_value: Decimal
    collection_required: bool


class WasteItem(BaseModel):
    """One line of a waste collection, persisted as JSON on the collection."""

    recipe_id: uuid.UUID
    recipe_name: str | None = None
    quantity: Decimal = Field(..., ge=0)
    expiration_date: date | None = None
    condition: str = "expired"


class WasteCollectionResult(BaseModel):
    collection_id: uuid.UUID
    merchant_id: uuid.UUID
    credit_amount: Decimal
    items_collected: int
    tracking_rows_collected: int = 0
