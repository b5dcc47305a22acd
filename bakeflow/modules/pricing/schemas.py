"""Pydantic v2 schemas for resolved prices and order pricing breakdowns."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from bakeflow.models.enums import PriceTier


class ResolvedPrice(BaseModel):
    unit_price: Decimal
    tier: PriceTier
    base_cost: Decimal
    markup_percentage: Decimal
    effective_date: date
    merchant_specific: bool = False


class PricedLine(BaseModel):
    recipe_id: uuid.UUID
    recipe_name: str | None = None
    quantity: int
    list_price: Decimal
    unit_price: Decimal
    line_total: Decimal
    discount_applied: bool
    price_tier: PriceTier


class OrderPricing(BaseModel):
    total: Decimal
    breakdown: list[PricedLine] = Field(default_factory=list)
    discount_amount: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")


class PricingMatrixRow(BaseModel):
    recipe_id: uuid.UUID
    recipe_name: str
    base_cost: Decimal
    merchant_price: Decimal
    markup_percentage: Decimal
    price_tier: PriceTier
    effective_date: date
    expiration_date: date | None = None


class PricingUpdateItem(BaseModel):
    recipe_id: uuid.UUID
    price: Decimal = Field(..., gt=0)
    tier: PriceTier = PriceTier.STANDARD
    effective_date: date | None = None
    expiration_date: date | None = None


class BulkPricingResult(BaseModel):
    success: bool
    results: list[dict] = Field(default_factory=list)
    errors: list[dict] = Field(default_factory=list)
    total_updated: int = 0
