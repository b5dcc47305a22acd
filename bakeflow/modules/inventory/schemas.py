"""Pydantic v2 schemas for ingredient availability checks."""

from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel, Field


class IngredientShortfall(BaseModel):
    recipe_id: uuid.UUID
    recipe: str
    inventory_item_id: uuid.UUID
    ingredient: str
    required: Decimal
    available: Decimal
    unit: str | None = None

    def describe(self) -> str:
        return (
            f"{self.recipe} needs {_fmt(self.required)} {self.ingredient}, "
            f"only {_fmt(self.available)} available"
        )


class AvailabilityReport(BaseModel):
    available: bool
    shortfalls: list[IngredientShortfall] = Field(default_factory=list)

    @property
    def message(self) -> str:
        if self.available:
            return "All ingredients available"
        lines = [f"• {shortfall.describe()}" for shortfall in self.shortfalls]
        return "Insufficient ingredients:\n" + "\n".join(lines)


def _fmt(value: Decimal) -> str:
    # 2.500 -> 2.5, 3.000 -> 3
    normalized = value.normalize()
    if normalized == normalized.to_integral():
        return str(normalized.quantize(Decimal("1")))
    return str(normalized)
