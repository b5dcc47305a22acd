"""Ingredient availability checks against on-hand inventory."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from bakeflow.exceptions import InsufficientInventoryException
from bakeflow.modules.catalog.service import CatalogService
from bakeflow.modules.inventory.schemas import AvailabilityReport, IngredientShortfall
from bakeflow.modules.order.schemas import OrderItemIn

logger = logging.getLogger(__name__)


class InventoryService:
    """Read-only view of ingredient stock. Never reserves or deducts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog = CatalogService(db)

    async def check_availability(self, items: Sequence[OrderItemIn]) -> AvailabilityReport:
        """Compare each line's ingredient needs with current stock.

        Lines are checked independently; unknown recipes are skipped.
        """
        recipes = await self.catalog.get_recipes(item.recipe_id for item in items)
        shortfalls: list[IngredientShortfall] = []

        for item in items:
            recipe = recipes.get(item.recipe_id)
            if recipe is None:
                logger.debug("Skipping availability check for unknown recipe %s", item.recipe_id)
                continue

            for ingredient in recipe.ingredients:
                stock = ingredient.inventory_item
                required = Decimal(ingredient.quantity_required) * item.quantity
                on_hand = Decimal(stock.current_quantity)
                if on_hand < required:
                    shortfalls.append(
                        IngredientShortfall(
                            recipe_id=recipe.id,
                            recipe=recipe.recipe_name,
                            inventory_item_id=stock.id,
                            ingredient=stock.item_name,
                            required=required,
                            available=on_hand,
                            unit=stock.unit_of_measurement,
                        )
                    )

        return AvailabilityReport(available=not shortfalls, shortfalls=shortfalls)

    async def ensure_available(self, items: Sequence[OrderItemIn]) -> AvailabilityReport:
        report = await self.check_availability(items)
        if not report.available:
            logger.info("Order rejected: %d ingredient shortfall(s)", len(report.shortfalls))
            raise InsufficientInventoryException(
                report.message,
                details=[
                    {
                        "field": "ingredient",
                        "message": shortfall.describe(),
                        "recipe": shortfall.recipe,
                        "ingredient": shortfall.ingredient,
                        "required": str(shortfall.required),
                        "available": str(shortfall.available),
                    }
                    for shortfall in report.shortfalls
                ],
            )
        return report
