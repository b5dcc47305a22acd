"""Tests for InventoryService ingredient availability checks."""

import uuid
from decimal import Decimal

import pytest

from bakeflow.exceptions import InsufficientInventoryException
from bakeflow.modules.inventory.service import InventoryService
from bakeflow.modules.order.schemas import OrderItemIn


class TestCheckAvailability:
    """Each line is checked against current stock independently."""

    @pytest.mark.asyncio
    async def test_available_when_stock_covers_every_line(self, db, bakery):
        report = await InventoryService(db).check_availability(
            [
                OrderItemIn(recipe_id=bakery["cake"].id, quantity=20),
                OrderItemIn(recipe_id=bakery["croissant"].id, quantity=10),
            ]
        )

        assert report.available is True
        assert report.shortfalls == []
        assert report.message == "All ingredients available"

    @pytest.mark.asyncio
    async def test_reports_shortfall_with_readable_message(self, db, bakery):
        report = await InventoryService(db).check_availability(
            [OrderItemIn(recipe_id=bakery["croissant"].id, quantity=50)]
        )

        assert report.available is False
        (shortfall,) = report.shortfalls
        assert shortfall.ingredient == "Butter"
        assert shortfall.required == Decimal("5")
        assert shortfall.available == Decimal("2")
        assert report.message == (
            "Insufficient ingredients:\n• Croissant needs 5 Butter, only 2 available"
        )

    @pytest.mark.asyncio
    async def test_unknown_recipes_are_skipped(self, db, bakery):
        report = await InventoryService(db).check_availability(
            [OrderItemIn(recipe_id=uuid.uuid4(), quantity=1000)]
        )
        assert report.available is True

    @pytest.mark.asyncio
    async def test_check_does_not_touch_stock(self, db, bakery):
        await InventoryService(db).check_availability(
            [OrderItemIn(recipe_id=bakery["cake"].id, quantity=10)]
        )
        await db.refresh(bakery["flour"])
        assert bakery["flour"].current_quantity == Decimal("100")


class TestEnsureAvailable:
    """Raising variant used by the order pipeline."""

    @pytest.mark.asyncio
    async def test_raises_with_shortfall_details(self, db, bakery):
        with pytest.raises(InsufficientInventoryException) as exc_info:
            await InventoryService(db).ensure_available(
                [OrderItemIn(recipe_id=bakery["croissant"].id, quantity=30)]
            )

        exc = exc_info.value
        assert exc.code == "INSUFFICIENT_INVENTORY"
        assert exc.message.startswith("Insufficient ingredients:")
        assert exc.details[0]["ingredient"] == "Butter"
        assert exc.details[0]["message"] == "Croissant needs 3 Butter, only 2 available"
