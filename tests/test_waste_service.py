"""Tests for WasteService: FIFO reorder reconciliation, alerts and collections."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from bakeflow.clock import next_weekday
from bakeflow.exceptions import InvalidStateTransitionException, NotFoundException
from bakeflow.models.enums import TrackingStatus, WasteCollectionStatus
from bakeflow.models.waste_collection import WasteCollection
from bakeflow.modules.events.outbox_service import OutboxService
from bakeflow.modules.order.schemas import OrderItemIn
from bakeflow.modules.waste.constants import (
    EVENT_WASTE_COLLECTION_SCHEDULED,
    EVENT_WASTE_CREDIT_NOTE,
)
from bakeflow.modules.waste.schemas import WasteItem
from bakeflow.modules.waste.service import WasteService


def _collection(merchant, scheduled_on, items, status=WasteCollectionStatus.SCHEDULED):
    return WasteCollection(
        merchant_id=merchant.id,
        scheduled_collection_date=scheduled_on,
        status=status,
        waste_items=[
            {"recipe_id": str(recipe.id), "recipe_name": recipe.recipe_name, "quantity": quantity}
            for recipe, quantity in items
        ],
        total_waste_value=Decimal("0"),
    )


async def _collections_for(db, merchant):
    result = await db.execute(
        select(WasteCollection).where(WasteCollection.merchant_id == merchant.id)
    )
    return list(result.scalars().all())


class TestTrackingStatus:
    """Expiry classification of stock that still has quantity."""

    @pytest.mark.asyncio
    async def test_status_by_days_left(self, db, settings, today):
        service = WasteService(db, settings)
        assert service.tracking_status(today - timedelta(days=1), today) == TrackingStatus.EXPIRED
        assert service.tracking_status(today, today) == TrackingStatus.WARNING
        assert service.tracking_status(today + timedelta(days=1), today) == TrackingStatus.WARNING
        assert service.tracking_status(today + timedelta(days=2), today) == TrackingStatus.FRESH


class TestProcessReorder:
    """Oldest stock sells through first."""

    @pytest.mark.asyncio
    async def test_fifo_consumes_oldest_delivery_first(self, db, seed, bakery, settings, today):
        merchant, cake = bakery["merchant"], bakery["cake"]
        day_one = await seed.tracking(merchant, cake, Decimal("5"), today, delivered_days_ago=2)
        day_two = await seed.tracking(
            merchant, cake, Decimal("3"), today + timedelta(days=5), delivered_days_ago=1
        )

        summary = await WasteService(db, settings).process_reorder(
            merchant.id, [OrderItemIn(recipe_id=cake.id, quantity=6)]
        )

        assert day_one.current_estimated_quantity == Decimal("0")
        assert day_one.status == TrackingStatus.SOLD_OUT
        assert day_two.current_estimated_quantity == Decimal("2")
        assert day_two.status == TrackingStatus.FRESH
        assert summary.waste_prevented is True
        assert summary.total_prevented_quantity == Decimal("6")
        (line,) = summary.updated_items
        assert line.recipe_name == "Cake"
        assert line.new_quantity == 6
        assert [u.quantity_sold for u in line.updated_tracking_records] == [
            Decimal("5"),
            Decimal("1"),
        ]

    @pytest.mark.asyncio
    async def test_savings_only_count_near_expiry_stock(self, db, seed, bakery, settings, today):
        merchant, cake = bakery["merchant"], bakery["cake"]
        await seed.tracking(merchant, cake, Decimal("5"), today, delivered_days_ago=2)
        await seed.tracking(merchant, cake, Decimal("3"), today + timedelta(days=5))

        summary = await WasteService(db, settings).process_reorder(
            merchant.id, [OrderItemIn(recipe_id=cake.id, quantity=6)]
        )

        # Five near-expiry cakes at 4.00 each; the fresh one saves nothing
        assert summary.total_savings == Decimal("20.00")

    @pytest.mark.asyncio
    async def test_order_larger_than_stock_never_goes_negative(
        self, db, seed, bakery, settings, today
    ):
        merchant, cake = bakery["merchant"], bakery["cake"]
        rows = [
            await seed.tracking(merchant, cake, Decimal("5"), today, delivered_days_ago=2),
            await seed.tracking(merchant, cake, Decimal("3"), today + timedelta(days=1)),
        ]

        summary = await WasteService(db, settings).process_reorder(
            merchant.id, [OrderItemIn(recipe_id=cake.id, quantity=20)]
        )

        assert summary.total_prevented_quantity == Decimal("8")
        assert all(row.current_estimated_quantity == Decimal("0") for row in rows)
        assert all(row.status == TrackingStatus.SOLD_OUT for row in rows)

    @pytest.mark.asyncio
    async def test_expired_stock_is_left_for_collection(self, db, seed, bakery, settings, today):
        merchant, cake = bakery["merchant"], bakery["cake"]
        expired = await seed.tracking(
            merchant, cake, Decimal("4"), today - timedelta(days=1),
            delivered_days_ago=4, status=TrackingStatus.EXPIRED,
        )

        summary = await WasteService(db, settings).process_reorder(
            merchant.id, [OrderItemIn(recipe_id=cake.id, quantity=2)]
        )

        assert summary.waste_prevented is False
        assert expired.current_estimated_quantity == Decimal("4")

    @pytest.mark.asyncio
    async def test_other_merchants_stock_is_untouched(self, db, seed, bakery, settings, today):
        other = await seed.merchant(name="Other Deli")
        theirs = await seed.tracking(other, bakery["cake"], Decimal("5"), today)

        summary = await WasteService(db, settings).process_reorder(
            bakery["merchant"].id, [OrderItemIn(recipe_id=bakery["cake"].id, quantity=3)]
        )

        assert summary.updated_items == []
        assert theirs.current_estimated_quantity == Decimal("5")

    @pytest.mark.asyncio
    async def test_reorder_trims_scheduled_collections(self, db, seed, bakery, settings, today):
        merchant, cake, croissant = bakery["merchant"], bakery["cake"], bakery["croissant"]
        await seed.tracking(merchant, cake, Decimal("2"), today)
        mixed = _collection(merchant, today + timedelta(days=1), [(cake, 2), (croissant, 1)])
        cake_only = _collection(merchant, today + timedelta(days=2), [(cake, 2)])
        past = _collection(merchant, today - timedelta(days=1), [(cake, 2)])
        db.add_all([mixed, cake_only, past])
        await db.flush()

        summary = await WasteService(db, settings).process_reorder(
            merchant.id, [OrderItemIn(recipe_id=cake.id, quantity=2)]
        )

        assert summary.collections_updated == [mixed.id]
        assert summary.collections_cancelled == [cake_only.id]
        assert [item["recipe_id"] for item in mixed.waste_items] == [str(croissant.id)]
        assert mixed.total_waste_value == Decimal("1.50")
        assert mixed.status == WasteCollectionStatus.SCHEDULED
        assert cake_only.status == WasteCollectionStatus.CANCELLED
        assert cake_only.actual_collection_date is not None
        assert past.status == WasteCollectionStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_no_stock_leaves_collections_alone(self, db, bakery, settings, today):
        merchant, cake = bakery["merchant"], bakery["cake"]
        pickup = _collection(merchant, today + timedelta(days=1), [(cake, 2)])
        db.add(pickup)
        await db.flush()

        summary = await WasteService(db, settings).process_reorder(
            merchant.id, [OrderItemIn(recipe_id=cake.id, quantity=2)]
        )

        assert summary.waste_prevented is False
        assert summary.total_savings == Decimal("0")
        assert pickup.status == WasteCollectionStatus.SCHEDULED


class TestWasteAlerts:
    """Daily expiry alerts and pickup scheduling."""

    @pytest.mark.asyncio
    async def test_alerts_within_horizon_and_schedules_pickup(
        self, db, seed, bakery, settings, today
    ):
        merchant, cake, croissant = bakery["merchant"], bakery["cake"], bakery["croissant"]
        due_today = await seed.tracking(merchant, cake, Decimal("4"), today)
        await seed.tracking(merchant, croissant, Decimal("3"), today + timedelta(days=2))
        await seed.tracking(merchant, cake, Decimal("6"), today + timedelta(days=5))

        service = WasteService(db, settings)
        alerts = await service.generate_waste_alerts()

        assert [alert.recipe_name for alert in alerts] == ["Cake", "Croissant"]
        cake_alert, croissant_alert = alerts
        assert cake_alert.merchant_name == "Corner Cafe"
        assert cake_alert.days_until_expiration == 0
        assert cake_alert.collection_required is True
        assert cake_alert.estimated_waste_value == Decimal("16.00")
        assert croissant_alert.collection_required is False
        assert due_today.status == TrackingStatus.WARNING

        collections = await _collections_for(db, merchant)
        assert len(collections) == 1
        assert collections[0].scheduled_collection_date == next_weekday(today)
        assert collections[0].total_waste_value == Decimal("16.00")

        events = await OutboxService(db).get_events_for("waste_collection", collections[0].id)
        assert [event.event_type for event in events] == [EVENT_WASTE_COLLECTION_SCHEDULED]

        # An open pickup already exists, so a second run schedules nothing new
        await service.generate_waste_alerts()
        again = await _collections_for(db, merchant)
        assert len(again) == 1

    @pytest.mark.asyncio
    async def test_lapsed_stock_is_marked_expired_and_flagged(
        self, db, seed, bakery, settings, today
    ):
        lapsed = await seed.tracking(
            bakery["merchant"], bakery["cake"], Decimal("2"), today - timedelta(days=1)
        )

        alerts = await WasteService(db, settings).generate_waste_alerts()

        assert alerts[0].status == TrackingStatus.EXPIRED
        assert alerts[0].days_until_expiration == -1
        assert lapsed.status == TrackingStatus.EXPIRED
        assert lapsed.collection_required is True

    @pytest.mark.asyncio
    async def test_sold_out_stock_raises_no_alert(self, db, seed, bakery, settings, today):
        await seed.tracking(
            bakery["merchant"], bakery["cake"], Decimal("0"), today,
            status=TrackingStatus.SOLD_OUT,
        )
        assert await WasteService(db, settings).generate_waste_alerts() == []


class TestCompleteWasteCollection:
    """Closing out a pickup and handing off the credit note."""

    @pytest.mark.asyncio
    async def test_completion_zeroes_stock_and_requests_credit(
        self, db, seed, bakery, settings, today
    ):
        merchant, cake = bakery["merchant"], bakery["cake"]
        expired = await seed.tracking(
            merchant, cake, Decimal("4"), today - timedelta(days=1),
            status=TrackingStatus.EXPIRED, collection_required=True,
        )
        pickup = _collection(merchant, today, [(cake, 4)])
        db.add(pickup)
        await db.flush()

        result = await WasteService(db, settings).complete_waste_collection(
            pickup.id,
            [WasteItem(recipe_id=cake.id, recipe_name="Cake", quantity=Decimal("4"))],
            driver_notes="Left by back door",
        )

        assert result.credit_amount == Decimal("16.00")
        assert result.items_collected == 1
        assert pickup.status == WasteCollectionStatus.COMPLETED
        assert pickup.credited_to_merchant is True
        assert pickup.driver_notes == "Left by back door"
        assert expired.current_estimated_quantity == Decimal("0")
        assert expired.status == TrackingStatus.COLLECTED
        assert expired.collection_required is False

        events = await OutboxService(db).get_events_for("waste_collection", pickup.id)
        assert [event.event_type for event in events] == [EVENT_WASTE_CREDIT_NOTE]
        assert events[0].payload["credit_amount"] == "16.00"

    @pytest.mark.asyncio
    async def test_completed_collection_cannot_be_completed_again(
        self, db, bakery, settings, today
    ):
        pickup = _collection(
            bakery["merchant"], today, [(bakery["cake"], 1)],
            status=WasteCollectionStatus.COMPLETED,
        )
        db.add(pickup)
        await db.flush()

        with pytest.raises(InvalidStateTransitionException):
            await WasteService(db, settings).complete_waste_collection(pickup.id, [])

    @pytest.mark.asyncio
    async def test_unknown_collection_raises(self, db, settings):
        with pytest.raises(NotFoundException):
            await WasteService(db, settings).complete_waste_collection(uuid.uuid4(), [])
