"""Waste prevention: FIFO reconciliation of reorders against unsold merchant stock.

When a merchant reorders a recipe they still hold unsold stock of, the
reorder is assumed to sell through the oldest stock first. Tracking rows are
decremented oldest-first, and scheduled waste pickups for those recipes are
shrunk or cancelled. The same service raises expiry alerts, schedules
pickups for expired stock and closes pickups out with a credit-note hand-off.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bakeflow.clock import business_today, next_weekday
from bakeflow.config import Settings, settings as default_settings
from bakeflow.exceptions import InvalidStateTransitionException, NotFoundException
from bakeflow.models.enums import TrackingStatus, WasteCollectionStatus
from bakeflow.models.merchant import Merchant
from bakeflow.models.merchant_product_tracking import MerchantProductTracking
from bakeflow.models.recipe import Recipe
from bakeflow.models.waste_collection import WasteCollection
from bakeflow.modules.catalog.service import CatalogService
from bakeflow.modules.events.outbox_service import OutboxService
from bakeflow.modules.order.schemas import OrderItemIn
from bakeflow.modules.pricing.constants import CENT
from bakeflow.modules.waste.constants import (
    CONDITION_EXPIRED,
    EVENT_WASTE_COLLECTION_SCHEDULED,
    EVENT_WASTE_CREDIT_NOTE,
    OPEN_COLLECTION_STATUSES,
)
from bakeflow.modules.waste.schemas import (
    RecipeWastePrevention,
    TrackingUpdate,
    WasteAlert,
    WasteCollectionResult,
    WasteItem,
    WastePreventionSummary,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class WasteService:
    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or default_settings
        self.catalog = CatalogService(db)
        self.outbox = OutboxService(db)

    def _today(self) -> date:
        return business_today(self.settings)

    def tracking_status(self, expiration_date: date, today: date | None = None) -> TrackingStatus:
        """Status of stock that still has quantity remaining."""
        days_left = (expiration_date - (today or self._today())).days
        if days_left < 0:
            return TrackingStatus.EXPIRED
        if days_left <= self.settings.waste_warning_days:
            return TrackingStatus.WARNING
        return TrackingStatus.FRESH

    # ------------------------------------------------------------------
    # Reorder reconciliation
    # ------------------------------------------------------------------

    async def process_reorder(
        self, merchant_id: uuid.UUID, items: Sequence[OrderItemIn]
    ) -> WastePreventionSummary:
        """Sell existing stock through FIFO and trim now-unneeded waste pickups.

        Must run inside the caller's transaction; tracking rows are locked
        until it commits so concurrent reorders for the same merchant
        serialize.
        """
        summary = WastePreventionSummary()
        today = self._today()

        for item in items:
            prevention = await self._apply_fifo(merchant_id, item, today)
            if prevention is None:
                continue
            summary.updated_items.append(prevention)
            summary.total_savings += prevention.estimated_savings

        if summary.updated_items:
            prevented = {str(line.recipe_id) for line in summary.updated_items}
            await self._trim_scheduled_collections(merchant_id, prevented, today, summary)

        logger.info(
            "FIFO reorder processing completed for merchant %s: %d recipe(s), savings %s",
            merchant_id, len(summary.updated_items), summary.total_savings,
        )
        return summary

    async def _apply_fifo(
        self, merchant_id: uuid.UUID, item: OrderItemIn, today: date
    ) -> RecipeWastePrevention | None:
        result = await self.db.execute(
            select(MerchantProductTracking)
            .where(
                MerchantProductTracking.merchant_id == merchant_id,
                MerchantProductTracking.recipe_id == item.recipe_id,
                MerchantProductTracking.current_estimated_quantity > 0,
                MerchantProductTracking.status != TrackingStatus.EXPIRED,
            )
            .order_by(MerchantProductTracking.delivery_date.asc())
            .with_for_update()
        )
        rows = list(result.scalars().all())
        if not rows:
            return None

        on_hand = sum((Decimal(row.current_estimated_quantity) for row in rows), ZERO)
        remaining = min(on_hand, Decimal(item.quantity))
        if remaining <= 0:
            return None

        recipe = await self.db.get(Recipe, item.recipe_id)
        unit_cost = Decimal(recipe.cost_per_unit) if recipe is not None else ZERO

        updates: list[TrackingUpdate] = []
        prevented = ZERO
        savings = ZERO
        for row in rows:
            if remaining <= 0:
                break
            current = Decimal(row.current_estimated_quantity)
            sold = min(current, remaining)
            left = current - sold
            # Savings only for stock that was already at or near expiry
            near_expiry = (row.expiration_date - today).days <= self.settings.waste_warning_days

            row.current_estimated_quantity = left
            row.status = (
                self.tracking_status(row.expiration_date, today)
                if left > 0
                else TrackingStatus.SOLD_OUT
            )
            updates.append(
                TrackingUpdate(
                    tracking_id=row.id,
                    previous_quantity=current,
                    new_quantity=left,
                    quantity_sold=sold,
                    status=row.status,
                )
            )
            prevented += sold
            remaining -= sold
            if near_expiry:
                savings += unit_cost * sold

        await self.db.flush()
        return RecipeWastePrevention(
            recipe_id=item.recipe_id,
            recipe_name=item.recipe_name or (recipe.recipe_name if recipe else None),
            new_quantity=item.quantity,
            waste_prevented_quantity=prevented,
            estimated_savings=savings.quantize(CENT),
            updated_tracking_records=updates,
        )

    async def _trim_scheduled_collections(
        self,
        merchant_id: uuid.UUID,
        prevented_recipe_ids: set[str],
        today: date,
        summary: WastePreventionSummary,
    ) -> None:
        result = await self.db.execute(
            select(WasteCollection).where(
                WasteCollection.merchant_id == merchant_id,
                WasteCollection.status == WasteCollectionStatus.SCHEDULED,
                WasteCollection.scheduled_collection_date >= today,
            )
        )
        for collection in result.scalars().all():
            waste_items = collection.waste_items or []
            kept = [
                entry for entry in waste_items
                if str(entry.get("recipe_id")) not in prevented_recipe_ids
            ]
            if not kept:
                collection.status = WasteCollectionStatus.CANCELLED
                collection.actual_collection_date = datetime.now(UTC)
                summary.collections_cancelled.append(collection.id)
                logger.info(
                    "Waste collection %s cancelled: waste prevented by reorder (merchant %s)",
                    collection.id, merchant_id,
                )
            elif len(kept) < len(waste_items):
                collection.waste_items = kept
                collection.total_waste_value = await self._waste_value(kept)
                summary.collections_updated.append(collection.id)
                logger.info(
                    "Waste collection %s reduced to %d item(s)", collection.id, len(kept)
                )
        await self.db.flush()

    async def _waste_value(self, waste_items: Sequence[dict]) -> Decimal:
        recipes = await self.catalog.get_recipes(
            uuid.UUID(str(entry["recipe_id"])) for entry in waste_items
        )
        total = ZERO
        for entry in waste_items:
            recipe = recipes.get(uuid.UUID(str(entry["recipe_id"])))
            if recipe is not None:
                total += Decimal(recipe.cost_per_unit) * Decimal(str(entry["quantity"]))
        return total.quantize(CENT)

    # ------------------------------------------------------------------
    # Alerts and scheduling
    # ------------------------------------------------------------------

    async def generate_waste_alerts(self) -> list[WasteAlert]:
        """Flag stock expiring within the alert horizon and schedule pickups."""
        today = self._today()
        horizon = today + timedelta(days=self.settings.waste_alert_horizon_days)

        result = await self.db.execute(
            select(MerchantProductTracking, Merchant.business_name, Recipe)
            .join(Merchant, Merchant.id == MerchantProductTracking.merchant_id)
            .join(Recipe, Recipe.id == MerchantProductTracking.recipe_id)
            .where(
                MerchantProductTracking.current_estimated_quantity > 0,
                MerchantProductTracking.expiration_date <= horizon,
                MerchantProductTracking.status != TrackingStatus.EXPIRED,
            )
            .order_by(MerchantProductTracking.expiration_date.asc())
        )

        alerts: list[WasteAlert] = []
        for row, merchant_name, recipe in result.all():
            days_left = (row.expiration_date - today).days
            status = self.tracking_status(row.expiration_date, today)
            if row.status != status:
                row.status = status

            quantity = Decimal(row.current_estimated_quantity)
            alerts.append(
                WasteAlert(
                    tracking_id=row.id,
                    merchant_id=row.merchant_id,
                    merchant_name=merchant_name,
                    recipe_id=row.recipe_id,
                    recipe_name=recipe.recipe_name,
                    quantity=quantity,
                    expiration_date=row.expiration_date,
                    days_until_expiration=days_left,
                    status=status,
                    estimated_waste_value=(Decimal(recipe.cost_per_unit) * quantity).quantize(CENT),
                    collection_required=days_left <= 0,
                )
            )
        await self.db.flush()

        await self.schedule_waste_collection(alerts)
        logger.info("Generated %d waste alert(s)", len(alerts))
        return alerts

    async def schedule_waste_collection(
        self, alerts: Sequence[WasteAlert]
    ) -> list[WasteCollection]:
        """Create one pickup per merchant with stock that must be collected.

        Merchants that already have an open pickup dated today or later are
        skipped.
        """
        today = self._today()
        by_merchant: dict[uuid.UUID, list[WasteAlert]] = defaultdict(list)
        for alert in alerts:
            if alert.collection_required:
                by_merchant[alert.merchant_id].append(alert)

        scheduled: list[WasteCollection] = []
        for merchant_id, merchant_alerts in by_merchant.items():
            existing = await self.db.execute(
                select(WasteCollection.id)
                .where(
                    WasteCollection.merchant_id == merchant_id,
                    WasteCollection.status.in_(OPEN_COLLECTION_STATUSES),
                    WasteCollection.scheduled_collection_date >= today,
                )
                .limit(1)
            )
            if existing.scalar_one_or_none() is not None:
                continue

            waste_items = [
                WasteItem(
                    recipe_id=alert.recipe_id,
                    recipe_name=alert.recipe_name,
                    quantity=alert.quantity,
                    expiration_date=alert.expiration_date,
                    condition=CONDITION_EXPIRED,
                ).model_dump(mode="json")
                for alert in merchant_alerts
            ]
            total_value = sum((alert.estimated_waste_value for alert in merchant_alerts), ZERO)

            collection = WasteCollection(
                merchant_id=merchant_id,
                scheduled_collection_date=next_weekday(today),
                status=WasteCollectionStatus.SCHEDULED,
                waste_items=waste_items,
                total_waste_value=total_value.quantize(CENT),
                credited_to_merchant=False,
            )
            self.db.add(collection)

            await self.db.execute(
                update(MerchantProductTracking)
                .where(
                    MerchantProductTracking.merchant_id == merchant_id,
                    MerchantProductTracking.recipe_id.in_(
                        list({alert.recipe_id for alert in merchant_alerts})
                    ),
                    MerchantProductTracking.status == TrackingStatus.EXPIRED,
                )
                .values(collection_required=True)
                .execution_options(synchronize_session="fetch")
            )
            await self.db.flush()

            await self.outbox.publish_event(
                event_type=EVENT_WASTE_COLLECTION_SCHEDULED,
                aggregate_type="waste_collection",
                aggregate_id=collection.id,
                payload={
                    "merchant_id": str(merchant_id),
                    "scheduled_collection_date": collection.scheduled_collection_date.isoformat(),
                    "total_waste_value": str(collection.total_waste_value),
                    "items_count": len(waste_items),
                },
            )
            scheduled.append(collection)
            logger.info(
                "Waste collection scheduled for merchant %s on %s (value %s, %d item(s))",
                merchant_id, collection.scheduled_collection_date,
                collection.total_waste_value, len(waste_items),
            )
        return scheduled

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete_waste_collection(
        self,
        collection_id: uuid.UUID,
        items: Sequence[WasteItem],
        driver_notes: str | None = None,
    ) -> WasteCollectionResult:
        """Record what the driver actually collected and request a credit note."""
        collection = await self.db.get(WasteCollection, collection_id)
        if collection is None:
            raise NotFoundException(f"Waste collection {collection_id} not found")
        if collection.status not in OPEN_COLLECTION_STATUSES:
            raise InvalidStateTransitionException(
                f"Cannot complete waste collection in status {collection.status.value}"
            )

        collected = [item.model_dump(mode="json") for item in items]
        collection.status = WasteCollectionStatus.COMPLETED
        collection.actual_collection_date = datetime.now(UTC)
        collection.waste_items = collected
        collection.total_waste_value = await self._waste_value(collected)
        collection.credited_to_merchant = True
        if driver_notes is not None:
            collection.driver_notes = driver_notes

        rows_collected = 0
        for recipe_id in {item.recipe_id for item in items}:
            result = await self.db.execute(
                update(MerchantProductTracking)
                .where(
                    MerchantProductTracking.merchant_id == collection.merchant_id,
                    MerchantProductTracking.recipe_id == recipe_id,
                    MerchantProductTracking.collection_required.is_(True),
                )
                .values(
                    current_estimated_quantity=ZERO,
                    status=TrackingStatus.COLLECTED,
                    collection_required=False,
                )
                .execution_options(synchronize_session="fetch")
            )
            rows_collected += result.rowcount or 0
        await self.db.flush()

        credit_amount = Decimal(collection.total_waste_value)
        if credit_amount > 0:
            await self.outbox.publish_event(
                event_type=EVENT_WASTE_CREDIT_NOTE,
                aggregate_type="waste_collection",
                aggregate_id=collection.id,
                payload={
                    "merchant_id": str(collection.merchant_id),
                    "credit_amount": str(credit_amount),
                    "waste_items": collected,
                },
            )

        logger.info(
            "Waste collection %s completed for merchant %s: %d item(s), credit %s",
            collection.id, collection.merchant_id, len(collected), credit_amount,
        )
        return WasteCollectionResult(
            collection_id=collection.id,
            merchant_id=collection.merchant_id,
            credit_amount=credit_amount,
            items_collected=len(collected),
            tracking_rows_collected=rows_collected,
        )
