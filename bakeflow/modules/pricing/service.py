"""Merchant pricing service: price resolution, volume discounts, order totals."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bakeflow.clock import business_today
from bakeflow.config import Settings, settings as default_settings
from bakeflow.exceptions import AppException, MissingPricingException, NotFoundException
from bakeflow.models.enums import PriceTier
from bakeflow.models.merchant_pricing import MerchantPricing
from bakeflow.models.recipe import Recipe
from bakeflow.modules.catalog.service import CatalogService
from bakeflow.modules.order.schemas import OrderItemIn
from bakeflow.modules.pricing.cache import PricingCache
from bakeflow.modules.pricing.constants import CENT, VOLUME_DISCOUNT_RULES
from bakeflow.modules.pricing.schemas import (
    BulkPricingResult,
    OrderPricing,
    PricedLine,
    PricingMatrixRow,
    PricingUpdateItem,
    ResolvedPrice,
)

logger = logging.getLogger(__name__)


def apply_volume_discount(tier: PriceTier, quantity: int, base_price: Decimal) -> Decimal:
    """Return the unit price after the tier's volume discount.

    Only the highest threshold met applies; discounts do not stack.
    """
    discount = Decimal("0")
    for min_quantity, fraction in VOLUME_DISCOUNT_RULES.get(tier, []):
        if quantity >= min_quantity:
            discount = fraction
    return Decimal(base_price) * (Decimal("1") - discount)


class PricingService:
    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        cache: PricingCache | None = None,
    ):
        self.db = db
        self.settings = settings or default_settings
        self.cache = cache
        self.catalog = CatalogService(db)

    def _today(self) -> date:
        return business_today(self.settings)

    def _active_pricing_query(self, merchant_id: uuid.UUID):
        today = self._today()
        return select(MerchantPricing).where(
            MerchantPricing.merchant_id == merchant_id,
            MerchantPricing.effective_date <= today,
            or_(
                MerchantPricing.expiration_date.is_(None),
                MerchantPricing.expiration_date >= today,
            ),
        )

    # ------------------------------------------------------------------
    # Price resolution
    # ------------------------------------------------------------------

    async def resolve_price(
        self, merchant_id: uuid.UUID, recipe_id: uuid.UUID
    ) -> ResolvedPrice | None:
        """Resolve the price a merchant pays per unit of a recipe.

        Uses the active merchant pricing row when one exists, otherwise the
        default cost-plus price. Returns None when the recipe is unknown.
        """
        if self.cache is None:
            return await self._load_price(merchant_id, recipe_id)
        return await self.cache.get_or_set(
            merchant_id, recipe_id, lambda: self._load_price(merchant_id, recipe_id)
        )

    async def _load_price(
        self, merchant_id: uuid.UUID, recipe_id: uuid.UUID
    ) -> ResolvedPrice | None:
        result = await self.db.execute(
            self._active_pricing_query(merchant_id)
            .where(MerchantPricing.recipe_id == recipe_id)
            .order_by(MerchantPricing.effective_date.desc(), MerchantPricing.created_at.desc())
            .limit(1)
        )
        pricing = result.scalar_one_or_none()
        if pricing is not None:
            return ResolvedPrice(
                unit_price=pricing.merchant_price,
                tier=pricing.price_tier,
                base_cost=pricing.base_cost,
                markup_percentage=pricing.markup_percentage,
                effective_date=pricing.effective_date,
                merchant_specific=True,
            )
        return await self._default_price(recipe_id)

    async def _default_price(self, recipe_id: uuid.UUID) -> ResolvedPrice | None:
        recipe = await self.catalog.get_recipe(recipe_id)
        if recipe is None:
            return None
        base_cost = recipe.base_cost()
        multiplier = Decimal(str(self.settings.default_markup_multiplier))
        return ResolvedPrice(
            unit_price=(base_cost * multiplier).quantize(CENT),
            tier=PriceTier.STANDARD,
            base_cost=base_cost.quantize(CENT),
            markup_percentage=((multiplier - 1) * 100).quantize(CENT),
            effective_date=self._today(),
        )

    # ------------------------------------------------------------------
    # Order totals
    # ------------------------------------------------------------------

    async def calculate_order_total(
        self, merchant_id: uuid.UUID, items: Sequence[OrderItemIn]
    ) -> OrderPricing:
        """Price every line of an order.

        Raises MissingPricingException naming every line without a price;
        a partially priced order is never returned.
        """
        total = Decimal("0")
        discount_total = Decimal("0")
        breakdown: list[PricedLine] = []
        missing: list[str] = []

        for item in items:
            pricing = await self.resolve_price(merchant_id, item.recipe_id)
            if pricing is None:
                missing.append(item.label)
                continue

            unit_price = apply_volume_discount(pricing.tier, item.quantity, pricing.unit_price)
            line_total = unit_price * item.quantity
            total += line_total
            discount_total += (pricing.unit_price - unit_price) * item.quantity
            breakdown.append(
                PricedLine(
                    recipe_id=item.recipe_id,
                    recipe_name=item.recipe_name,
                    quantity=item.quantity,
                    list_price=pricing.unit_price,
                    unit_price=unit_price.quantize(CENT),
                    line_total=line_total.quantize(CENT),
                    discount_applied=unit_price != pricing.unit_price,
                    price_tier=pricing.tier,
                )
            )

        if missing:
            raise MissingPricingException(missing)

        return OrderPricing(
            total=total.quantize(CENT),
            breakdown=breakdown,
            discount_amount=discount_total.quantize(CENT),
        )

    # ------------------------------------------------------------------
    # Pricing writes
    # ------------------------------------------------------------------

    async def set_merchant_pricing(
        self,
        merchant_id: uuid.UUID,
        recipe_id: uuid.UUID,
        price: Decimal,
        tier: PriceTier = PriceTier.STANDARD,
        effective_date: date | None = None,
        expiration_date: date | None = None,
        created_by: uuid.UUID | None = None,
    ) -> MerchantPricing:
        """Replace the pricing row still in force for a merchant/recipe pair.

        Every row that is open-ended or expires today or later is closed as of
        yesterday, so at most one row is active afterwards.
        """
        recipe = await self.catalog.get_recipe(recipe_id)
        if recipe is None:
            raise NotFoundException(f"Recipe {recipe_id} not found")

        price = Decimal(price)
        base_cost = recipe.base_cost()
        if base_cost > 0:
            markup = (price - base_cost) / base_cost * 100
        else:
            markup = Decimal("0")

        today = self._today()
        await self.db.execute(
            update(MerchantPricing)
            .where(
                MerchantPricing.merchant_id == merchant_id,
                MerchantPricing.recipe_id == recipe_id,
                or_(
                    MerchantPricing.expiration_date.is_(None),
                    MerchantPricing.expiration_date >= today,
                ),
            )
            .values(expiration_date=today - timedelta(days=1))
            .execution_options(synchronize_session="fetch")
        )

        pricing = MerchantPricing(
            merchant_id=merchant_id,
            recipe_id=recipe_id,
            base_cost=base_cost.quantize(CENT),
            merchant_price=price.quantize(CENT),
            markup_percentage=markup.quantize(CENT),
            effective_date=effective_date or today,
            expiration_date=expiration_date,
            price_tier=tier,
            created_by_user_id=created_by,
        )
        self.db.add(pricing)
        await self.db.flush()

        if self.cache is not None:
            await self.cache.invalidate(merchant_id, recipe_id)

        logger.info(
            "Merchant pricing updated: merchant %s recipe %s price %s tier %s (markup %s%%)",
            merchant_id, recipe_id, pricing.merchant_price, tier.value, pricing.markup_percentage,
        )
        return pricing

    async def bulk_update_merchant_pricing(
        self,
        merchant_id: uuid.UUID,
        items: Sequence[PricingUpdateItem],
        created_by: uuid.UUID | None = None,
    ) -> BulkPricingResult:
        """Apply many pricing updates, collecting per-item failures."""
        results: list[dict] = []
        errors: list[dict] = []

        for item in items:
            try:
                pricing = await self.set_merchant_pricing(
                    merchant_id,
                    item.recipe_id,
                    item.price,
                    tier=item.tier,
                    effective_date=item.effective_date,
                    expiration_date=item.expiration_date,
                    created_by=created_by,
                )
            except AppException as exc:
                errors.append({"recipe_id": str(item.recipe_id), "error": exc.message})
                continue
            results.append({
                "recipe_id": str(item.recipe_id),
                "price": str(pricing.merchant_price),
                "tier": pricing.price_tier.value,
            })

        return BulkPricingResult(
            success=not errors,
            results=results,
            errors=errors,
            total_updated=len(results),
        )

    async def get_merchant_pricing_matrix(self, merchant_id: uuid.UUID) -> list[PricingMatrixRow]:
        """List the active pricing row of every recipe priced for a merchant."""
        result = await self.db.execute(
            self._active_pricing_query(merchant_id)
            .add_columns(Recipe.recipe_name)
            .join(Recipe, Recipe.id == MerchantPricing.recipe_id)
            .order_by(Recipe.recipe_name, MerchantPricing.effective_date.desc())
        )
        rows: list[PricingMatrixRow] = []
        seen: set[uuid.UUID] = set()
        for pricing, recipe_name in result.all():
            if pricing.recipe_id in seen:
                continue
            seen.add(pricing.recipe_id)
            rows.append(
                PricingMatrixRow(
                    recipe_id=pricing.recipe_id,
                    recipe_name=recipe_name,
                    base_cost=pricing.base_cost,
                    merchant_price=pricing.merchant_price,
                    markup_percentage=pricing.markup_percentage,
                    price_tier=pricing.price_tier,
                    effective_date=pricing.effective_date,
                    expiration_date=pricing.expiration_date,
                )
            )
        return rows
