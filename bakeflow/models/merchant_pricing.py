"""MerchantPricing model: dated per-merchant price rows for a recipe."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from bakeflow.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from bakeflow.models.enums import PriceTier


class MerchantPricing(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "merchant_pricing"

    merchant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False
    )
    recipe_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    base_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    merchant_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    markup_percentage: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiration_date: Mapped[date | None] = mapped_column(Date)
    price_tier: Mapped[PriceTier] = mapped_column(
        nullable=False, default=PriceTier.STANDARD, server_default="STANDARD"
    )
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )

    __table_args__ = (
        Index(
            "ix_merchant_pricing_lookup",
            "merchant_id",
            "recipe_id",
            "effective_date",
        ),
    )
