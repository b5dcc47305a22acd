"""MerchantProductTracking model: FIFO ledger of stock delivered to merchants."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from bakeflow.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from bakeflow.models.enums import TrackingStatus


class MerchantProductTracking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "merchant_product_tracking"

    merchant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False
    )
    recipe_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    job_ticket_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("job_tickets.id", ondelete="SET NULL")
    )
    quantity_delivered: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False)
    delivery_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expiration_date: Mapped[date] = mapped_column(Date, nullable=False)
    # Only ever decremented after delivery
    current_estimated_quantity: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False)
    status: Mapped[TrackingStatus] = mapped_column(
        nullable=False, default=TrackingStatus.FRESH, server_default="FRESH"
    )
    collection_required: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    driver_notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index(
            "ix_merchant_product_tracking_fifo",
            "merchant_id",
            "recipe_id",
            "delivery_date",
        ),
        Index("ix_merchant_product_tracking_expiration", "expiration_date"),
    )
