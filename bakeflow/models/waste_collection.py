"""WasteCollection model: scheduled or completed waste pickup for a merchant."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from bakeflow.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin
from bakeflow.models.enums import WasteCollectionStatus


class WasteCollection(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "waste_collections"

    merchant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False
    )
    scheduled_collection_date: Mapped[date] = mapped_column(Date, nullable=False)
    assigned_driver_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    status: Mapped[WasteCollectionStatus] = mapped_column(
        nullable=False,
        default=WasteCollectionStatus.SCHEDULED,
        server_default="SCHEDULED",
    )
    actual_collection_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # [{recipe_id, recipe_name, quantity, expiration_date, condition}]
    waste_items: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)
    total_waste_value: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    credited_to_merchant: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    driver_notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("ix_waste_collections_merchant_status", "merchant_id", "status"),
    )
