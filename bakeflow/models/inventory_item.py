"""InventoryItem model: raw ingredient stock on hand."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from bakeflow.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class InventoryItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "inventory_items"

    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_of_measurement: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default="unit"
    )
    cost_per_unit: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    current_quantity: Mapped[Decimal] = mapped_column(
        Numeric(10, 3), nullable=False, server_default="0"
    )
    minimum_stock_level: Mapped[Decimal] = mapped_column(
        Numeric(10, 3), nullable=False, server_default="0"
    )

    def cost_contribution(self, quantity: Decimal) -> Decimal:
        return Decimal(self.cost_per_unit) * Decimal(quantity)
