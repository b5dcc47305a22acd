"""Order model: a merchant order with its line items stored inline."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bakeflow.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from bakeflow.models.enums import OrderStatus

if TYPE_CHECKING:
    from bakeflow.models.job_ticket import JobTicket
    from bakeflow.models.merchant import Merchant
    from bakeflow.models.workflow import Workflow


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    merchant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False
    )
    source_ref: Mapped[str | None] = mapped_column(String(255))
    # [{recipe_id, quantity, recipe_name?, catalog?}]
    order_items: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    order_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    requested_delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        nullable=False, default=OrderStatus.PENDING, server_default="PENDING"
    )
    special_notes: Mapped[str | None] = mapped_column(Text)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False)
    assigned_workflow_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("workflows.id", ondelete="SET NULL")
    )
    payment_terms_override: Mapped[str | None] = mapped_column(String(30))

    # Relationships
    merchant: Mapped[Merchant] = relationship("Merchant", lazy="noload")
    workflow: Mapped[Workflow | None] = relationship("Workflow", lazy="noload")
    job_ticket: Mapped[JobTicket | None] = relationship(
        "JobTicket",
        back_populates="order",
        lazy="noload",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_orders_merchant_id", "merchant_id"),
        Index("ix_orders_status", "status"),
    )
