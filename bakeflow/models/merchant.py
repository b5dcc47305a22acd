"""Merchant model: the aggregation root for pricing, stock tracking and waste."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bakeflow.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from bakeflow.models.enums import MerchantStatus


class Merchant(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "merchants"

    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    location_address: Mapped[str] = mapped_column(Text, nullable=False)
    contact_person_name: Mapped[str | None] = mapped_column(String(255))
    contact_phone: Mapped[str | None] = mapped_column(String(30))
    credit_limit: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, server_default="0"
    )
    account_status: Mapped[MerchantStatus] = mapped_column(
        nullable=False, default=MerchantStatus.ACTIVE, server_default="ACTIVE"
    )
    notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (Index("ix_merchants_account_status", "account_status"),)

    @property
    def is_vip(self) -> bool:
        return self.account_status == MerchantStatus.VIP
