"""Pydantic v2 schemas for merchant credit checks."""

from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel


class CreditCheck(BaseModel):
    merchant_id: uuid.UUID
    credit_limit: Decimal
    unpaid_invoices: Decimal
    pending_orders: Decimal
    exposure: Decimal
    approved: bool

    @property
    def available_credit(self) -> Decimal:
        return self.credit_limit - self.exposure
