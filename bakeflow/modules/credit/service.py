"""Credit guard: merchant exposure against credit limit."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bakeflow.exceptions import CreditExceededException, NotFoundException
from bakeflow.models.enums import OrderStatus, PaymentStatus
from bakeflow.models.invoice import Invoice
from bakeflow.models.merchant import Merchant
from bakeflow.models.order import Order
from bakeflow.modules.credit.schemas import CreditCheck

logger = logging.getLogger(__name__)

OPEN_INVOICE_STATUSES = (PaymentStatus.UNPAID, PaymentStatus.PARTIAL)


class CreditService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_merchant(self, merchant_id: uuid.UUID) -> Merchant:
        merchant = await self.db.get(Merchant, merchant_id)
        if merchant is None:
            raise NotFoundException(f"Merchant {merchant_id} not found")
        return merchant

    async def _unpaid_invoice_total(self, merchant_id: uuid.UUID) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Invoice.total_amount), 0)).where(
                Invoice.merchant_id == merchant_id,
                Invoice.payment_status.in_(OPEN_INVOICE_STATUSES),
            )
        )
        return Decimal(result.scalar_one())

    async def _pending_order_total(self, merchant_id: uuid.UUID) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Order.total_amount), 0)).where(
                Order.merchant_id == merchant_id,
                Order.status == OrderStatus.PENDING,
            )
        )
        return Decimal(result.scalar_one())

    async def outstanding_exposure(self, merchant_id: uuid.UUID) -> Decimal:
        """Unpaid/partial invoice totals plus pending order totals."""
        unpaid = await self._unpaid_invoice_total(merchant_id)
        pending = await self._pending_order_total(merchant_id)
        return unpaid + pending

    async def check_credit(self, merchant_id: uuid.UUID) -> CreditCheck:
        """Evaluate existing exposure only; the incoming order is not counted."""
        merchant = await self._get_merchant(merchant_id)
        unpaid = await self._unpaid_invoice_total(merchant_id)
        pending = await self._pending_order_total(merchant_id)
        exposure = unpaid + pending
        limit = Decimal(merchant.credit_limit)
        return CreditCheck(
            merchant_id=merchant_id,
            credit_limit=limit,
            unpaid_invoices=unpaid,
            pending_orders=pending,
            exposure=exposure,
            approved=exposure < limit,
        )

    async def ensure_credit(self, merchant_id: uuid.UUID) -> CreditCheck:
        check = await self.check_credit(merchant_id)
        if not check.approved:
            logger.info(
                "Credit check failed for merchant %s: exposure %s, limit %s",
                merchant_id, check.exposure, check.credit_limit,
            )
            raise CreditExceededException(
                f"Credit limit exceeded. Outstanding: ${check.exposure:,.2f}, "
                f"Limit: ${check.credit_limit:,.2f}. "
                "Please clear outstanding invoices before placing new orders.",
                details=[{
                    "field": "credit_limit",
                    "message": f"Outstanding {check.exposure} of {check.credit_limit}",
                    "exposure": str(check.exposure),
                    "credit_limit": str(check.credit_limit),
                }],
            )
        return check
