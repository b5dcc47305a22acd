"""Tests for CreditService exposure checks."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from bakeflow.exceptions import CreditExceededException, NotFoundException
from bakeflow.models.enums import OrderStatus, PaymentStatus
from bakeflow.models.invoice import Invoice
from bakeflow.models.order import Order
from bakeflow.modules.credit.service import CreditService


def _invoice(merchant, number, amount, status, today):
    return Invoice(
        merchant_id=merchant.id,
        invoice_number=number,
        total_amount=Decimal(amount),
        issue_date=today - timedelta(days=10),
        due_date=today + timedelta(days=20),
        payment_status=status,
    )


def _order(merchant, amount, status, today):
    return Order(
        merchant_id=merchant.id,
        order_items=[],
        total_amount=Decimal(amount),
        requested_delivery_date=today + timedelta(days=1),
        status=status,
        delivery_address=merchant.location_address,
    )


class TestCreditService:
    """Unpaid invoices plus pending orders against the merchant's limit."""

    @pytest.mark.asyncio
    async def test_rejects_when_exposure_reaches_limit(self, db, seed, today):
        merchant = await seed.merchant(credit_limit=Decimal("1000.00"))
        db.add_all([
            _invoice(merchant, "INV-1", "600.00", PaymentStatus.UNPAID, today),
            _order(merchant, "500.00", OrderStatus.PENDING, today),
        ])
        await db.flush()

        service = CreditService(db)
        assert await service.outstanding_exposure(merchant.id) == Decimal("1100.00")

        with pytest.raises(CreditExceededException) as exc_info:
            await service.ensure_credit(merchant.id)

        assert exc_info.value.message == (
            "Credit limit exceeded. Outstanding: $1,100.00, Limit: $1,000.00. "
            "Please clear outstanding invoices before placing new orders."
        )

    @pytest.mark.asyncio
    async def test_exposure_equal_to_limit_is_rejected(self, db, seed, today):
        merchant = await seed.merchant(credit_limit=Decimal("500.00"))
        db.add(_invoice(merchant, "INV-2", "500.00", PaymentStatus.PARTIAL, today))
        await db.flush()

        check = await CreditService(db).check_credit(merchant.id)

        assert check.approved is False
        assert check.available_credit == Decimal("0")

    @pytest.mark.asyncio
    async def test_paid_invoices_and_confirmed_orders_do_not_count(self, db, seed, today):
        merchant = await seed.merchant(credit_limit=Decimal("1000.00"))
        db.add_all([
            _invoice(merchant, "INV-3", "900.00", PaymentStatus.PAID, today),
            _invoice(merchant, "INV-4", "800.00", PaymentStatus.OVERDUE, today),
            _order(merchant, "700.00", OrderStatus.CONFIRMED, today),
            _order(merchant, "150.00", OrderStatus.PENDING, today),
        ])
        await db.flush()

        check = await CreditService(db).ensure_credit(merchant.id)

        assert check.approved is True
        assert check.unpaid_invoices == Decimal("0")
        assert check.pending_orders == Decimal("150.00")
        assert check.available_credit == Decimal("850.00")

    @pytest.mark.asyncio
    async def test_other_merchants_are_ignored(self, db, seed, today):
        merchant = await seed.merchant(credit_limit=Decimal("100.00"))
        other = await seed.merchant(name="Other Deli")
        db.add(_invoice(other, "INV-5", "5000.00", PaymentStatus.UNPAID, today))
        await db.flush()

        check = await CreditService(db).check_credit(merchant.id)
        assert check.exposure == Decimal("0")
        assert check.approved is True

    @pytest.mark.asyncio
    async def test_unknown_merchant_raises(self, db):
        with pytest.raises(NotFoundException):
            await CreditService(db).check_credit(uuid.uuid4())
