"""Tests for OrderService: admin order entry and status changes."""

from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from bakeflow.exceptions import BusinessRuleException, InvalidStateTransitionException
from bakeflow.models.enums import JobTicketStatus, OrderStatus, StepStatus
from bakeflow.modules.events.outbox_service import OutboxService
from bakeflow.modules.job_ticket.service import JobTicketService
from bakeflow.modules.order.schemas import ManualOrderIntake, OrderItemIn
from bakeflow.modules.order.service import OrderService


@pytest_asyncio.fixture
async def shop(db, seed, bakery):
    team = await seed.production_team()
    workflow = await seed.workflow()
    await db.commit()
    return {**bakery, **team, "workflow": workflow}


@pytest.fixture
def service(db, settings, notifier):
    return OrderService(db, settings, notifier)


def _intake(shop, today, status=OrderStatus.PENDING, **overrides):
    data = {
        "merchant_id": shop["merchant"].id,
        "items": [OrderItemIn(recipe_id=shop["cake"].id, quantity=12, recipe_name="Cake")],
        "total_amount": Decimal("42.00"),
        "delivery_date": today + timedelta(days=3),
        "workflow_id": shop["workflow"].id,
        "status": status,
    }
    data.update(overrides)
    return ManualOrderIntake(**data)


class TestManualOrders:
    """Admin-entered orders skip credit, pricing and stock checks."""

    @pytest.mark.asyncio
    async def test_pending_order_has_no_ticket(self, db, service, shop, today):
        result = await service.process_manual_order(_intake(shop, today))

        assert result.success is True
        assert result.job_ticket is None
        assert result.order.status == OrderStatus.PENDING
        assert result.order.total_amount == Decimal("42.00")
        assert result.order.delivery_address == "12 Market Street"

        events = await OutboxService(db).get_events_for("order", result.order.id)
        assert events[0].event_type == "order.created"
        assert events[0].payload["manual"] is True

    @pytest.mark.asyncio
    async def test_confirmed_order_gets_a_ticket(self, service, shop, today):
        result = await service.process_manual_order(
            _intake(shop, today, OrderStatus.CONFIRMED, delivery_address="Stall 4, Pier 2")
        )

        assert result.job_ticket is not None
        assert result.job_ticket.workflow_id == shop["workflow"].id
        assert result.order.delivery_address == "Stall 4, Pier 2"

    @pytest.mark.asyncio
    async def test_terminal_starting_status_is_rejected(self, service, shop, today):
        with pytest.raises(BusinessRuleException):
            await service.process_manual_order(_intake(shop, today, OrderStatus.COMPLETED))


class TestUpdateOrderStatus:
    """Status moves drive job ticket creation and cancellation."""

    @pytest.mark.asyncio
    async def test_confirming_creates_ticket(self, db, service, shop, today):
        created = await service.process_manual_order(_intake(shop, today))

        result = await service.update_order_status(created.order.id, OrderStatus.CONFIRMED)

        assert result.previous_status == OrderStatus.PENDING
        assert result.order.status == OrderStatus.CONFIRMED
        assert result.job_ticket_created is True
        assert result.job_ticket.status == JobTicketStatus.IN_PROGRESS

        events = await OutboxService(db).get_events_for("order", created.order.id)
        changed = [e for e in events if e.event_type == "order.status_changed"]
        assert changed[0].payload["from_status"] == "PENDING"
        assert changed[0].payload["to_status"] == "CONFIRMED"

    @pytest.mark.asyncio
    async def test_cancelling_cancels_live_ticket(self, db, service, shop, today, settings):
        created = await service.process_manual_order(
            _intake(shop, today, OrderStatus.CONFIRMED)
        )

        result = await service.update_order_status(created.order.id, OrderStatus.CANCELLED)

        assert result.job_ticket_cancelled is True
        assert result.job_ticket.status == JobTicketStatus.CANCELLED
        steps = await JobTicketService(db, settings).get_steps(created.job_ticket.id)
        assert all(step.status == StepStatus.SKIPPED for step in steps)

    @pytest.mark.asyncio
    async def test_cancelling_pending_order_without_ticket(self, service, shop, today):
        created = await service.process_manual_order(_intake(shop, today))

        result = await service.update_order_status(created.order.id, OrderStatus.CANCELLED)

        assert result.order.status == OrderStatus.CANCELLED
        assert result.job_ticket is None
        assert result.job_ticket_cancelled is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "start, target",
        [
            (OrderStatus.PENDING, OrderStatus.COMPLETED),
            (OrderStatus.CONFIRMED, OrderStatus.PENDING),
        ],
    )
    async def test_invalid_moves_are_rejected(self, service, shop, today, start, target):
        created = await service.process_manual_order(_intake(shop, today, start))

        with pytest.raises(InvalidStateTransitionException):
            await service.update_order_status(created.order.id, target)

    @pytest.mark.asyncio
    async def test_order_with_ticket_completes_only_through_it(
        self, db, service, shop, today, settings
    ):
        created = await service.process_manual_order(
            _intake(shop, today, OrderStatus.CONFIRMED)
        )

        with pytest.raises(InvalidStateTransitionException, match="completes when job ticket"):
            await service.update_order_status(created.order.id, OrderStatus.COMPLETED)

        order = await service.get_order(created.order.id)
        assert order.status == OrderStatus.CONFIRMED
        tickets = JobTicketService(db, settings)
        ticket = await tickets.get_job_ticket(created.job_ticket.id)
        assert ticket.status == JobTicketStatus.IN_PROGRESS

        # Cancelling afterwards still works because the order never completed
        result = await service.update_order_status(created.order.id, OrderStatus.CANCELLED)
        assert result.job_ticket_cancelled is True

    @pytest.mark.asyncio
    async def test_terminal_orders_stay_terminal(self, service, shop, today):
        created = await service.process_manual_order(_intake(shop, today))
        await service.update_order_status(created.order.id, OrderStatus.CANCELLED)

        with pytest.raises(InvalidStateTransitionException):
            await service.update_order_status(created.order.id, OrderStatus.CONFIRMED)
