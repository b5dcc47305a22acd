"""Order service: admin order entry and status changes."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from bakeflow.config import Settings, settings as default_settings
from bakeflow.exceptions import (
    BusinessRuleException,
    InvalidStateTransitionException,
    NotFoundException,
)
from bakeflow.models.enums import JobTicketStatus, OrderStatus
from bakeflow.models.merchant import Merchant
from bakeflow.models.order import Order
from bakeflow.modules.events.outbox_service import OutboxService
from bakeflow.modules.job_ticket.service import JobTicketService
from bakeflow.modules.notifications.service import Notifier
from bakeflow.modules.order.constants import (
    EVENT_ORDER_CREATED,
    EVENT_ORDER_STATUS_CHANGED,
    MANUAL_ENTRY_STATUSES,
    VALID_TRANSITIONS,
)
from bakeflow.modules.order.schemas import (
    JobTicketSummary,
    ManualOrderIntake,
    OrderProcessingResult,
    OrderResponse,
    OrderStatusUpdateResult,
)
from bakeflow.modules.workflow.selector import WorkflowSelector

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
    ):
        self.db = db
        self.settings = settings or default_settings
        self.job_tickets = JobTicketService(db, self.settings, notifier)
        self.outbox = OutboxService(db)

    async def get_order(self, order_id: uuid.UUID) -> Order:
        order = await self.db.get(Order, order_id)
        if order is None:
            raise NotFoundException(f"Order {order_id} not found")
        return order

    async def process_manual_order(self, intake: ManualOrderIntake) -> OrderProcessingResult:
        """Record an admin-entered order as given.

        Admin entry bypasses credit, pricing and stock checks; the total and
        workflow are taken from the intake. A job ticket is created only for
        orders entered as CONFIRMED.
        """
        if intake.status not in MANUAL_ENTRY_STATUSES:
            raise BusinessRuleException(
                f"Manual orders must start as PENDING or CONFIRMED, not {intake.status.value}"
            )
        merchant = await self.db.get(Merchant, intake.merchant_id)
        if merchant is None:
            raise NotFoundException(f"Merchant {intake.merchant_id} not found")
        workflow = await WorkflowSelector(self.db, self.settings).get_workflow(intake.workflow_id)

        order = Order(
            merchant_id=merchant.id,
            order_items=[item.to_order_item() for item in intake.items],
            total_amount=intake.total_amount,
            requested_delivery_date=intake.delivery_date,
            status=intake.status,
            special_notes=intake.special_notes,
            delivery_address=intake.delivery_address or merchant.location_address,
            assigned_workflow_id=workflow.id,
            payment_terms_override=intake.payment_terms_override,
        )
        self.db.add(order)
        await self.db.flush()

        ticket = None
        if order.status == OrderStatus.CONFIRMED:
            ticket = await self.job_tickets.create_from_order(order, workflow)

        await self.outbox.publish_event(
            event_type=EVENT_ORDER_CREATED,
            aggregate_type="order",
            aggregate_id=order.id,
            payload={
                "order_id": str(order.id),
                "merchant_id": str(merchant.id),
                "total_amount": str(order.total_amount),
                "status": order.status.value,
                "manual": True,
            },
        )
        logger.info(
            "Manual order %s created for merchant %s (%s)",
            order.id, merchant.id, order.status.value,
        )
        return OrderProcessingResult(
            success=True,
            order=OrderResponse.model_validate(order),
            job_ticket=JobTicketSummary.model_validate(ticket) if ticket else None,
        )

    async def update_order_status(
        self,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        triggered_by: uuid.UUID | None = None,
    ) -> OrderStatusUpdateResult:
        """Confirm or cancel an order.

        Confirming creates the job ticket if there is none yet; cancelling
        cancels a ticket that is still live. An order with a job ticket is
        completed by that ticket, never directly.
        """
        order = await self.get_order(order_id)
        previous = order.status
        if new_status not in VALID_TRANSITIONS.get(previous, set()):
            raise InvalidStateTransitionException(
                f"Cannot change order status from {previous.value} to {new_status.value}"
            )

        ticket = await self.job_tickets.get_job_ticket_for_order(order.id)
        if new_status == OrderStatus.COMPLETED and ticket is not None:
            # Completion belongs to the ticket; it carries cost and invoicing hand-offs
            raise InvalidStateTransitionException(
                f"Order {order.id} completes when job ticket {ticket.job_ticket_number} "
                "finishes its last step"
            )
        created = cancelled = False
        order.status = new_status

        if new_status == OrderStatus.CONFIRMED and ticket is None:
            ticket = await self.job_tickets.create_from_order(order)
            created = True
        elif new_status == OrderStatus.CANCELLED and ticket is not None:
            if ticket.status not in (JobTicketStatus.COMPLETED, JobTicketStatus.CANCELLED):
                ticket = await self.job_tickets.cancel(
                    ticket.id, triggered_by=triggered_by, reason="Order cancelled"
                )
                cancelled = True
        await self.db.flush()

        await self.outbox.publish_event(
            event_type=EVENT_ORDER_STATUS_CHANGED,
            aggregate_type="order",
            aggregate_id=order.id,
            payload={
                "order_id": str(order.id),
                "from_status": previous.value,
                "to_status": new_status.value,
                "triggered_by": str(triggered_by) if triggered_by else None,
            },
        )
        logger.info("Order %s status %s -> %s", order.id, previous.value, new_status.value)
        return OrderStatusUpdateResult(
            order=OrderResponse.model_validate(order),
            previous_status=previous,
            job_ticket_created=created,
            job_ticket_cancelled=cancelled,
            job_ticket=JobTicketSummary.model_validate(ticket) if ticket else None,
        )
