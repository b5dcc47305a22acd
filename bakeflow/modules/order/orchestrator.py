"""Order orchestrator: turns an inbound order into priced, scheduled production work."""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bakeflow.clock import business_today
from bakeflow.config import Settings, settings as default_settings
from bakeflow.exceptions import AppException, NotFoundException
from bakeflow.models.enums import OrderStatus
from bakeflow.models.merchant import Merchant
from bakeflow.models.order import Order
from bakeflow.modules.credit.service import CreditService
from bakeflow.modules.events.outbox_service import OutboxService
from bakeflow.modules.inventory.service import InventoryService
from bakeflow.modules.job_ticket.service import JobTicketService
from bakeflow.modules.notifications.service import CeleryNotifier, Notifier, notify_after_commit
from bakeflow.modules.order.constants import DEFAULT_DELIVERY_LEAD_DAYS, EVENT_ORDER_CREATED
from bakeflow.modules.order.schemas import (
    JobTicketSummary,
    OrderIntake,
    OrderProcessingResult,
    OrderResponse,
)
from bakeflow.modules.pricing.cache import PricingCache
from bakeflow.modules.pricing.schemas import OrderPricing
from bakeflow.modules.pricing.service import PricingService
from bakeflow.modules.waste.service import WasteService
from bakeflow.modules.workflow.selector import WorkflowSelector

logger = logging.getLogger(__name__)


class OrderOrchestrator:
    """Runs the full intake pipeline as one all-or-nothing unit.

    Credit guard, pricing, ingredient check, waste reconciliation, order
    creation, workflow selection and job ticket creation share a single
    transaction. Any domain failure rolls all of it back and comes back as a
    failed :class:`OrderProcessingResult`.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
        pricing_cache: PricingCache | None = None,
    ):
        if session_factory is None:
            from bakeflow.database.engine import async_session

            session_factory = async_session
        self.session_factory = session_factory
        self.settings = settings or default_settings
        self.notifier = notifier or CeleryNotifier(self.settings)
        self.pricing_cache = pricing_cache

    async def process_order(self, intake: OrderIntake) -> OrderProcessingResult:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await self._process(session, intake)
        except AppException as exc:
            logger.info(
                "Order from merchant %s rejected (%s): %s",
                intake.merchant_id, exc.code, exc.message,
            )
            return OrderProcessingResult(
                success=False,
                error_code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        return result

    async def _process(self, session: AsyncSession, intake: OrderIntake) -> OrderProcessingResult:
        merchant = await session.get(Merchant, intake.merchant_id)
        if merchant is None:
            raise NotFoundException(f"Merchant {intake.merchant_id} not found")

        await CreditService(session).ensure_credit(merchant.id)
        pricing = await PricingService(
            session, self.settings, self.pricing_cache
        ).calculate_order_total(merchant.id, intake.items)
        await InventoryService(session).ensure_available(intake.items)
        waste = await WasteService(session, self.settings).process_reorder(
            merchant.id, intake.items
        )

        delivery_date = intake.delivery_date or (
            business_today(self.settings) + timedelta(days=DEFAULT_DELIVERY_LEAD_DAYS)
        )
        order = Order(
            merchant_id=merchant.id,
            source_ref=intake.source_ref,
            order_items=self._order_items(intake, pricing),
            total_amount=pricing.total,
            requested_delivery_date=delivery_date,
            status=OrderStatus.CONFIRMED,
            special_notes=intake.special_notes,
            delivery_address=intake.delivery_address or merchant.location_address,
        )
        session.add(order)
        await session.flush()

        workflow = await WorkflowSelector(session, self.settings).select(
            delivery_date, pricing.total
        )
        order.assigned_workflow_id = workflow.id
        ticket = await JobTicketService(
            session, self.settings, self.notifier
        ).create_from_order(order, workflow)

        await OutboxService(session).publish_event(
            event_type=EVENT_ORDER_CREATED,
            aggregate_type="order",
            aggregate_id=order.id,
            payload={
                "order_id": str(order.id),
                "merchant_id": str(merchant.id),
                "source_ref": intake.source_ref,
                "total_amount": str(order.total_amount),
                "requested_delivery_date": delivery_date.isoformat(),
                "job_ticket_number": ticket.job_ticket_number,
                "waste_savings": str(waste.total_savings),
            },
        )
        notify_after_commit(
            session,
            self.notifier,
            merchant.contact_phone,
            f"Order confirmed. Job ticket {ticket.job_ticket_number}, "
            f"total ${order.total_amount:,.2f}, delivery {delivery_date:%Y-%m-%d}.",
        )

        logger.info(
            "Order %s processed for merchant %s: ticket %s, total %s",
            order.id, merchant.id, ticket.job_ticket_number, order.total_amount,
        )
        return OrderProcessingResult(
            success=True,
            order=OrderResponse.model_validate(order),
            job_ticket=JobTicketSummary.model_validate(ticket),
            waste_prevention=waste,
            message=f"Order confirmed with job ticket {ticket.job_ticket_number}",
        )

    @staticmethod
    def _order_items(intake: OrderIntake, pricing: OrderPricing) -> list[dict]:
        lines = []
        for item, priced in zip(intake.items, pricing.breakdown):
            line = item.to_order_item()
            line["unit_price"] = str(priced.unit_price)
            line["line_total"] = str(priced.line_total)
            lines.append(line)
        return lines
