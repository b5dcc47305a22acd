"""Job ticket engine: materializes workflow steps and drives them to completion."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bakeflow.clock import as_aware, business_today
from bakeflow.config import Settings, settings as default_settings
from bakeflow.exceptions import (
    ConfigurationException,
    ConflictException,
    InvalidStateTransitionException,
    NotFoundException,
    UnauthorizedException,
)
from bakeflow.models.enums import (
    JobTicketPriority,
    JobTicketStatus,
    JobTicketTransitionType,
    OrderStatus,
    ProgressOutcome,
    StepStatus,
    UserStatus,
)
from bakeflow.models.job_ticket import JobTicket
from bakeflow.models.job_ticket_step import JobTicketStep
from bakeflow.models.job_ticket_transition import JobTicketTransition
from bakeflow.models.merchant import Merchant
from bakeflow.models.order import Order
from bakeflow.models.user import User
from bakeflow.models.workflow import Workflow
from bakeflow.modules.catalog.service import CatalogService
from bakeflow.modules.events.outbox_service import OutboxService
from bakeflow.modules.job_ticket.constants import (
    DURATION_BUFFER_SETTING,
    EVENT_INVENTORY_DEDUCTION_REQUESTED,
    EVENT_INVOICE_REQUESTED,
    EVENT_JOB_TICKET_CANCELLED,
    EVENT_JOB_TICKET_COMPLETED,
    EVENT_JOB_TICKET_CREATED,
    EVENT_PRODUCT_TRACKING_REQUESTED,
    EVENT_STEP_UNASSIGNED,
    TICKET_NUMBER_PREFIX,
    VALID_TRANSITIONS,
)
from bakeflow.modules.job_ticket.schemas import JobTicketStepResponse, ProgressResult
from bakeflow.modules.notifications.service import CeleryNotifier, Notifier, notify_after_commit
from bakeflow.modules.pricing.constants import CENT
from bakeflow.modules.staff.roles import Capability, capability_for_step

logger = logging.getLogger(__name__)

# Steps that still hold work; both are skipped on cancellation
_OPEN_STEP_STATUSES = (StepStatus.PENDING, StepStatus.ACTIVE)


class JobTicketService:
    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
    ):
        self.db = db
        self.settings = settings or default_settings
        self.notifier = notifier or CeleryNotifier(self.settings)
        self.catalog = CatalogService(db)
        self.outbox = OutboxService(db)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_job_ticket(self, ticket_id: uuid.UUID, for_update: bool = False) -> JobTicket:
        statement = select(JobTicket).where(JobTicket.id == ticket_id)
        if for_update:
            statement = statement.with_for_update()
        result = await self.db.execute(statement)
        ticket = result.scalar_one_or_none()
        if ticket is None:
            raise NotFoundException(f"Job ticket {ticket_id} not found")
        return ticket

    async def get_job_ticket_for_order(self, order_id: uuid.UUID) -> JobTicket | None:
        result = await self.db.execute(select(JobTicket).where(JobTicket.order_id == order_id))
        return result.scalar_one_or_none()

    async def get_steps(self, ticket_id: uuid.UUID) -> list[JobTicketStep]:
        result = await self.db.execute(
            select(JobTicketStep)
            .where(JobTicketStep.job_ticket_id == ticket_id)
            .order_by(JobTicketStep.step_number)
        )
        return list(result.scalars().all())

    async def get_transitions(self, ticket_id: uuid.UUID) -> list[JobTicketTransition]:
        result = await self.db.execute(
            select(JobTicketTransition)
            .where(JobTicketTransition.job_ticket_id == ticket_id)
            .order_by(JobTicketTransition.created_at, JobTicketTransition.id)
        )
        return list(result.scalars().all())

    async def _get_step(self, ticket_id: uuid.UUID, step_number: int) -> JobTicketStep | None:
        result = await self.db.execute(
            select(JobTicketStep).where(
                JobTicketStep.job_ticket_id == ticket_id,
                JobTicketStep.step_number == step_number,
            )
        )
        return result.scalar_one_or_none()

    async def _count_steps(self, ticket_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(JobTicketStep).where(
                JobTicketStep.job_ticket_id == ticket_id
            )
        )
        return result.scalar() or 0

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def _next_ticket_number(self) -> str:
        prefix = f"{TICKET_NUMBER_PREFIX}{business_today(self.settings):%y%m%d}"
        result = await self.db.execute(
            select(func.count()).select_from(JobTicket).where(
                JobTicket.job_ticket_number.like(f"{prefix}%")
            )
        )
        sequence = (result.scalar() or 0) + 1
        return f"{prefix}{sequence:03d}"

    def determine_priority(self, order: Order, merchant: Merchant | None) -> JobTicketPriority:
        if order.requested_delivery_date == business_today(self.settings):
            return JobTicketPriority.URGENT
        threshold = Decimal(str(self.settings.high_value_order_threshold))
        if Decimal(order.total_amount) > threshold or (merchant is not None and merchant.is_vip):
            return JobTicketPriority.HIGH
        return JobTicketPriority.NORMAL

    def estimate_completion(
        self, workflow: Workflow, priority: JobTicketPriority, start: datetime
    ) -> datetime:
        buffer = getattr(self.settings, DURATION_BUFFER_SETTING[priority])
        minutes = (workflow.estimated_total_duration_minutes or 0) * buffer
        return start + timedelta(minutes=minutes)

    async def create_from_order(
        self, order: Order, workflow: Workflow | None = None, triggered_by: uuid.UUID | None = None
    ) -> JobTicket:
        """Create the job ticket for a confirmed order and assign its first step."""
        if workflow is None:
            if order.assigned_workflow_id is None:
                raise ConfigurationException(f"Order {order.id} has no assigned workflow")
            workflow = await self.db.get(Workflow, order.assigned_workflow_id)
            if workflow is None:
                raise NotFoundException(f"Workflow {order.assigned_workflow_id} not found")
        if not workflow.workflow_steps:
            raise ConfigurationException(f"Workflow '{workflow.workflow_name}' has no steps")

        # Resolve every step before writing anything
        capabilities = [capability_for_step(step) for step in workflow.workflow_steps]

        order.assigned_workflow_id = workflow.id
        merchant = await self.db.get(Merchant, order.merchant_id)
        priority = self.determine_priority(order, merchant)
        now = datetime.now(UTC)

        ticket = JobTicket(
            order_id=order.id,
            workflow_id=workflow.id,
            job_ticket_number=await self._next_ticket_number(),
            priority_level=priority,
            status=JobTicketStatus.PENDING,
            current_step_number=1,
            start_timestamp=now,
            estimated_completion_timestamp=self.estimate_completion(workflow, priority, now),
            total_production_cost=Decimal("0"),
        )
        self.db.add(ticket)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            # Concurrent creation drew the same daily sequence number
            if "job_ticket_number" in str(exc):
                raise ConflictException(
                    f"Job ticket number {ticket.job_ticket_number} is already taken, "
                    "please resubmit the order",
                    details=[{"field": "job_ticket_number", "message": ticket.job_ticket_number}],
                ) from exc
            raise

        for number, (definition, capability) in enumerate(
            zip(workflow.workflow_steps, capabilities), start=1
        ):
            self.db.add(
                JobTicketStep(
                    job_ticket_id=ticket.id,
                    step_number=number,
                    step_name=definition.get("step_name") or f"Step {number}",
                    assigned_role=capability.role,
                    required_department=capability.department,
                    step_type=definition.get("step_type") or "production",
                    status=StepStatus.PENDING,
                )
            )
        await self.db.flush()

        await self.auto_assign_step(ticket, 1)
        await self._record_transition(
            ticket,
            JobTicketTransitionType.CREATE,
            from_step=None,
            to_step=1,
            triggered_by=triggered_by,
        )

        await self.outbox.publish_event(
            event_type=EVENT_JOB_TICKET_CREATED,
            aggregate_type="job_ticket",
            aggregate_id=ticket.id,
            payload={
                "job_ticket_id": str(ticket.id),
                "job_ticket_number": ticket.job_ticket_number,
                "order_id": str(order.id),
                "workflow_id": str(workflow.id),
                "priority": priority.value,
            },
        )

        logger.info(
            "Job ticket %s created for order %s (workflow %s, priority %s)",
            ticket.job_ticket_number, order.id, workflow.id, priority.value,
        )
        return ticket

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    async def _least_loaded_user(self, capability: Capability) -> User | None:
        active_steps = (
            select(func.count(JobTicketStep.id))
            .where(
                JobTicketStep.assigned_user_id == User.id,
                JobTicketStep.status == StepStatus.ACTIVE,
            )
            .correlate(User)
            .scalar_subquery()
        )
        statement = select(User).where(
            User.status == UserStatus.ACTIVE,
            User.role == capability.role,
        )
        if capability.department is not None:
            statement = statement.where(User.department == capability.department)
        statement = statement.order_by(active_steps.asc(), User.id.asc()).limit(1)
        result = await self.db.execute(statement)
        return result.scalar_one_or_none()

    async def auto_assign_step(self, ticket: JobTicket, step_number: int) -> JobTicketStep | None:
        """Start a step with the least-loaded eligible user.

        With nobody eligible the step stays PENDING and unassigned and a
        ``job_ticket.step_unassigned`` event is published; this never fails
        the surrounding operation.
        """
        step = await self._get_step(ticket.id, step_number)
        if step is None:
            return None

        capability = Capability(step.assigned_role, step.required_department)
        user = await self._least_loaded_user(capability)
        if user is None:
            logger.warning(
                "No active user with role %s%s for step %d of job ticket %s",
                capability.role.value,
                f" in {capability.department.value}" if capability.department else "",
                step_number,
                ticket.job_ticket_number,
            )
            step.status = StepStatus.PENDING
            step.assigned_user_id = None
            await self.outbox.publish_event(
                event_type=EVENT_STEP_UNASSIGNED,
                aggregate_type="job_ticket",
                aggregate_id=ticket.id,
                payload={
                    "job_ticket_id": str(ticket.id),
                    "job_ticket_number": ticket.job_ticket_number,
                    "step_number": step_number,
                    "step_name": step.step_name,
                    "required_role": capability.role.value,
                    "required_department": (
                        capability.department.value if capability.department else None
                    ),
                },
            )
            return step

        step.assigned_user_id = user.id
        step.status = StepStatus.ACTIVE
        step.start_timestamp = datetime.now(UTC)
        await self.db.flush()

        notify_after_commit(
            self.db,
            self.notifier,
            user.phone,
            f"Job {ticket.job_ticket_number}: step {step_number} '{step.step_name}' "
            "is assigned to you.",
        )
        logger.info(
            "Step %d of job ticket %s assigned to user %s",
            step_number, ticket.job_ticket_number, user.id,
        )
        return step

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _record_transition(
        self,
        ticket: JobTicket,
        transition_type: JobTicketTransitionType,
        from_step: int | None,
        to_step: int | None,
        triggered_by: uuid.UUID | None = None,
        reason: str | None = None,
    ) -> JobTicketTransition:
        """Validate a move against VALID_TRANSITIONS, apply the new status and log it."""
        current_status = ticket.status
        allowed = VALID_TRANSITIONS.get(current_status, {})
        if transition_type not in allowed:
            raise InvalidStateTransitionException(
                f"Cannot {transition_type.value.lower()} job ticket "
                f"{ticket.job_ticket_number} in status {current_status.value}"
            )
        ticket.status = allowed[transition_type]

        transition = JobTicketTransition(
            job_ticket_id=ticket.id,
            transition_type=transition_type,
            from_step=from_step,
            to_step=to_step,
            from_status=current_status,
            to_status=ticket.status,
            triggered_by=triggered_by,
            reason=reason,
        )
        self.db.add(transition)
        await self.db.flush()
        return transition

    async def progress(
        self,
        ticket_id: uuid.UUID,
        user_id: uuid.UUID,
        notes: str | None = None,
        quality_passed: bool | None = None,
        quality_notes: str | None = None,
    ) -> ProgressResult:
        """Complete the current step as ``user_id`` and move the ticket on.

        A failed quality check sends the ticket back one step; otherwise it
        advances to the override step or the next one, completing the ticket
        past the last step.
        """
        ticket = await self.get_job_ticket(ticket_id, for_update=True)
        if ticket.status != JobTicketStatus.IN_PROGRESS:
            raise InvalidStateTransitionException(
                f"Job ticket {ticket.job_ticket_number} is {ticket.status.value}, not IN_PROGRESS"
            )

        step_number = ticket.current_step_number
        step = await self._get_step(ticket.id, step_number)
        if step is None or step.status not in _OPEN_STEP_STATUSES:
            raise InvalidStateTransitionException(
                f"Step {step_number} of job ticket {ticket.job_ticket_number} cannot be completed"
            )

        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundException(f"User {user_id} not found")
        capability = Capability(step.assigned_role, step.required_department)
        if not capability.allows(user.role, user.department):
            department = (
                f" in {step.required_department.value}" if step.required_department else ""
            )
            raise UnauthorizedException(
                f"Step '{step.step_name}' requires role {step.assigned_role.value}{department}"
            )
        if step.assigned_user_id is not None and step.assigned_user_id != user.id:
            raise UnauthorizedException(f"Step '{step.step_name}' is assigned to another user")

        now = datetime.now(UTC)
        step.status = StepStatus.COMPLETED
        step.completion_timestamp = now
        step.completed_by_user_id = user.id
        step.notes = notes
        step.quality_check_passed = quality_passed
        if step.start_timestamp is not None:
            elapsed = now - as_aware(step.start_timestamp)
            step.time_spent_minutes = int(elapsed.total_seconds() // 60)
        await self.db.flush()

        if quality_passed is False:
            return await self._rollback_for_quality(ticket, step, user, quality_notes or notes)

        total_steps = await self._count_steps(ticket.id)
        next_number = step.next_step_override or step_number + 1
        await self._skip_bypassed_steps(ticket, step_number, min(next_number, total_steps + 1))

        if next_number > total_steps:
            await self._complete(ticket, completed_by=user.id)
            return ProgressResult(
                outcome=ProgressOutcome.COMPLETED,
                job_ticket_id=ticket.id,
                status=ticket.status,
                current_step_number=ticket.current_step_number,
                message=f"Job ticket {ticket.job_ticket_number} completed",
            )

        next_step = await self._reopen_step(ticket, next_number)
        ticket.current_step_number = next_number
        await self._record_transition(
            ticket,
            JobTicketTransitionType.ADVANCE,
            from_step=step_number,
            to_step=next_number,
            triggered_by=user.id,
        )
        next_step = await self.auto_assign_step(ticket, next_number) or next_step

        logger.info(
            "Job ticket %s advanced from step %d to %d",
            ticket.job_ticket_number, step_number, next_number,
        )
        return ProgressResult(
            outcome=ProgressOutcome.PROGRESSED,
            job_ticket_id=ticket.id,
            status=ticket.status,
            current_step_number=next_number,
            next_step=JobTicketStepResponse.model_validate(next_step) if next_step else None,
            message=f"Advanced to step {next_number}",
        )

    async def _skip_bypassed_steps(self, ticket: JobTicket, after: int, before: int) -> None:
        """Mark open steps strictly between ``after`` and ``before`` as SKIPPED."""
        if before <= after + 1:
            return
        result = await self.db.execute(
            select(JobTicketStep).where(
                JobTicketStep.job_ticket_id == ticket.id,
                JobTicketStep.step_number > after,
                JobTicketStep.step_number < before,
                JobTicketStep.status.in_(_OPEN_STEP_STATUSES),
            )
        )
        skipped = result.scalars().all()
        for bypassed in skipped:
            bypassed.status = StepStatus.SKIPPED
            bypassed.assigned_user_id = None
        if skipped:
            await self.db.flush()
            logger.info(
                "Job ticket %s skipped steps %s",
                ticket.job_ticket_number, [s.step_number for s in skipped],
            )

    async def _reopen_step(self, ticket: JobTicket, step_number: int) -> JobTicketStep | None:
        step = await self._get_step(ticket.id, step_number)
        if step is not None and step.status != StepStatus.PENDING:
            step.status = StepStatus.PENDING
            step.assigned_user_id = None
            step.start_timestamp = None
            step.completion_timestamp = None
            step.completed_by_user_id = None
            step.quality_check_passed = None
            await self.db.flush()
        return step

    async def _rollback_for_quality(
        self, ticket: JobTicket, failed_step: JobTicketStep, user: User, notes: str | None
    ) -> ProgressResult:
        failed_number = failed_step.step_number
        return_to = max(1, failed_number - 1)
        ticket.quality_notes = f"Quality failure at step {failed_number}: {notes or ''}"
        ticket.current_step_number = return_to

        await self._reopen_step(ticket, return_to)
        await self._record_transition(
            ticket,
            JobTicketTransitionType.ROLLBACK,
            from_step=failed_number,
            to_step=return_to,
            triggered_by=user.id,
            reason=ticket.quality_notes,
        )
        target = await self.auto_assign_step(ticket, return_to)

        logger.warning(
            "Quality check failed on job ticket %s step %d, returned to step %d",
            ticket.job_ticket_number, failed_number, return_to,
        )
        return ProgressResult(
            outcome=ProgressOutcome.QUALITY_FAILURE,
            job_ticket_id=ticket.id,
            status=ticket.status,
            current_step_number=return_to,
            returned_to_step=return_to,
            next_step=JobTicketStepResponse.model_validate(target) if target else None,
            message="Quality check failed. Returned to previous step for correction.",
        )

    # ------------------------------------------------------------------
    # Completion and cancellation
    # ------------------------------------------------------------------

    async def production_cost(self, order: Order) -> Decimal:
        """Ingredient cost of the whole order: per line, unit recipe cost times quantity."""
        lines = order.order_items or []
        recipes = await self.catalog.get_recipes(
            uuid.UUID(str(line["recipe_id"])) for line in lines
        )
        total = Decimal("0")
        for line in lines:
            recipe = recipes.get(uuid.UUID(str(line["recipe_id"])))
            if recipe is None:
                continue
            quantity = Decimal(str(line["quantity"]))
            total += sum(
                (ingredient.cost_contribution() * quantity for ingredient in recipe.ingredients),
                Decimal("0"),
            )
        return total.quantize(CENT)

    async def complete(
        self, ticket_id: uuid.UUID, completed_by: uuid.UUID | None = None
    ) -> JobTicket:
        ticket = await self.get_job_ticket(ticket_id, for_update=True)
        return await self._complete(ticket, completed_by)

    async def _complete(self, ticket: JobTicket, completed_by: uuid.UUID | None) -> JobTicket:
        order = await self.db.get(Order, ticket.order_id)
        if order is None:
            raise NotFoundException(f"Order {ticket.order_id} not found")

        from_step = ticket.current_step_number
        total_steps = await self._count_steps(ticket.id)
        await self._record_transition(
            ticket,
            JobTicketTransitionType.COMPLETE,
            from_step=from_step,
            to_step=None,
            triggered_by=completed_by,
        )
        ticket.current_step_number = total_steps + 1
        ticket.actual_completion_timestamp = datetime.now(UTC)
        ticket.total_production_cost = await self.production_cost(order)
        order.status = OrderStatus.COMPLETED
        await self.db.flush()

        await self._publish_completion_events(ticket, order)

        logger.info(
            "Job ticket %s completed (production cost %s)",
            ticket.job_ticket_number, ticket.total_production_cost,
        )
        return ticket

    async def _publish_completion_events(self, ticket: JobTicket, order: Order) -> None:
        base = {
            "job_ticket_id": str(ticket.id),
            "job_ticket_number": ticket.job_ticket_number,
            "order_id": str(order.id),
            "merchant_id": str(order.merchant_id),
        }
        await self.outbox.publish_event(
            event_type=EVENT_JOB_TICKET_COMPLETED,
            aggregate_type="job_ticket",
            aggregate_id=ticket.id,
            payload={**base, "total_production_cost": str(ticket.total_production_cost)},
        )
        await self.outbox.publish_event(
            event_type=EVENT_INVOICE_REQUESTED,
            aggregate_type="order",
            aggregate_id=order.id,
            payload={
                **base,
                "total_amount": str(order.total_amount),
                "payment_terms_override": order.payment_terms_override,
            },
        )
        await self.outbox.publish_event(
            event_type=EVENT_INVENTORY_DEDUCTION_REQUESTED,
            aggregate_type="job_ticket",
            aggregate_id=ticket.id,
            payload={**base, "order_items": order.order_items},
        )
        await self.outbox.publish_event(
            event_type=EVENT_PRODUCT_TRACKING_REQUESTED,
            aggregate_type="order",
            aggregate_id=order.id,
            payload={
                **base,
                "order_items": order.order_items,
                "requested_delivery_date": order.requested_delivery_date.isoformat(),
            },
        )

    async def cancel(
        self,
        ticket_id: uuid.UUID,
        triggered_by: uuid.UUID | None = None,
        reason: str | None = None,
    ) -> JobTicket:
        """Cancel a live ticket and its order.

        Completed and already-cancelled tickets are rejected with
        InvalidStateTransitionException.
        """
        ticket = await self.get_job_ticket(ticket_id, for_update=True)
        order = await self.db.get(Order, ticket.order_id)
        if order is not None and order.status == OrderStatus.COMPLETED:
            raise InvalidStateTransitionException(
                f"Order {order.id} is COMPLETED; job ticket {ticket.job_ticket_number} "
                "cannot be cancelled"
            )
        await self._record_transition(
            ticket,
            JobTicketTransitionType.CANCEL,
            from_step=ticket.current_step_number,
            to_step=None,
            triggered_by=triggered_by,
            reason=reason,
        )

        for step in await self.get_steps(ticket.id):
            if step.status in _OPEN_STEP_STATUSES:
                step.status = StepStatus.SKIPPED
        ticket.actual_completion_timestamp = datetime.now(UTC)
        if order is not None:
            order.status = OrderStatus.CANCELLED
        await self.db.flush()

        await self.outbox.publish_event(
            event_type=EVENT_JOB_TICKET_CANCELLED,
            aggregate_type="job_ticket",
            aggregate_id=ticket.id,
            payload={
                "job_ticket_id": str(ticket.id),
                "order_id": str(ticket.order_id),
                "reason": reason,
            },
        )
        logger.info("Job ticket %s cancelled", ticket.job_ticket_number)
        return ticket
