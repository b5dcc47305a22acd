"""Workflow selection for new orders."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakeflow.clock import business_today
from bakeflow.config import Settings, settings as default_settings
from bakeflow.exceptions import NoWorkflowAvailableException, NotFoundException
from bakeflow.models.enums import WorkflowType
from bakeflow.models.workflow import Workflow

logger = logging.getLogger(__name__)


class WorkflowSelector:
    """Pick the production workflow for an order.

    Rules, first match wins:

    1. delivery due today -> active RUSH workflow, if one exists
    2. otherwise, total above the high-value threshold -> active CUSTOM workflow, if one exists
    3. otherwise the active STANDARD workflow
    """

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or default_settings

    async def _active_workflow(self, workflow_type: WorkflowType) -> Workflow | None:
        result = await self.db.execute(
            select(Workflow)
            .where(
                Workflow.workflow_type == workflow_type,
                Workflow.active_status.is_(True),
            )
            .order_by(Workflow.created_at.asc(), Workflow.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def select(self, delivery_date: date, total_amount: Decimal) -> Workflow:
        # Same-day delivery claims the rush rule even without a RUSH template,
        # so a high-value same-day order falls back to STANDARD, not CUSTOM.
        if delivery_date == business_today(self.settings):
            workflow = await self._active_workflow(WorkflowType.RUSH)
        elif Decimal(total_amount) > Decimal(str(self.settings.high_value_order_threshold)):
            workflow = await self._active_workflow(WorkflowType.CUSTOM)
        else:
            workflow = None
        if workflow is not None:
            return workflow

        workflow = await self._active_workflow(WorkflowType.STANDARD)
        if workflow is None:
            logger.error("No active STANDARD workflow configured")
            raise NoWorkflowAvailableException("No standard workflow available")
        return workflow

    async def get_workflow(self, workflow_id) -> Workflow:
        workflow = await self.db.get(Workflow, workflow_id)
        if workflow is None:
            raise NotFoundException(f"Workflow {workflow_id} not found")
        return workflow
