"""OutboxService: writes downstream hand-off events inside the caller's transaction."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakeflow.models.enums import EventStatus
from bakeflow.models.event_outbox import EventOutbox

logger = logging.getLogger(__name__)


class OutboxService:
    """Publishes events for invoicing, inventory, tracking and notification collaborators.

    Rows are only visible to consumers once the surrounding transaction commits,
    so a rolled-back order never leaks an event.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def publish_event(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str | uuid.UUID,
        payload: dict,
        schema_version: int = 1,
    ) -> EventOutbox:
        """Create a new event in the outbox with PENDING status."""
        event = EventOutbox(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=str(aggregate_id),
            payload=payload,
            status=EventStatus.PENDING,
            schema_version=schema_version,
        )
        self.session.add(event)
        await self.session.flush()
        logger.debug("Outbox event %s queued for %s/%s", event_type, aggregate_type, aggregate_id)
        return event

    async def get_events_for(
        self, aggregate_type: str, aggregate_id: str | uuid.UUID
    ) -> list[EventOutbox]:
        """Events recorded for one aggregate, oldest first."""
        statement = (
            select(EventOutbox)
            .where(
                EventOutbox.aggregate_type == aggregate_type,
                EventOutbox.aggregate_id == str(aggregate_id),
            )
            .order_by(EventOutbox.created_at.asc())
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())
