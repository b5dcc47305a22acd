"""Celery tasks for waste tracking automation."""

from __future__ import annotations

import asyncio
import logging

from celery_app import celery
from bakeflow.database.engine import async_session

logger = logging.getLogger(__name__)


async def _generate_waste_alerts_async() -> dict:
    """Refresh tracking statuses, raise expiry alerts and schedule pickups."""
    from bakeflow.modules.waste.service import WasteService

    async with async_session() as session:
        svc = WasteService(session)
        alerts = await svc.generate_waste_alerts()
        await session.commit()

    return {
        "alerts": len(alerts),
        "collection_required": sum(1 for alert in alerts if alert.collection_required),
        "merchants": len({alert.merchant_id for alert in alerts}),
    }


@celery.task(name="bakeflow.modules.waste.tasks.generate_waste_alerts")
def generate_waste_alerts():
    """Daily beat: expiry alerts and waste collection scheduling."""
    stats = asyncio.run(_generate_waste_alerts_async())
    logger.info("Waste alerts generated: %s", stats)
    return stats
