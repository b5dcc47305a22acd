"""Business-calendar helpers shared by the services."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from bakeflow.config import Settings, settings as default_settings


def business_today(settings: Settings | None = None) -> date:
    """Today's date in the bakery's business timezone."""
    tz = ZoneInfo((settings or default_settings).business_timezone)
    return datetime.now(tz).date()


def as_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def next_weekday(day: date) -> date:
    """The first Monday-to-Friday date strictly after ``day``."""
    candidate = day + timedelta(days=1)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate
