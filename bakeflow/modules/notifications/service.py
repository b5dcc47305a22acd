"""Fire-and-forget notification sink used by the order and production services."""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from bakeflow.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, recipient: str | None, message: str) -> bool:
        """Queue a message; returns False when nothing was sent. Must not raise."""
        ...


class CeleryNotifier:
    """Enqueues ``send_notification`` on the notifications queue.

    Failures to enqueue are logged and swallowed; production state never
    depends on a message going out.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or default_settings

    def notify(self, recipient: str | None, message: str) -> bool:
        if not self.settings.notifications_enabled:
            return False
        if not recipient:
            logger.debug("Notification skipped, no recipient: %s", message)
            return False
        try:
            from bakeflow.modules.notifications.tasks import send_notification

            send_notification.delay(recipient, message)
        except Exception:
            logger.exception("Failed to enqueue notification for %s", recipient)
            return False
        return True


class NullNotifier:
    """Drops every message. For scripts and contexts without a broker."""

    def notify(self, recipient: str | None, message: str) -> bool:
        return False


_PENDING_KEY = "bakeflow.pending_notifications"
_LISTENING_KEY = "bakeflow.notification_hooks"


def notify_after_commit(
    session: AsyncSession, notifier: Notifier, recipient: str | None, message: str
) -> None:
    """Hold a notification until the session commits; drop it on rollback."""
    sync_session = session.sync_session
    if not sync_session.info.get(_LISTENING_KEY):
        event.listen(sync_session, "after_commit", _send_pending)
        event.listen(sync_session, "after_rollback", _discard_pending)
        sync_session.info[_LISTENING_KEY] = True
    sync_session.info.setdefault(_PENDING_KEY, []).append((notifier, recipient, message))


def _send_pending(sync_session: Session) -> None:
    for notifier, recipient, message in sync_session.info.pop(_PENDING_KEY, []):
        try:
            notifier.notify(recipient, message)
        except Exception:
            logger.exception("Notifier raised for %s", recipient)


def _discard_pending(sync_session: Session) -> None:
    dropped = sync_session.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.debug("Dropped %d notification(s) after rollback", len(dropped))
