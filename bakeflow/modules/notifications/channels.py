"""NotificationChannelRegistry: delivery channels for outbound staff/merchant messages."""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


def log_channel(recipient: str, message: str) -> None:
    """Default channel: record the message in the worker log."""
    logger.info("Notification to %s: %s", recipient, message)


class NotificationChannelRegistry:
    """Registry of delivery channels.

    Channels are plain callables taking ``(recipient, message)``. Every
    registered channel receives every notification; a failing channel does
    not stop the others.
    """

    _channels: dict[str, Callable[[str, str], None]] = {"log": log_channel}

    @classmethod
    def register(cls, name: str, channel: Callable[[str, str], None]) -> None:
        cls._channels[name] = channel
        logger.info("Registered notification channel %s", name)

    @classmethod
    def get_channels(cls) -> dict[str, Callable[[str, str], None]]:
        return dict(cls._channels)

    @classmethod
    def deliver(cls, recipient: str, message: str) -> list[dict]:
        """Send to all channels; returns per-channel status dicts."""
        results = []
        for name, channel in cls.get_channels().items():
            try:
                channel(recipient, message)
                results.append({"channel": name, "status": "ok"})
            except Exception as exc:
                logger.exception("Notification channel %s failed for %s", name, recipient)
                results.append({"channel": name, "status": "error", "error": str(exc)})
        return results

    @classmethod
    def reset(cls) -> None:
        """Restore the default channel set. Useful for testing."""
        cls._channels = {"log": log_channel}
