"""Celery tasks for outbound notifications."""

from celery_app import celery
from bakeflow.modules.notifications.channels import NotificationChannelRegistry


@celery.task(name="bakeflow.modules.notifications.tasks.send_notification")
def send_notification(recipient: str, message: str):
    """Deliver a message to a staff member or merchant on every channel."""
    return NotificationChannelRegistry.deliver(recipient, message)
