"""Celery tasks for the notification outbox."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

logger = logging.getLogger(__name__)


@shared_task(name="notifications.deliver_notification")
def deliver_notification(intent_id: int) -> bool:
    """Hand one notification intent to the dispatcher."""
    from .services import NotificationService

    return NotificationService.deliver(intent_id)


@shared_task(name="notifications.process_notification_queue")
def process_notification_queue() -> dict[str, int]:
    """Periodic drain of pending notifications (retries included)."""
    from .services import NotificationService

    result = NotificationService.process_queue()
    if result["processed"]:
        logger.info(f"Processed notification queue: {result}")
    return result
