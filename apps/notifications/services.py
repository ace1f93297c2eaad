"""Notification outbox service."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

from django.conf import settings  # type: ignore
from django.db import models, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.base import DomainEvent

from .dispatchers import get_dispatcher
from .models import NotificationIntent

logger = logging.getLogger(__name__)


class NotificationService:
    """Writes notification intents and delivers them through the dispatcher."""

    @classmethod
    def enqueue(
        cls,
        company_id: int | None,
        event_type: str,
        payload: dict | None = None,
        *,
        event_id: UUID | None = None,
        delay_minutes: int = 0,
    ) -> NotificationIntent:
        """Store a pending notification and schedule its delivery."""

        intent = NotificationIntent.objects.create(
            company_id=company_id,
            event_type=event_type,
            event_id=event_id,
            payload=cls._make_json_safe(payload or {}),
            scheduled_for=timezone.now() + timedelta(minutes=delay_minutes),
        )
        logger.info(f"Scheduled {event_type} notification {intent.pk} for {intent.scheduled_for}")

        if delay_minutes == 0:
            try:
                from .tasks import deliver_notification

                deliver_notification.delay(intent.pk)
            except Exception as exc:  # noqa: BLE001 - the queue drain picks it up later
                logger.warning(f"Failed to schedule delivery of notification {intent.pk}: {exc}")

        return intent

    @classmethod
    def enqueue_event(cls, event: DomainEvent) -> NotificationIntent:
        payload = event.payload()
        payload["occurred_at"] = event.occurred_at
        return cls.enqueue(
            event.company_id,
            event.event_type,
            payload,
            event_id=event.event_id,
        )

    @classmethod
    def deliver(cls, intent_id: int) -> bool:
        """
        Deliver one pending intent.

        Failed deliveries go back to the queue NOTIFICATION_RETRY_DELAY_MINUTES
        later until NOTIFICATION_MAX_ATTEMPTS is reached, then the intent is
        marked failed. Returns True when the notification was sent.
        """

        with transaction.atomic():
            intent = (
                NotificationIntent.objects.select_for_update()
                .filter(pk=intent_id, status=NotificationIntent.Status.PENDING)
                .first()
            )
            if intent is None:
                return False

            intent.status = NotificationIntent.Status.PROCESSING
            intent.attempts += 1
            intent.save(update_fields=["status", "attempts", "updated_at"])

        try:
            result = get_dispatcher().notify(intent.company_id, intent.event_type, intent.payload)
            if not isinstance(result, dict):
                raise TypeError(f"Dispatcher returned {type(result).__name__}, expected dict")
        except Exception as e:
            logger.error(f"Error dispatching notification {intent.pk}: {e}", exc_info=True)
            result = {"success": False, "error": str(e)}

        try:
            if result.get("success"):
                intent.status = NotificationIntent.Status.SENT
                intent.sent_at = timezone.now()
                intent.last_error = ""
            else:
                intent.last_error = str(result.get("error") or "Dispatcher reported a failure")
                cls._schedule_retry(intent)

            intent.save(
                update_fields=["status", "sent_at", "last_error", "scheduled_for", "updated_at"]
            )
        except Exception as e:
            logger.error(f"Error recording notification {intent.pk}: {e}", exc_info=True)
            cls._release(intent, str(e))
            return False

        return intent.status == NotificationIntent.Status.SENT

    @classmethod
    def _schedule_retry(cls, intent: NotificationIntent) -> None:
        if intent.attempts >= settings.NOTIFICATION_MAX_ATTEMPTS:
            intent.status = NotificationIntent.Status.FAILED
            logger.error(
                f"Notification {intent.pk} ({intent.event_type}) failed after "
                f"{intent.attempts} attempts: {intent.last_error}"
            )
        else:
            intent.status = NotificationIntent.Status.PENDING
            intent.scheduled_for = timezone.now() + timedelta(
                minutes=settings.NOTIFICATION_RETRY_DELAY_MINUTES
            )

    @classmethod
    def _release(cls, intent: NotificationIntent, error: str) -> None:
        """Take an intent out of ``processing`` after an unexpected failure."""

        intent.last_error = error
        intent.sent_at = None
        cls._schedule_retry(intent)
        NotificationIntent.objects.filter(pk=intent.pk).update(
            status=intent.status,
            attempts=intent.attempts,
            last_error=intent.last_error,
            scheduled_for=intent.scheduled_for,
            sent_at=None,
            updated_at=timezone.now(),
        )

    @classmethod
    def process_queue(cls, batch_size: int | None = None) -> dict[str, int]:
        """Deliver the pending intents that are due, oldest first."""

        batch_size = batch_size or settings.NOTIFICATION_BATCH_SIZE
        intent_ids = list(
            NotificationIntent.objects.filter(
                status=NotificationIntent.Status.PENDING,
                scheduled_for__lte=timezone.now(),
            )
            .order_by("scheduled_for")
            .values_list("pk", flat=True)[:batch_size]
        )

        sent = 0
        for intent_id in intent_ids:
            try:
                if cls.deliver(intent_id):
                    sent += 1
            except Exception as e:
                logger.error(f"Error processing notification {intent_id}: {e}", exc_info=True)

        return {"processed": len(intent_ids), "sent": sent}

    @classmethod
    def _make_json_safe(cls, value):
        if isinstance(value, dict):
            return {str(key): cls._make_json_safe(val) for key, val in value.items()}

        if isinstance(value, (list, tuple, set)):
            return [cls._make_json_safe(item) for item in value]

        if isinstance(value, models.Model):
            return {
                "model": value._meta.label_lower,
                "pk": value.pk,
            }

        if isinstance(value, Enum):
            return cls._make_json_safe(value.value)

        if isinstance(value, (datetime, date)):
            return value.isoformat()

        if isinstance(value, Decimal):
            return str(value)

        if isinstance(value, UUID):
            return str(value)

        if isinstance(value, (str, int, float, bool)) or value is None:
            return value

        return str(value)
