"""Tests for the notification outbox."""

from __future__ import annotations

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal
from unittest import mock
from uuid import UUID

import pytest
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.bookings.services import BookingAllocator
from apps.companies.models import Billboard, Client, Company
from apps.notifications.dispatchers import BaseDispatcher, LoggingDispatcher, get_dispatcher
from apps.notifications.models import NotificationIntent
from apps.notifications.services import NotificationService
from apps.notifications.tasks import process_notification_queue
from apps.proposals.services import ProposalService
from shared.domain.exceptions import BookingConflictError
from shared.domain.value_objects import PeriodType

JANUARY = {"start_date": "2025-01-01", "end_date": "2025-01-15"}


class FailingDispatcher(BaseDispatcher):
    def notify(self, company_id, event_type, payload):
        raise ConnectionError("gateway unreachable")


class RefusingDispatcher(BaseDispatcher):
    def notify(self, company_id, event_type, payload):
        return {"success": False, "error": "rejected"}


class SilentDispatcher(BaseDispatcher):
    def notify(self, company_id, event_type, payload):
        return None


class EventPublishingTests(TestCase):
    def setUp(self) -> None:
        self.company = Company.objects.create(name="Outdoor Norte")
        self.client_record = Client.objects.create(company=self.company, name="Padaria Central")
        self.billboard = Billboard.objects.create(company=self.company, code="P-001")
        self.allocator = BookingAllocator()

    def test_booking_creation_notifies_after_commit(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            booking = self.allocator.create(
                self.billboard.pk, self.client_record.pk, self.company.pk, JANUARY
            )

        intent = NotificationIntent.objects.get()
        self.assertEqual(intent.event_type, "booking.created")
        self.assertEqual(intent.company_id, self.company.pk)
        self.assertEqual(intent.payload["booking_id"], booking.pk)
        self.assertEqual(intent.payload["start_date"], "2025-01-01T00:00:00+00:00")
        self.assertEqual(intent.status, NotificationIntent.Status.SENT)
        self.assertEqual(intent.attempts, 1)

    def test_nothing_is_enqueued_before_commit(self) -> None:
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            self.allocator.create(self.billboard.pk, self.client_record.pk, self.company.pk, JANUARY)

        self.assertEqual(len(callbacks), 1)
        self.assertFalse(NotificationIntent.objects.exists())

    def test_rejected_booking_publishes_nothing(self) -> None:
        self.allocator.create(self.billboard.pk, self.client_record.pk, self.company.pk, JANUARY)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(BookingConflictError):
                self.allocator.create(
                    self.billboard.pk, self.client_record.pk, self.company.pk, JANUARY
                )

        self.assertEqual(callbacks, [])

    def test_outbox_failure_never_breaks_the_booking(self) -> None:
        with mock.patch.object(
            NotificationService, "enqueue_event", side_effect=RuntimeError("outbox down")
        ):
            with self.captureOnCommitCallbacks(execute=True):
                booking = self.allocator.create(
                    self.billboard.pk, self.client_record.pk, self.company.pk, JANUARY
                )

        self.assertIsNotNone(booking.pk)
        self.assertFalse(NotificationIntent.objects.exists())

    def test_proposal_lifecycle_events(self) -> None:
        service = ProposalService(allocator=self.allocator)

        with self.captureOnCommitCallbacks(execute=True):
            proposal = service.create(
                self.company.pk, self.client_record.pk, [self.billboard.pk], JANUARY
            )
        with self.captureOnCommitCallbacks(execute=True):
            service.update(proposal.pk, self.company.pk, {"payment_terms": "30 dias"})
        with self.captureOnCommitCallbacks(execute=True):
            service.delete(proposal.pk, self.company.pk)

        self.assertEqual(
            list(NotificationIntent.objects.order_by("pk").values_list("event_type", flat=True)),
            ["proposal.created", "proposal.updated", "proposal.deleted"],
        )
        deleted = NotificationIntent.objects.get(event_type="proposal.deleted")
        self.assertEqual(deleted.payload["bookings_removed"], 1)
        self.assertEqual(deleted.payload["proposal_code"], proposal.proposal_code)


class DeliveryTests(TestCase):
    def _intent(self, **kwargs) -> NotificationIntent:
        defaults = {"company_id": 1, "event_type": "booking.created", "payload": {"booking_id": 1}}
        defaults.update(kwargs)
        return NotificationIntent.objects.create(**defaults)

    def test_failed_delivery_is_retried_then_marked_failed(self) -> None:
        intent = self._intent()

        with mock.patch(
            "apps.notifications.services.get_dispatcher", return_value=FailingDispatcher()
        ):
            before = timezone.now()
            self.assertFalse(NotificationService.deliver(intent.pk))
            intent.refresh_from_db()
            self.assertEqual(intent.status, NotificationIntent.Status.PENDING)
            self.assertEqual(intent.attempts, 1)
            self.assertEqual(intent.last_error, "gateway unreachable")
            self.assertGreaterEqual(intent.scheduled_for, before + timedelta(minutes=5))

            NotificationService.deliver(intent.pk)
            NotificationService.deliver(intent.pk)

        intent.refresh_from_db()
        self.assertEqual(intent.status, NotificationIntent.Status.FAILED)
        self.assertEqual(intent.attempts, 3)

        # Failed intents are never picked up again
        self.assertFalse(NotificationService.deliver(intent.pk))

    def test_dispatcher_refusal_is_recorded(self) -> None:
        intent = self._intent()

        with mock.patch(
            "apps.notifications.services.get_dispatcher", return_value=RefusingDispatcher()
        ):
            NotificationService.deliver(intent.pk)

        intent.refresh_from_db()
        self.assertEqual(intent.last_error, "rejected")
        self.assertEqual(intent.status, NotificationIntent.Status.PENDING)

    def test_malformed_dispatcher_result_goes_back_to_the_queue(self) -> None:
        intent = self._intent()

        with mock.patch(
            "apps.notifications.services.get_dispatcher", return_value=SilentDispatcher()
        ):
            self.assertFalse(NotificationService.deliver(intent.pk))

        intent.refresh_from_db()
        self.assertEqual(intent.status, NotificationIntent.Status.PENDING)
        self.assertEqual(intent.attempts, 1)
        self.assertIn("NoneType", intent.last_error)

    def test_failure_while_recording_releases_the_intent(self) -> None:
        intent = self._intent()

        with mock.patch.object(
            NotificationIntent,
            "save",
            autospec=True,
            side_effect=[None, DatabaseError("connection lost")],
        ):
            self.assertFalse(NotificationService.deliver(intent.pk))

        intent.refresh_from_db()
        self.assertEqual(intent.status, NotificationIntent.Status.PENDING)
        self.assertEqual(intent.attempts, 1)
        self.assertEqual(intent.last_error, "connection lost")

        intent.scheduled_for = timezone.now() - timedelta(minutes=1)
        intent.save(update_fields=["scheduled_for"])
        self.assertEqual(NotificationService.process_queue(), {"processed": 1, "sent": 1})

    def test_queue_only_processes_due_intents(self) -> None:
        due = self._intent(scheduled_for=timezone.now() - timedelta(minutes=1))
        later = self._intent(scheduled_for=timezone.now() + timedelta(minutes=5))
        self._intent(status=NotificationIntent.Status.FAILED)

        result = process_notification_queue()

        self.assertEqual(result, {"processed": 1, "sent": 1})
        due.refresh_from_db()
        later.refresh_from_db()
        self.assertEqual(due.status, NotificationIntent.Status.SENT)
        self.assertIsNotNone(due.sent_at)
        self.assertEqual(later.status, NotificationIntent.Status.PENDING)

    @override_settings(NOTIFICATION_BATCH_SIZE=2)
    def test_queue_is_drained_in_batches(self) -> None:
        for _ in range(3):
            self._intent(scheduled_for=timezone.now() - timedelta(minutes=1))

        self.assertEqual(NotificationService.process_queue()["processed"], 2)
        self.assertEqual(NotificationService.process_queue()["processed"], 1)


def test_payload_is_made_json_safe():
    payload = NotificationService._make_json_safe(
        {
            "when": datetime(2025, 1, 1, tzinfo=dt_timezone.utc),
            "value": Decimal("10.50"),
            "event_id": UUID("12345678-1234-5678-1234-567812345678"),
            "period_type": PeriodType.BI_WEEK,
            "slot_ids": ("2025-02", "2025-04"),
            1: None,
        }
    )

    assert payload == {
        "when": "2025-01-01T00:00:00+00:00",
        "value": "10.50",
        "event_id": "12345678-1234-5678-1234-567812345678",
        "period_type": "bi-week",
        "slot_ids": ["2025-02", "2025-04"],
        "1": None,
    }


@override_settings(NOTIFICATION_DISPATCHER="apps.notifications.dispatchers.LoggingDispatcher")
def test_dispatcher_comes_from_settings():
    dispatcher = get_dispatcher()

    assert isinstance(dispatcher, LoggingDispatcher)
    assert dispatcher.notify(1, "booking.created", {})["success"] is True


@pytest.mark.django_db
def test_enqueue_with_delay_waits_for_the_queue():
    intent = NotificationService.enqueue(7, "proposal.updated", {"proposal_id": 3}, delay_minutes=10)

    intent.refresh_from_db()
    assert intent.status == NotificationIntent.Status.PENDING
    assert intent.attempts == 0
