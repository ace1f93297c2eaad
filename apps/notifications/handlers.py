"""Message bus handlers turning domain events into notification intents."""

from __future__ import annotations

import logging

from apps.bookings.domain.events import BookingCancelled, BookingCreated, BookingRescheduled
from apps.proposals.domain.events import ProposalCreated, ProposalDeleted, ProposalUpdated
from shared.application.message_bus import MessageBus, message_bus
from shared.domain.base import DomainEvent

from .services import NotificationService

logger = logging.getLogger(__name__)

NOTIFIED_EVENTS = (
    BookingCreated,
    BookingCancelled,
    BookingRescheduled,
    ProposalCreated,
    ProposalUpdated,
    ProposalDeleted,
)


def enqueue_notification(event: DomainEvent) -> None:
    NotificationService.enqueue_event(event)


def register_handlers(bus: MessageBus = message_bus) -> None:
    for event_class in NOTIFIED_EVENTS:
        bus.register_event_handler(event_class, enqueue_notification)
