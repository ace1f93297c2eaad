"""
Transaction boundary for the reservation services.

Domain events recorded inside the block reach the message bus only after
the outermost transaction commits; a rollback drops them.
"""

from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    ``transaction.atomic()`` plus after-commit event publishing.

    Usage:
        with DjangoUnitOfWork() as uow:
            booking = Booking.objects.create(...)
            uow.add_event(BookingCreated(booking_id=booking.pk, ...))
    """

    def __init__(self, bus=None):
        self._events: List[DomainEvent] = []
        self._atomic = None
        self._bus = bus

    def __enter__(self):
        self._atomic = transaction.atomic()
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        events, self._events = self._events, []
        if exc_type is None and events:
            transaction.on_commit(lambda: self._publish(events))
        elif events:
            logger.warning(f"Transaction rolled back, dropping {len(events)} events")
        return self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    def _publish(self, events: List[DomainEvent]):
        bus = self._bus
        if bus is None:
            from shared.application.message_bus import message_bus as bus

        logger.info(f"Publishing {len(events)} domain events after commit")
        try:
            bus.publish_events(events)
        except Exception as e:
            # Data is already committed
            logger.error(f"Error publishing events: {e}", exc_info=True)
