"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: A manual booking was created

    Triggers:
    - Notify the company that the billboard is now reserved
    """
    event_type: ClassVar[str] = 'booking.created'

    booking_id: int
    billboard_id: int
    client_id: int
    start_date: datetime
    end_date: datetime
    slot_ids: list[str] = field(default_factory=list)


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Event: Booking was deleted or cancelled

    Triggers:
    - Notify the company that the billboard is free again
    """
    event_type: ClassVar[str] = 'booking.cancelled'

    booking_id: int
    billboard_id: int
    client_id: int
    proposal_code: str = ''
    reason: str = ''


@dataclass(kw_only=True)
class BookingRescheduled(DomainEvent):
    """
    Event: Booking moved to another period
    """
    event_type: ClassVar[str] = 'booking.rescheduled'

    booking_id: int
    billboard_id: int
    previous_start: datetime
    previous_end: datetime
    start_date: datetime
    end_date: datetime
