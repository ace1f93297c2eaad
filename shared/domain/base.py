"""
Base Domain Classes

Building blocks shared by every app:
- ValueObject: Immutable objects compared by value
- DomainEvent: Events that represent something that happened
"""

from abc import ABC
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import ClassVar
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


@dataclass(kw_only=True)
class DomainEvent:
    """
    Base class for domain events

    Domain events represent something that happened in the domain.
    They are collected by the unit of work and published after commit.
    Subclasses set ``event_type`` to the name used by notification consumers.
    """
    event_type: ClassVar[str] = 'domain.event'

    company_id: int | None = None
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def payload(self) -> dict:
        """Event specific attributes (everything except the envelope)"""
        envelope = {'company_id', 'event_id', 'occurred_at'}
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in envelope
        }

    def to_dict(self) -> dict:
        """Convert event to dictionary for serialization"""
        return {
            'event_id': str(self.event_id),
            'event_type': self.event_type,
            'occurred_at': self.occurred_at.isoformat(),
            'company_id': self.company_id,
        }
