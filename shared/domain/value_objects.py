"""
Common Value Objects

Value objects used across the reservation apps:
- Money: Monetary amount with currency (proposal financials)
- PeriodType: The two period models (bi-week slots or a custom range)
- Period: Canonical reservation window shared by bookings and proposals
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from shared.domain.base import ValueObject
from shared.domain.exceptions import InvalidPeriodError, ValidationError

SUPPORTED_CURRENCIES = ('BRL', 'USD', 'EUR')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a non-negative monetary amount with currency.
    """
    amount: Decimal
    currency: str = 'BRL'

    def __post_init__(self):
        try:
            amount = Decimal(str(self.amount))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid amount: {self.amount!r}")
        if amount < 0:
            raise ValidationError("Amount cannot be negative")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValidationError(f"Unsupported currency: {self.currency}")
        object.__setattr__(self, 'amount', amount)

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"


class PeriodType(str, Enum):
    BI_WEEK = 'bi-week'
    CUSTOM = 'custom'


@dataclass(frozen=True)
class Period(ValueObject):
    """
    Reservation period value object

    Represents the half-open window [start_date, end_date). Bi-week periods
    also carry the ordered slot ids they were resolved from.
    """
    period_type: PeriodType
    start_date: datetime
    end_date: datetime
    slot_ids: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.start_date is None or self.end_date is None:
            raise InvalidPeriodError("Period requires both start_date and end_date")
        if self.end_date <= self.start_date:
            raise InvalidPeriodError(
                f"End date ({self.end_date.isoformat()}) must be after "
                f"start date ({self.start_date.isoformat()})"
            )
        object.__setattr__(self, 'period_type', PeriodType(self.period_type))
        object.__setattr__(self, 'slot_ids', tuple(self.slot_ids or ()))

    @classmethod
    def from_record(cls, record) -> 'Period':
        """Build the period stored on a Booking or Proposal row"""
        return cls(
            period_type=record.period_type,
            start_date=record.start_date,
            end_date=record.end_date,
            slot_ids=tuple(record.slot_ids or ()),
        )

    def overlaps_with(self, other: 'Period') -> bool:
        """
        Check if this period overlaps with another

        end_date is exclusive, so back-to-back periods don't overlap.
        """
        return self.start_date < other.end_date and other.start_date < self.end_date

    def matches(self, record) -> bool:
        """True when a stored row carries exactly this period"""
        return (
            record.start_date == self.start_date
            and record.end_date == self.end_date
            and list(record.slot_ids or []) == list(self.slot_ids)
            and record.period_type == self.period_type.value
        )

    def as_fields(self) -> dict:
        """Model field values for bulk inserts and updates"""
        return {
            'period_type': self.period_type.value,
            'start_date': self.start_date,
            'end_date': self.end_date,
            'slot_ids': list(self.slot_ids),
        }

    def __str__(self):
        return f"{self.start_date.strftime('%d.%m.%Y')} - {self.end_date.strftime('%d.%m.%Y')}"
