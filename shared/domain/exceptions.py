"""
Domain Exceptions

Error taxonomy shared by the reservation engine:
- ValidationError: bad shape or range, rejected before any write
- NotFoundError: missing company, client, billboard, proposal, booking or slot
- BookingConflictError: overlapping reservation, carries the conflicts
- InconsistentStateError: drift the reconciler cannot repair
- InfrastructureError: database / transaction failure
"""

from __future__ import annotations

from typing import Iterable, Sequence


class DomainError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(DomainError, ValueError):
    """Input rejected before touching the database."""


class InvalidPeriodError(ValidationError):
    """Period input is empty, inverted or not contiguous."""


class NotFoundError(DomainError, LookupError):
    """A referenced record does not exist inside the company."""

    entity = "Record"

    def __init__(self, identifier, message: str | None = None):
        self.identifier = identifier
        super().__init__(message or f"{self.entity} {identifier} not found")


class CompanyNotFoundError(NotFoundError):
    entity = "Company"


class ClientNotFoundError(NotFoundError):
    entity = "Client"


class BillboardNotFoundError(NotFoundError):
    entity = "Billboard"


class BookingNotFoundError(NotFoundError):
    entity = "Booking"


class ProposalNotFoundError(NotFoundError):
    entity = "Proposal"


class SlotNotFoundError(NotFoundError):
    """One or more bi-week slot ids could not be resolved."""

    entity = "Bi-week slot"

    def __init__(self, missing_ids: Iterable[str]):
        self.missing_ids = list(missing_ids)
        super().__init__(
            self.missing_ids,
            f"Bi-week slots not found: {', '.join(self.missing_ids)}",
        )


class BookingConflictError(DomainError):
    """Raised when a billboard is already booked for the requested window."""

    def __init__(self, conflicts: Sequence, message: str | None = None):
        self.conflicts = list(conflicts)
        super().__init__(
            message
            or f"Billboard is already booked in the selected period. "
            f"{len(self.conflicts)} conflict(s) found."
        )


class InconsistentStateError(DomainError):
    """Drift found by the reconciler that cannot be healed automatically."""


class InfrastructureError(DomainError):
    """Database or transaction failure surfaced at a service boundary."""
