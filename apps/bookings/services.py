"""Domain services for booking workflows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable

from django.db import DatabaseError, transaction  # type: ignore
from django.db.models import Q  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.biweeks.calendar import BillboardCalendar, coerce_datetime
from apps.biweeks.models import BiWeekSlot
from apps.biweeks.periods import PeriodResolver
from apps.companies.models import Billboard
from apps.companies.services import get_client
from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import (
    BillboardNotFoundError,
    BookingConflictError,
    BookingNotFoundError,
    InfrastructureError,
    InvalidPeriodError,
    ValidationError,
)
from shared.domain.value_objects import Period

from .domain.events import BookingCancelled, BookingCreated, BookingRescheduled
from .models import Booking

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.proposals.models import Proposal

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS = {
    Booking.Status.ACTIVE: {Booking.Status.FINISHED, Booking.Status.CANCELLED},
    Booking.Status.FINISHED: set(),
    Booking.Status.CANCELLED: set(),
}

SYNCABLE_FIELDS = {
    "period_type",
    "start_date",
    "end_date",
    "slot_ids",
    "client_id",
    "company_id",
}


@dataclass(frozen=True)
class BookingConflict:
    """An active booking standing in the way of a requested window."""

    booking_id: int
    billboard_id: int
    client_id: int
    client_name: str
    start_date: datetime
    end_date: datetime
    proposal_code: str = ""

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingConflict":
        return cls(
            booking_id=booking.pk,
            billboard_id=booking.billboard_id,
            client_id=booking.client_id,
            client_name=booking.client.name,
            start_date=booking.start_date,
            end_date=booking.end_date,
            proposal_code=booking.proposal_code,
        )


@dataclass(frozen=True)
class Availability:
    available: bool
    conflicts: list[BookingConflict] = field(default_factory=list)


@dataclass(frozen=True)
class SlotOccupancy:
    """Booked and free billboards of a company during one bi-week."""

    slot_id: str
    year: int
    slot_number: int
    start_date: datetime
    end_date: datetime
    total_billboards: int
    booked_billboards: int
    free_billboards: int
    occupancy_rate: Decimal
    bookings: list[Booking] = field(default_factory=list)
    available_billboards: list[Billboard] = field(default_factory=list)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def overlapping_bookings(billboard_id, start, end, *, company_id=None, exclude_id=None):
    """Active bookings of the billboard intersecting ``[start, end)``.

    Touching windows (one ends exactly when the other starts) do not overlap.
    """

    bookings_qs = Booking.objects.filter(
        billboard_id=billboard_id,
        status=Booking.Status.ACTIVE,
    ).filter(Q(start_date__lt=end) & Q(end_date__gt=start))

    if company_id is not None:
        bookings_qs = bookings_qs.filter(company_id=company_id)

    if exclude_id is not None:
        bookings_qs = bookings_qs.exclude(pk=exclude_id)

    return bookings_qs.select_related("client").order_by("start_date", "pk")


class BookingAllocator:
    """
    Creates, moves and removes bookings under the no-double-booking rule.

    The overlap check and the insert run in one transaction that holds a
    row lock on the billboard, so two requests for the same billboard are
    serialized. On SQLite ``select_for_update`` has no effect and the
    database-wide write lock is the only guard.
    """

    def __init__(self, resolver: PeriodResolver | None = None, uow_class=DjangoUnitOfWork):
        self.resolver = resolver or PeriodResolver()
        self.uow_class = uow_class

    # ------------------------------------------------------------------
    # Manual bookings
    # ------------------------------------------------------------------

    def create(self, billboard_id: int, client_id: int, company_id: int, period) -> Booking:
        """
        Reserve a billboard for a client.

        Raises:
            ClientNotFoundError / BillboardNotFoundError: unknown in the company
            ValidationError: the billboard is inactive
            BookingConflictError: an active booking overlaps the period
        """

        period = self.resolver.resolve(period, company_id=company_id)
        client = get_client(client_id, company_id)

        try:
            with self.uow_class() as uow:
                billboard = self._lock_billboard(billboard_id, company_id)
                if not billboard.is_active:
                    raise ValidationError(f"Billboard {billboard.code} is inactive")

                conflicts = self.find_overlapping(
                    billboard.pk,
                    period.start_date,
                    period.end_date,
                    company_id=company_id,
                )
                if conflicts:
                    raise BookingConflictError(conflicts)

                booking = Booking.objects.create(
                    billboard=billboard,
                    client=client,
                    company_id=company_id,
                    status=Booking.Status.ACTIVE,
                    origin=Booking.Origin.MANUAL,
                    **period.as_fields(),
                )

                uow.add_event(
                    BookingCreated(
                        company_id=company_id,
                        booking_id=booking.pk,
                        billboard_id=billboard.pk,
                        client_id=client.pk,
                        start_date=booking.start_date,
                        end_date=booking.end_date,
                        slot_ids=list(booking.slot_ids),
                    )
                )
        except DatabaseError as exc:
            raise InfrastructureError(f"Could not create booking: {exc}") from exc

        logger.info(
            f"Booking {booking.pk} created for billboard {billboard.code} "
            f"({period}), client {client.pk}"
        )
        return booking

    def delete(self, booking_id: int, company_id: int) -> None:
        """Hard-delete a booking. Finished bookings are kept as history."""

        try:
            with self.uow_class() as uow:
                booking = self._lock_booking(booking_id, company_id)
                if booking.status == Booking.Status.FINISHED:
                    raise ValidationError("Finished bookings cannot be deleted")

                event = BookingCancelled(
                    company_id=company_id,
                    booking_id=booking.pk,
                    billboard_id=booking.billboard_id,
                    client_id=booking.client_id,
                    proposal_code=booking.proposal_code,
                    reason="deleted",
                )
                booking.delete()
                uow.add_event(event)
        except DatabaseError as exc:
            raise InfrastructureError(f"Could not delete booking {booking_id}: {exc}") from exc

        logger.info(f"Booking {booking_id} deleted")

    def reschedule(self, booking_id: int, company_id: int, period) -> Booking:
        """Move an active manual booking to another period."""

        period = self.resolver.resolve(period, company_id=company_id)

        try:
            with self.uow_class() as uow:
                booking = self._lock_booking(booking_id, company_id)
                if booking.status != Booking.Status.ACTIVE:
                    raise ValidationError("Only active bookings can be rescheduled")
                if booking.origin == Booking.Origin.PROPOSAL:
                    raise ValidationError(
                        f"Booking {booking.pk} follows proposal {booking.proposal_code}; "
                        f"change the proposal period instead"
                    )

                self._lock_billboard(booking.billboard_id, company_id)
                conflicts = self.find_overlapping(
                    booking.billboard_id,
                    period.start_date,
                    period.end_date,
                    company_id=company_id,
                    exclude_id=booking.pk,
                )
                if conflicts:
                    raise BookingConflictError(conflicts)

                previous = Period.from_record(booking)
                for name, value in period.as_fields().items():
                    setattr(booking, name, value)
                booking.save(
                    update_fields=["period_type", "start_date", "end_date", "slot_ids", "updated_at"]
                )

                uow.add_event(
                    BookingRescheduled(
                        company_id=company_id,
                        booking_id=booking.pk,
                        billboard_id=booking.billboard_id,
                        previous_start=previous.start_date,
                        previous_end=previous.end_date,
                        start_date=booking.start_date,
                        end_date=booking.end_date,
                    )
                )
        except DatabaseError as exc:
            raise InfrastructureError(f"Could not reschedule booking {booking_id}: {exc}") from exc

        logger.info(f"Booking {booking.pk} rescheduled to {period}")
        return booking

    def transition_status(self, booking_id: int, company_id: int, status: str) -> Booking:
        """Move a booking along ``ativo -> finalizado | cancelado``."""

        if status not in Booking.Status.values:
            raise ValidationError(f"Unknown booking status: {status!r}")
        status = Booking.Status(status)

        try:
            with self.uow_class() as uow:
                booking = self._lock_booking(booking_id, company_id)
                current = Booking.Status(booking.status)
                if status not in STATUS_TRANSITIONS[current]:
                    raise ValidationError(
                        f"Booking {booking.pk} cannot go from {current.value} to {status.value}"
                    )

                booking.status = status
                booking.save(update_fields=["status", "updated_at"])

                if status == Booking.Status.CANCELLED:
                    uow.add_event(
                        BookingCancelled(
                            company_id=company_id,
                            booking_id=booking.pk,
                            billboard_id=booking.billboard_id,
                            client_id=booking.client_id,
                            proposal_code=booking.proposal_code,
                            reason="cancelled",
                        )
                    )
        except DatabaseError as exc:
            raise InfrastructureError(f"Could not update booking {booking_id}: {exc}") from exc

        logger.info(f"Booking {booking.pk} is now {status.value}")
        return booking

    def finalize_finished(self, now: datetime | None = None) -> int:
        """Mark active bookings whose period is over as finished."""

        now = now or timezone.now()
        return Booking.objects.filter(
            status=Booking.Status.ACTIVE,
            end_date__lte=now,
        ).update(status=Booking.Status.FINISHED, updated_at=timezone.now())

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def find_overlapping(
        self,
        billboard_id: int,
        start,
        end,
        exclude_id: int | None = None,
        *,
        company_id: int | None = None,
    ) -> list[BookingConflict]:
        """Dry run of the overlap check."""

        start = coerce_datetime(start, "start_date")
        end = coerce_datetime(end, "end_date")
        if end <= start:
            raise InvalidPeriodError("end_date must be after start_date")

        return [
            BookingConflict.from_booking(booking)
            for booking in overlapping_bookings(
                billboard_id, start, end, company_id=company_id, exclude_id=exclude_id
            )
        ]

    def check_availability(self, billboard_id: int, start, end, exclude_id: int | None = None) -> Availability:
        conflicts = self.find_overlapping(billboard_id, start, end, exclude_id)
        return Availability(available=not conflicts, conflicts=conflicts)

    # ------------------------------------------------------------------
    # Bi-week schedule
    # ------------------------------------------------------------------

    def bookings_for_slot(self, company_id: int, slot_id: str) -> list[Booking]:
        """Active bookings of the company intersecting the bi-week, newest first."""

        slot = BillboardCalendar.find_by_ids(company_id, [slot_id])[0]
        return list(self._slot_bookings(company_id, slot))

    def available_billboards_for_slot(self, company_id: int, slot_id: str) -> list[Billboard]:
        """Active billboards with no active booking during the bi-week."""

        slot = BillboardCalendar.find_by_ids(company_id, [slot_id])[0]
        booked = self._slot_bookings(company_id, slot).values("billboard_id")
        available = list(
            Billboard.objects.filter(company_id=company_id, is_active=True)
            .exclude(pk__in=booked)
            .order_by("code")
        )
        logger.info(f"{len(available)} billboards available in bi-week {slot_id} for company {company_id}")
        return available

    def slot_occupancy(self, company_id: int, slot_id: str) -> SlotOccupancy:
        """
        Occupancy report of one bi-week.

        Only active billboards are counted, so ``booked + free == total``.
        A billboard booked more than once in the slot counts once.
        """

        slot = BillboardCalendar.find_by_ids(company_id, [slot_id])[0]
        bookings = list(self._slot_bookings(company_id, slot))
        available = self.available_billboards_for_slot(company_id, slot_id)
        total = Billboard.objects.filter(company_id=company_id, is_active=True).count()
        booked = total - len(available)

        rate = Decimal("0.00")
        if total:
            rate = (Decimal(booked) * 100 / Decimal(total)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        return SlotOccupancy(
            slot_id=slot.slot_id,
            year=slot.year,
            slot_number=slot.slot_number,
            start_date=slot.start_date,
            end_date=slot.end_date,
            total_billboards=total,
            booked_billboards=booked,
            free_billboards=len(available),
            occupancy_rate=rate,
            bookings=bookings,
            available_billboards=available,
        )

    def _slot_bookings(self, company_id: int, slot: BiWeekSlot):
        return (
            Booking.objects.filter(
                company_id=company_id,
                status=Booking.Status.ACTIVE,
                start_date__lt=slot.end_date,
                end_date__gt=slot.start_date,
            )
            .select_related("client", "billboard")
            .order_by("-start_date", "pk")
        )

    # ------------------------------------------------------------------
    # Proposal-owned bookings
    # ------------------------------------------------------------------

    def materialize(self, proposal: "Proposal", billboard_ids: Iterable[int]) -> list[Booking]:
        """
        Insert one booking per billboard for the proposal, using its period.

        No overlap check is enforced on this path; overlaps with other
        active bookings are only logged.
        """

        period = Period.from_record(proposal)
        bookings = [
            Booking(
                billboard_id=billboard_id,
                client_id=proposal.client_id,
                company_id=proposal.company_id,
                status=Booking.Status.ACTIVE,
                origin=Booking.Origin.PROPOSAL,
                proposal_code=proposal.proposal_code,
                **period.as_fields(),
            )
            for billboard_id in billboard_ids
        ]
        if not bookings:
            return []

        for booking in bookings:
            overlapping = overlapping_bookings(
                booking.billboard_id,
                period.start_date,
                period.end_date,
                company_id=proposal.company_id,
            ).exclude(proposal_code=proposal.proposal_code)
            if overlapping.exists():
                logger.warning(
                    f"Proposal {proposal.proposal_code} overlaps active bookings "
                    f"{list(overlapping.values_list('pk', flat=True))} on billboard {booking.billboard_id}"
                )

        created = Booking.objects.bulk_create(bookings)
        logger.info(f"Materialized {len(created)} bookings for proposal {proposal.proposal_code}")
        return created

    def remove_for_proposal(self, proposal_code: str, billboard_ids: Iterable[int] | None = None) -> int:
        """Delete the proposal's bookings, optionally only for some billboards."""

        if not proposal_code:
            raise ValidationError("proposal_code is required")

        bookings_qs = Booking.objects.filter(proposal_code=proposal_code)
        if billboard_ids is not None:
            bookings_qs = bookings_qs.filter(billboard_id__in=list(billboard_ids))

        deleted, _ = bookings_qs.delete()
        if deleted:
            logger.info(f"Removed {deleted} bookings of proposal {proposal_code}")
        return deleted

    def sync_proposal_bookings(self, proposal_code: str, **fields) -> int:
        """Bulk-update every booking sharing ``proposal_code``."""

        if not proposal_code:
            raise ValidationError("proposal_code is required")
        unknown = set(fields) - SYNCABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot sync booking fields: {', '.join(sorted(unknown))}")
        if not fields:
            return 0

        return Booking.objects.filter(proposal_code=proposal_code).update(
            updated_at=timezone.now(),
            **fields,
        )

    # ------------------------------------------------------------------

    def _lock_billboard(self, billboard_id: int, company_id: int) -> Billboard:
        billboard = _lock_queryset_if_possible(
            Billboard.objects.filter(pk=billboard_id, company_id=company_id)
        ).first()
        if billboard is None:
            raise BillboardNotFoundError(billboard_id)
        return billboard

    def _lock_booking(self, booking_id: int, company_id: int) -> Booking:
        booking = _lock_queryset_if_possible(
            Booking.objects.filter(pk=booking_id, company_id=company_id)
        ).first()
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking
