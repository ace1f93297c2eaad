"""Bi-week calendar: slot generation and lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone
from typing import Iterable

from django.db import DatabaseError, transaction  # type: ignore
from django.utils.dateparse import parse_date, parse_datetime  # type: ignore

from apps.companies.models import Company
from shared.domain.exceptions import (
    CompanyNotFoundError,
    InfrastructureError,
    InvalidPeriodError,
    SlotNotFoundError,
    ValidationError,
)

from .models import BiWeekSlot

logger = logging.getLogger(__name__)

SLOTS_PER_YEAR = 26
SLOT_LENGTH = timedelta(days=14)
# Inclusive slot end: 13 days + 23:59:59.999 after the slot start
SLOT_SPAN = SLOT_LENGTH - timedelta(milliseconds=1)
MIN_YEAR = 2000
MAX_YEAR = 2100


def coerce_datetime(value, field_name: str = "date") -> datetime:
    """Normalize a date, datetime or ISO string to an aware UTC datetime.

    Plain dates become UTC midnight and naive datetimes are read as UTC.
    """

    if value is None or value == "":
        raise InvalidPeriodError(f"{field_name} is required")

    if isinstance(value, str):
        try:
            parsed = parse_datetime(value) or parse_date(value)
        except ValueError:
            parsed = None
        if parsed is None:
            raise InvalidPeriodError(f"Invalid {field_name}: {value!r}")
        value = parsed

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=dt_timezone.utc)
        return value.astimezone(dt_timezone.utc)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=dt_timezone.utc)

    raise InvalidPeriodError(f"Invalid {field_name}: {value!r}")


def slot_id_for(year: int, index: int) -> str:
    """Slot id of the ``index``-th (0 based) bi-week of ``year``."""

    return f"{year}-{(index + 1) * 2:02d}"


@dataclass(frozen=True)
class SlotGeneration:
    """Outcome of ``BillboardCalendar.generate_slots``."""

    year: int
    created: int
    skipped: int
    slots: list[BiWeekSlot] = field(default_factory=list)


@dataclass(frozen=True)
class SlotAlignment:
    """Whether a custom range falls exactly on bi-week boundaries."""

    aligned: bool
    slot_ids: list[str] = field(default_factory=list)
    suggested_start: datetime | None = None
    suggested_end: datetime | None = None


class BillboardCalendar:
    """Generates and looks up the 26 bi-week slots of a company-year."""

    @classmethod
    def generate_slots(
        cls,
        company_id: int,
        year: int,
        anchor: datetime | None = None,
    ) -> SlotGeneration:
        """
        Create the 26 slots of ``year`` for the company.

        Slot ``i`` covers ``[anchor + 14i days, anchor + 14i days + 13d 23:59:59.999]``
        with ``anchor`` defaulting to January 1st 00:00 UTC. Slots that already
        exist are left untouched and counted as skipped, so calling this again
        never creates duplicates.
        """

        if not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
            raise ValidationError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year!r}")

        if not Company.objects.filter(pk=company_id).exists():
            raise CompanyNotFoundError(company_id)

        if anchor is None:
            anchor = datetime(year, 1, 1, tzinfo=dt_timezone.utc)
        else:
            anchor = coerce_datetime(anchor, "anchor")

        created = 0
        skipped = 0
        slots: list[BiWeekSlot] = []

        try:
            with transaction.atomic():
                for index in range(SLOTS_PER_YEAR):
                    start = anchor + index * SLOT_LENGTH
                    slot, was_created = BiWeekSlot.objects.get_or_create(
                        company_id=company_id,
                        slot_id=slot_id_for(year, index),
                        defaults={
                            "year": year,
                            "slot_number": (index + 1) * 2,
                            "start_date": start,
                            "end_date": start + SLOT_SPAN,
                        },
                    )
                    if was_created:
                        created += 1
                    else:
                        skipped += 1
                    slots.append(slot)
        except DatabaseError as exc:
            raise InfrastructureError(f"Could not generate bi-weeks for {year}: {exc}") from exc

        logger.info(
            f"Bi-weeks {year} for company {company_id}: {created} created, {skipped} skipped"
        )
        return SlotGeneration(year=year, created=created, skipped=skipped, slots=slots)

    @classmethod
    def find_by_date(cls, company_id: int, when) -> BiWeekSlot | None:
        """Return the active slot containing ``when`` (or ``None``)."""

        moment = coerce_datetime(when, "when")
        return (
            BiWeekSlot.objects.filter(
                company_id=company_id,
                is_active=True,
                start_date__lte=moment,
                end_date__gte=moment,
            )
            .order_by("start_date")
            .first()
        )

    @classmethod
    def find_by_ids(cls, company_id: int, slot_ids: Iterable[str]) -> list[BiWeekSlot]:
        """Resolve slot ids in input order, raising ``SlotNotFoundError`` for gaps."""

        wanted = list(slot_ids)
        by_id = {
            slot.slot_id: slot
            for slot in BiWeekSlot.objects.filter(
                company_id=company_id,
                slot_id__in=wanted,
                is_active=True,
            )
        }

        missing = [slot_id for slot_id in wanted if slot_id not in by_id]
        if missing:
            raise SlotNotFoundError(missing)

        return [by_id[slot_id] for slot_id in wanted]

    @classmethod
    def list_year(cls, company_id: int, year: int) -> list[BiWeekSlot]:
        return list(
            BiWeekSlot.objects.filter(company_id=company_id, year=year).order_by("start_date")
        )

    @classmethod
    def check_alignment(cls, company_id: int, start, end) -> SlotAlignment:
        """
        Check whether ``[start, end]`` coincides with bi-week boundaries.

        When it doesn't, the covering slot range is suggested. Dates that fall
        outside every generated slot yield an unaligned result with no
        suggestion.
        """

        start = coerce_datetime(start, "start_date")
        end = coerce_datetime(end, "end_date")
        if end <= start:
            raise InvalidPeriodError("end_date must be after start_date")

        first = cls.find_by_date(company_id, start)
        last = cls.find_by_date(company_id, end)
        if first is None or last is None:
            return SlotAlignment(aligned=False)

        covering = BiWeekSlot.objects.filter(
            company_id=company_id,
            is_active=True,
            start_date__gte=first.start_date,
            end_date__lte=last.end_date,
        ).order_by("start_date")

        return SlotAlignment(
            aligned=start == first.start_date and end == last.end_date,
            slot_ids=[slot.slot_id for slot in covering],
            suggested_start=first.start_date,
            suggested_end=last.end_date,
        )
