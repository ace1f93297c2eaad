"""Period resolution.

Turns raw period input into the canonical ``Period`` value object:

- bi-week input: ``{company_id, year?, slot_ids}``; the period spans from the
  first slot's start to the last slot's end
- custom input: ``{start_date, end_date}`` with ``end_date > start_date``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping

from shared.domain.exceptions import InvalidPeriodError
from shared.domain.value_objects import Period, PeriodType

from .calendar import BillboardCalendar, coerce_datetime

logger = logging.getLogger(__name__)

SLOT_GAP = timedelta(milliseconds=1)


@dataclass(frozen=True)
class PeriodInput:
    """Raw period as received from a caller."""

    slot_ids: tuple[str, ...] = ()
    start_date: Any = None
    end_date: Any = None
    year: int | None = None
    company_id: int | None = None
    period_type: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PeriodInput":
        slot_ids = data.get("slot_ids") or ()
        if isinstance(slot_ids, str):
            raise InvalidPeriodError("slot_ids must be a list of slot ids")
        return cls(
            slot_ids=tuple(slot_ids),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            year=data.get("year"),
            company_id=data.get("company_id"),
            period_type=data.get("period_type"),
        )

    @property
    def is_bi_week(self) -> bool:
        return bool(self.slot_ids) or self.period_type == PeriodType.BI_WEEK.value


class PeriodResolver:
    """Normalizes period input into a ``Period``."""

    def __init__(self, calendar: type[BillboardCalendar] = BillboardCalendar):
        self.calendar = calendar

    def resolve(self, data, company_id: int | None = None) -> Period:
        """
        Resolve ``data`` into a canonical period.

        ``data`` may be a ``Period`` (returned as is), a ``PeriodInput`` or a
        mapping with the same keys. When ``company_id`` is given it scopes the
        slot lookup and the input may only repeat it.

        Raises:
            InvalidPeriodError: empty input, inverted range, wrong year,
                foreign company or non-contiguous slots
            SlotNotFoundError: unknown slot ids
        """

        if isinstance(data, Period):
            return data
        if data is None:
            raise InvalidPeriodError("Period is required")
        if isinstance(data, Mapping):
            data = PeriodInput.from_mapping(data)
        if not isinstance(data, PeriodInput):
            raise InvalidPeriodError(f"Unsupported period input: {type(data).__name__}")

        if data.is_bi_week:
            return self._resolve_slots(data, self._scope_company(data, company_id))
        return self._resolve_range(data)

    @staticmethod
    def _scope_company(data: PeriodInput, company_id: int | None) -> int | None:
        if company_id is None:
            return data.company_id
        if data.company_id is not None and str(data.company_id) != str(company_id):
            raise InvalidPeriodError(
                f"Period belongs to company {data.company_id}, not to company {company_id}"
            )
        return company_id

    def _resolve_slots(self, data: PeriodInput, company_id: int | None) -> Period:
        if not data.slot_ids:
            raise InvalidPeriodError("Bi-week period requires at least one slot id")
        if company_id is None:
            raise InvalidPeriodError("Bi-week period requires a company")

        slots = self.calendar.find_by_ids(company_id, data.slot_ids)

        if data.year is not None:
            try:
                year = int(data.year)
            except (TypeError, ValueError):
                raise InvalidPeriodError(f"Invalid year: {data.year!r}") from None
            foreign = [slot.slot_id for slot in slots if slot.year != year]
            if foreign:
                raise InvalidPeriodError(
                    f"Slots {', '.join(foreign)} do not belong to year {data.year}"
                )

        slots.sort(key=lambda slot: slot.start_date)

        for previous, following in zip(slots, slots[1:]):
            if following.start_date - previous.end_date != SLOT_GAP:
                raise InvalidPeriodError(
                    f"Bi-weeks must be contiguous: {previous.slot_id} is not followed by {following.slot_id}"
                )

        return Period(
            period_type=PeriodType.BI_WEEK,
            start_date=slots[0].start_date,
            end_date=slots[-1].end_date,
            slot_ids=tuple(slot.slot_id for slot in slots),
        )

    def _resolve_range(self, data: PeriodInput) -> Period:
        if data.start_date in (None, "") and data.end_date in (None, ""):
            raise InvalidPeriodError("Either slot ids or start_date and end_date are required")

        return Period(
            period_type=PeriodType.CUSTOM,
            start_date=coerce_datetime(data.start_date, "start_date"),
            end_date=coerce_datetime(data.end_date, "end_date"),
        )
