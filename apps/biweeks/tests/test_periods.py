"""Tests for period resolution."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone

from django.test import TestCase

from apps.biweeks.calendar import BillboardCalendar
from apps.biweeks.periods import PeriodInput, PeriodResolver
from apps.companies.models import Company
from shared.domain.exceptions import InvalidPeriodError, SlotNotFoundError
from shared.domain.value_objects import Period, PeriodType

UTC = dt_timezone.utc


class BiWeekResolutionTests(TestCase):
    def setUp(self) -> None:
        self.company = Company.objects.create(name="Outdoor Norte")
        BillboardCalendar.generate_slots(self.company.pk, 2025)
        self.resolver = PeriodResolver()

    def test_period_spans_first_start_to_last_end(self) -> None:
        period = self.resolver.resolve(
            {"company_id": self.company.pk, "slot_ids": ["2025-02", "2025-04"]}
        )

        self.assertEqual(period.period_type, PeriodType.BI_WEEK)
        self.assertEqual(period.start_date, datetime(2025, 1, 1, tzinfo=UTC))
        self.assertEqual(period.end_date, datetime(2025, 1, 28, 23, 59, 59, 999000, tzinfo=UTC))
        self.assertEqual(period.slot_ids, ("2025-02", "2025-04"))

    def test_slot_ids_are_ordered_chronologically(self) -> None:
        period = self.resolver.resolve(
            PeriodInput(slot_ids=("2025-06", "2025-04")), company_id=self.company.pk
        )

        self.assertEqual(period.slot_ids, ("2025-04", "2025-06"))

    def test_gap_between_slots_is_rejected(self) -> None:
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve(
                {"company_id": self.company.pk, "slot_ids": ["2025-02", "2025-06"]}
            )

    def test_duplicated_slot_is_rejected(self) -> None:
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve(
                {"company_id": self.company.pk, "slot_ids": ["2025-02", "2025-02"]}
            )

    def test_year_boundary_gap_breaks_contiguity(self) -> None:
        # 2025-52 ends on Dec 30th, 2026-02 starts on Jan 1st
        BillboardCalendar.generate_slots(self.company.pk, 2026)

        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve(
                {"company_id": self.company.pk, "slot_ids": ["2026-02", "2025-52"]}
            )

    def test_slots_of_another_year_are_rejected(self) -> None:
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve(
                {"company_id": self.company.pk, "year": 2026, "slot_ids": ["2025-02"]}
            )

    def test_non_numeric_year_is_invalid(self) -> None:
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve(
                {"company_id": self.company.pk, "year": "twenty", "slot_ids": ["2025-02"]}
            )

    def test_input_company_cannot_override_the_scoped_company(self) -> None:
        other = Company.objects.create(name="Outdoor Sul")
        BillboardCalendar.generate_slots(other.pk, 2025, anchor=datetime(2025, 3, 1, tzinfo=UTC))

        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve(
                {"company_id": other.pk, "slot_ids": ["2025-02"]}, company_id=self.company.pk
            )

    def test_input_company_matching_the_scope_is_accepted(self) -> None:
        period = self.resolver.resolve(
            {"company_id": str(self.company.pk), "slot_ids": ["2025-02"]},
            company_id=self.company.pk,
        )

        self.assertEqual(period.start_date, datetime(2025, 1, 1, tzinfo=UTC))

    def test_unknown_slot_raises_not_found(self) -> None:
        with self.assertRaises(SlotNotFoundError) as ctx:
            self.resolver.resolve({"company_id": self.company.pk, "slot_ids": ["2025-02", "2030-04"]})

        self.assertEqual(ctx.exception.missing_ids, ["2030-04"])

    def test_slots_of_another_company_are_not_visible(self) -> None:
        other = Company.objects.create(name="Outdoor Sul")

        with self.assertRaises(SlotNotFoundError):
            self.resolver.resolve({"company_id": other.pk, "slot_ids": ["2025-02"]})

    def test_bi_week_without_slots_is_invalid(self) -> None:
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve(
                {"company_id": self.company.pk, "period_type": "bi-week", "slot_ids": []}
            )

    def test_bi_week_without_company_is_invalid(self) -> None:
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve({"slot_ids": ["2025-02"]})


class CustomRangeResolutionTests(TestCase):
    def setUp(self) -> None:
        self.resolver = PeriodResolver()

    def test_plain_dates_are_utc_midnight(self) -> None:
        period = self.resolver.resolve(
            {"start_date": date(2025, 1, 1), "end_date": date(2025, 1, 15)}
        )

        self.assertEqual(period.period_type, PeriodType.CUSTOM)
        self.assertEqual(period.start_date, datetime(2025, 1, 1, tzinfo=UTC))
        self.assertEqual(period.end_date, datetime(2025, 1, 15, tzinfo=UTC))
        self.assertEqual(period.slot_ids, ())

    def test_iso_strings_and_offsets_are_normalized(self) -> None:
        period = self.resolver.resolve(
            {"start_date": "2025-01-01T00:00:00-03:00", "end_date": "2025-01-10"}
        )

        self.assertEqual(period.start_date, datetime(2025, 1, 1, 3, tzinfo=UTC))
        self.assertEqual(period.end_date.tzinfo, UTC)

    def test_inverted_range_is_rejected(self) -> None:
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve({"start_date": "2025-01-15", "end_date": "2025-01-01"})

    def test_empty_range_is_rejected(self) -> None:
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve({"start_date": "2025-01-15", "end_date": "2025-01-15"})

    def test_missing_input_is_rejected(self) -> None:
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve({})
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve(None)
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve({"start_date": "2025-01-15"})

    def test_garbage_date_is_rejected(self) -> None:
        with self.assertRaises(InvalidPeriodError):
            self.resolver.resolve({"start_date": "not a date", "end_date": "2025-01-15"})

    def test_resolved_period_passes_through(self) -> None:
        start = datetime(2025, 3, 1, tzinfo=UTC)
        period = Period(PeriodType.CUSTOM, start, start + timedelta(days=3))

        self.assertIs(self.resolver.resolve(period), period)
