"""Tests for bi-week slot generation and lookups."""

from __future__ import annotations

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from io import StringIO

import pytest
from django.core.management import call_command
from django.test import TestCase

from apps.biweeks.calendar import BillboardCalendar
from apps.biweeks.models import BiWeekSlot
from apps.companies.models import Company
from shared.domain.exceptions import (
    CompanyNotFoundError,
    SlotNotFoundError,
    ValidationError,
)

UTC = dt_timezone.utc


class GenerateSlotsTests(TestCase):
    def setUp(self) -> None:
        self.company = Company.objects.create(name="Outdoor Norte")

    def test_generates_26_contiguous_slots_from_january_first(self) -> None:
        result = BillboardCalendar.generate_slots(self.company.pk, 2025)

        self.assertEqual(result.created, 26)
        self.assertEqual(result.skipped, 0)
        slots = BillboardCalendar.list_year(self.company.pk, 2025)
        self.assertEqual(len(slots), 26)

        first = slots[0]
        self.assertEqual(first.slot_id, "2025-02")
        self.assertEqual(first.slot_number, 2)
        self.assertEqual(first.start_date, datetime(2025, 1, 1, tzinfo=UTC))
        self.assertEqual(first.end_date, datetime(2025, 1, 14, 23, 59, 59, 999000, tzinfo=UTC))

        last = slots[-1]
        self.assertEqual(last.slot_id, "2025-52")
        self.assertEqual(last.start_date, datetime(2025, 1, 1, tzinfo=UTC) + timedelta(days=350))

        for previous, following in zip(slots, slots[1:]):
            self.assertEqual(following.start_date - previous.end_date, timedelta(milliseconds=1))

    def test_second_generation_creates_no_duplicates(self) -> None:
        BillboardCalendar.generate_slots(self.company.pk, 2025)

        result = BillboardCalendar.generate_slots(self.company.pk, 2025)

        self.assertEqual(result.created, 0)
        self.assertEqual(result.skipped, 26)
        self.assertEqual(len(result.slots), 26)
        self.assertEqual(BiWeekSlot.objects.filter(company=self.company, year=2025).count(), 26)

    def test_custom_anchor_shifts_every_slot(self) -> None:
        anchor = datetime(2025, 1, 6, tzinfo=UTC)

        result = BillboardCalendar.generate_slots(self.company.pk, 2025, anchor=anchor)

        self.assertEqual(result.slots[0].start_date, anchor)
        self.assertEqual(result.slots[1].start_date, anchor + timedelta(days=14))

    def test_companies_have_independent_calendars(self) -> None:
        other = Company.objects.create(name="Outdoor Sul")

        BillboardCalendar.generate_slots(self.company.pk, 2025)
        result = BillboardCalendar.generate_slots(other.pk, 2025)

        self.assertEqual(result.created, 26)
        self.assertEqual(BiWeekSlot.objects.count(), 52)

    def test_rejects_year_out_of_range(self) -> None:
        with self.assertRaises(ValidationError):
            BillboardCalendar.generate_slots(self.company.pk, 1999)
        with self.assertRaises(ValidationError):
            BillboardCalendar.generate_slots(self.company.pk, 2101)

    def test_rejects_unknown_company(self) -> None:
        with self.assertRaises(CompanyNotFoundError):
            BillboardCalendar.generate_slots(self.company.pk + 100, 2025)


class SlotLookupTests(TestCase):
    def setUp(self) -> None:
        self.company = Company.objects.create(name="Outdoor Norte")
        BillboardCalendar.generate_slots(self.company.pk, 2025)

    def test_find_by_date_includes_the_last_millisecond(self) -> None:
        slot = BillboardCalendar.find_by_date(
            self.company.pk, datetime(2025, 1, 14, 23, 59, 59, 999000, tzinfo=UTC)
        )
        self.assertEqual(slot.slot_id, "2025-02")

        slot = BillboardCalendar.find_by_date(self.company.pk, "2025-01-15")
        self.assertEqual(slot.slot_id, "2025-04")

    def test_find_by_date_outside_the_calendar(self) -> None:
        # 26 * 14 days leave December 31st uncovered
        self.assertIsNone(BillboardCalendar.find_by_date(self.company.pk, "2025-12-31T12:00:00"))

    def test_find_by_date_ignores_inactive_slots(self) -> None:
        BiWeekSlot.objects.filter(slot_id="2025-02").update(is_active=False)

        self.assertIsNone(BillboardCalendar.find_by_date(self.company.pk, "2025-01-03"))

    def test_find_by_ids_keeps_input_order(self) -> None:
        slots = BillboardCalendar.find_by_ids(self.company.pk, ["2025-06", "2025-02"])

        self.assertEqual([slot.slot_id for slot in slots], ["2025-06", "2025-02"])

    def test_find_by_ids_reports_every_missing_id(self) -> None:
        with self.assertRaises(SlotNotFoundError) as ctx:
            BillboardCalendar.find_by_ids(self.company.pk, ["2025-02", "2025-03", "2026-02"])

        self.assertEqual(ctx.exception.missing_ids, ["2025-03", "2026-02"])

    def test_check_alignment_on_slot_boundaries(self) -> None:
        alignment = BillboardCalendar.check_alignment(
            self.company.pk,
            datetime(2025, 1, 15, tzinfo=UTC),
            datetime(2025, 2, 11, 23, 59, 59, 999000, tzinfo=UTC),
        )

        self.assertTrue(alignment.aligned)
        self.assertEqual(alignment.slot_ids, ["2025-04", "2025-06"])

    def test_check_alignment_suggests_covering_slots(self) -> None:
        alignment = BillboardCalendar.check_alignment(self.company.pk, "2025-01-10", "2025-01-20")

        self.assertFalse(alignment.aligned)
        self.assertEqual(alignment.slot_ids, ["2025-02", "2025-04"])
        self.assertEqual(alignment.suggested_start, datetime(2025, 1, 1, tzinfo=UTC))
        self.assertEqual(
            alignment.suggested_end, datetime(2025, 1, 28, 23, 59, 59, 999000, tzinfo=UTC)
        )


@pytest.mark.django_db
def test_generate_biweeks_command_is_idempotent():
    company = Company.objects.create(name="Outdoor Leste")
    out = StringIO()

    call_command("generate_biweeks", "2025", "2026", stdout=out)
    call_command("generate_biweeks", "2025", company=company.pk, stdout=out)

    assert BiWeekSlot.objects.filter(company=company).count() == 52
    assert "0 criadas, 26 já existentes" in out.getvalue()
