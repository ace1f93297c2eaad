"""Tests for company-scoped directory lookups."""

from __future__ import annotations

import pytest
from django.test import TestCase

from apps.companies.models import Billboard, Client, Company
from apps.companies.services import (
    billboard_exists,
    client_exists,
    get_client,
    missing_billboards,
)
from shared.domain.exceptions import ClientNotFoundError


class DirectoryLookupTests(TestCase):
    def setUp(self) -> None:
        self.company = Company.objects.create(name="Outdoor Norte")
        self.other_company = Company.objects.create(name="Outdoor Sul")
        self.client_record = Client.objects.create(company=self.company, name="Padaria Central")
        self.billboard = Billboard.objects.create(company=self.company, code="P-001")

    def test_client_exists_is_scoped_by_company(self) -> None:
        self.assertTrue(client_exists(self.client_record.pk, self.company.pk))
        self.assertFalse(client_exists(self.client_record.pk, self.other_company.pk))

    def test_billboard_exists_is_scoped_by_company(self) -> None:
        self.assertTrue(billboard_exists(self.billboard.pk, self.company.pk))
        self.assertFalse(billboard_exists(self.billboard.pk, self.other_company.pk))

    def test_get_client_raises_for_foreign_company(self) -> None:
        self.assertEqual(get_client(self.client_record.pk, self.company.pk), self.client_record)

        with self.assertRaises(ClientNotFoundError) as ctx:
            get_client(self.client_record.pk, self.other_company.pk)
        self.assertEqual(ctx.exception.identifier, self.client_record.pk)

    def test_missing_billboards_keeps_input_order(self) -> None:
        foreign = Billboard.objects.create(company=self.other_company, code="P-900")

        missing = missing_billboards([999, self.billboard.pk, foreign.pk], self.company.pk)

        self.assertEqual(missing, [999, foreign.pk])


@pytest.mark.django_db
def test_billboard_code_is_unique_per_company():
    company = Company.objects.create(name="Outdoor Leste")
    other = Company.objects.create(name="Outdoor Oeste")
    Billboard.objects.create(company=company, code="P-010")

    # The same code is fine in another company
    Billboard.objects.create(company=other, code="P-010")

    assert Billboard.objects.filter(code="P-010").count() == 2
