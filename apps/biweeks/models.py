"""Bi-week slot model."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class BiWeekSlot(models.Model):
    """Janela fixa de 14 dias do calendário de uma empresa.

    ``end_date`` is inclusive (23:59:59.999 of the 14th day). Slots are
    generated once per company-year and never modified afterwards.
    """

    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.CASCADE,
        related_name="biweek_slots",
    )
    slot_id = models.CharField(max_length=7, help_text=_("Formato AAAA-NN, ex.: 2025-02."))
    year = models.PositiveSmallIntegerField()
    slot_number = models.PositiveSmallIntegerField(help_text=_("Número par de 2 a 52."))
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Bi-semana")
        verbose_name_plural = _("Bi-semanas")
        ordering = ["start_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "slot_id"],
                name="biweek_unique_slot_per_company",
            ),
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="biweek_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "year"]),
            models.Index(fields=["company", "start_date", "end_date"]),
        ]

    def __str__(self) -> str:
        return f"Bi-week {self.slot_id}"
