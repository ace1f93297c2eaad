"""Proposal domain models."""

from __future__ import annotations

import secrets
import time
from decimal import Decimal

from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Proposal(models.Model):
    """Proposta interna: várias placas, um cliente, um período."""

    class Status(models.TextChoices):
        IN_PROGRESS = "em_andamento", _("Em andamento")
        CONCLUDED = "concluida", _("Concluída")
        EXPIRED = "vencida", _("Vencida")

    class PeriodType(models.TextChoices):
        BI_WEEK = "bi-week", _("Bi-semana")
        CUSTOM = "custom", _("Período personalizado")

    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.CASCADE,
        related_name="proposals",
    )
    client = models.ForeignKey(
        "companies.Client",
        on_delete=models.CASCADE,
        related_name="proposals",
    )
    proposal_code = models.CharField(max_length=64, unique=True, editable=False)
    period_type = models.CharField(
        max_length=10,
        choices=PeriodType.choices,
        default=PeriodType.CUSTOM,
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    slot_ids = models.JSONField(default=list, blank=True)
    billboard_ids = models.JSONField(default=list)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.IN_PROGRESS,
    )
    total_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    production_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    description = models.TextField(blank=True)
    product = models.CharField(max_length=255, blank=True)
    payment_terms = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Proposta interna")
        verbose_name_plural = _("Propostas internas")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="proposal_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"]),
            models.Index(fields=["status", "end_date"]),
        ]

    def __str__(self) -> str:
        return f"Proposal {self.proposal_code}"

    def clean(self) -> None:
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError(_("A data final deve ser posterior à data inicial."))

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.proposal_code:
            self.proposal_code = self.generate_proposal_code()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_proposal_code() -> str:
        timestamp = format(time.time_ns() // 1_000_000, "x")
        return f"PI-{timestamp}-{secrets.token_hex(3)}".upper()

    @property
    def is_editable(self) -> bool:
        return self.status == self.Status.IN_PROGRESS
