"""Booking domain models."""

from __future__ import annotations

from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Booking(models.Model):
    """Reserva de uma placa para um cliente."""

    class Status(models.TextChoices):
        ACTIVE = "ativo", _("Ativo")
        FINISHED = "finalizado", _("Finalizado")
        CANCELLED = "cancelado", _("Cancelado")

    class Origin(models.TextChoices):
        MANUAL = "manual", _("Manual")
        PROPOSAL = "proposal", _("Proposta interna")

    class PeriodType(models.TextChoices):
        BI_WEEK = "bi-week", _("Bi-semana")
        CUSTOM = "custom", _("Período personalizado")

    billboard = models.ForeignKey(
        "companies.Billboard",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    client = models.ForeignKey(
        "companies.Client",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    period_type = models.CharField(
        max_length=10,
        choices=PeriodType.choices,
        default=PeriodType.CUSTOM,
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField(help_text=_("Fim exclusivo do período."))
    slot_ids = models.JSONField(default=list, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
    )
    origin = models.CharField(
        max_length=20,
        choices=Origin.choices,
        default=Origin.MANUAL,
    )
    proposal_code = models.CharField(
        max_length=64,
        blank=True,
        db_index=True,
        help_text=_("Código da proposta que gerou a reserva."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Reserva")
        verbose_name_plural = _("Reservas")
        ordering = ["start_date", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["billboard", "company", "status", "start_date", "end_date"]),
            models.Index(fields=["company", "status"]),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.pk} for billboard {self.billboard_id}"

    def clean(self) -> None:
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError(_("A data final deve ser posterior à data inicial."))
