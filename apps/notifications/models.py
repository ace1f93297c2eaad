"""Notification outbox model.

Each row is one notification waiting to be (or already) handed to the
dispatcher. Rows are written after the originating transaction commits
and processed by Celery workers.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class NotificationIntent(models.Model):
    """Notificação pendente de envio."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Na fila")
        PROCESSING = "processing", _("Processando")
        SENT = "sent", _("Enviada")
        FAILED = "failed", _("Falhou")

    company_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    event_type = models.CharField(max_length=64)
    event_id = models.UUIDField(null=True, blank=True)
    payload = models.JSONField(default=dict)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    attempts = models.PositiveSmallIntegerField(default=0)
    last_error = models.TextField(blank=True)
    scheduled_for = models.DateTimeField(default=timezone.now)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Notificação")
        verbose_name_plural = _("Notificações")
        ordering = ["scheduled_for"]
        indexes = [models.Index(fields=["status", "scheduled_for"])]

    def __str__(self) -> str:
        return f"{self.event_type} for company {self.company_id} ({self.status})"
