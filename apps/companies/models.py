"""Directory models: companies, clients and billboards."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Company(models.Model):
    """Empresa que aluga os outdoors."""

    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Empresa")
        verbose_name_plural = _("Empresas")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Client(models.Model):
    """Cliente (anunciante) de uma empresa."""

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="clients",
    )
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Cliente")
        verbose_name_plural = _("Clientes")
        ordering = ["name"]
        indexes = [models.Index(fields=["company", "name"])]

    def __str__(self) -> str:
        return self.name


class Billboard(models.Model):
    """Placa (outdoor) que pode ser reservada."""

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="billboards",
    )
    code = models.CharField(max_length=50, help_text=_("Número da placa."))
    location = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Placa")
        verbose_name_plural = _("Placas")
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="billboard_unique_code_per_company",
            ),
        ]

    def __str__(self) -> str:
        return f"Billboard {self.code}"
