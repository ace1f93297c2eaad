"""Company-scoped directory lookups used by the reservation services."""

from __future__ import annotations

from typing import Iterable

from shared.domain.exceptions import ClientNotFoundError

from .models import Billboard, Client


def client_exists(client_id: int, company_id: int) -> bool:
    return Client.objects.filter(pk=client_id, company_id=company_id).exists()


def billboard_exists(billboard_id: int, company_id: int) -> bool:
    return Billboard.objects.filter(pk=billboard_id, company_id=company_id).exists()


def get_client(client_id: int, company_id: int) -> Client:
    """Return the client or raise ``ClientNotFoundError``."""

    try:
        return Client.objects.get(pk=client_id, company_id=company_id)
    except Client.DoesNotExist:
        raise ClientNotFoundError(client_id) from None


def missing_billboards(billboard_ids: Iterable[int], company_id: int) -> list[int]:
    """Return the ids (in input order) that do not exist inside the company."""

    wanted = list(billboard_ids)
    found = set(
        Billboard.objects.filter(pk__in=wanted, company_id=company_id).values_list("pk", flat=True)
    )
    return [billboard_id for billboard_id in wanted if billboard_id not in found]
