"""Domain services for proposals and the bookings materialized from them."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Iterable

from django.db import DatabaseError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.biweeks.periods import PeriodResolver
from apps.bookings.services import BookingAllocator, _lock_queryset_if_possible
from apps.companies.services import get_client, missing_billboards
from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import (
    BillboardNotFoundError,
    InfrastructureError,
    ProposalNotFoundError,
    ValidationError,
)
from shared.domain.value_objects import Money

from .domain.events import ProposalCreated, ProposalDeleted, ProposalUpdated
from .models import Proposal

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"client_id", "financials", "billboard_ids", "period", "payment_terms"})
MONEY_FIELDS = ("total_value", "production_value")
TEXT_FIELDS = ("description", "product")
CENTS = Decimal("0.01")


def clean_financials(financials: Mapping[str, Any] | None) -> dict[str, Any]:
    """Validate financial input and map it onto Proposal fields.

    Only the keys present are returned, so the same helper serves partial
    updates.
    """

    if financials is None:
        return {}
    if not isinstance(financials, Mapping):
        raise ValidationError("financials must be a mapping")

    unknown = set(financials) - set(MONEY_FIELDS) - set(TEXT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown financial fields: {', '.join(sorted(unknown))}")

    cleaned: dict[str, Any] = {}
    for name in MONEY_FIELDS:
        if name in financials:
            value = financials[name]
            cleaned[name] = Money(value if value is not None else 0).amount.quantize(CENTS)
    for name in TEXT_FIELDS:
        if name in financials:
            cleaned[name] = str(financials[name] or "")
    return cleaned


def clean_billboard_ids(billboard_ids: Iterable[int] | None, company_id: int) -> list[int]:
    """Non-empty, duplicate-free list of billboards that exist in the company."""

    if billboard_ids is None or isinstance(billboard_ids, (str, bytes)):
        raise ValidationError("billboard_ids must be a list of billboard ids")

    try:
        ids = [int(billboard_id) for billboard_id in billboard_ids]
    except (TypeError, ValueError):
        raise ValidationError("billboard_ids must contain integers") from None

    if not ids:
        raise ValidationError("A proposal needs at least one billboard")
    if len(set(ids)) != len(ids):
        raise ValidationError("billboard_ids contains duplicates")

    missing = missing_billboards(ids, company_id)
    if missing:
        raise BillboardNotFoundError(missing)
    return ids


class ProposalService:
    """
    Manages proposals and keeps their bookings in step.

    Every write to the proposal and to its bookings happens in the same
    transaction; bookings themselves are written through the allocator.
    """

    def __init__(
        self,
        allocator: BookingAllocator | None = None,
        resolver: PeriodResolver | None = None,
        uow_class=DjangoUnitOfWork,
    ):
        self.resolver = resolver or PeriodResolver()
        self.allocator = allocator or BookingAllocator(resolver=self.resolver)
        self.uow_class = uow_class

    def create(
        self,
        company_id: int,
        client_id: int,
        billboard_ids: Iterable[int],
        period_input,
        financials: Mapping[str, Any] | None = None,
        payment_terms: str = "",
    ) -> Proposal:
        """
        Create a proposal and materialize one booking per billboard.

        Bookings created here skip the overlap check.
        """

        client = get_client(client_id, company_id)
        ids = clean_billboard_ids(billboard_ids, company_id)
        period = self.resolver.resolve(period_input, company_id=company_id)
        financial_fields = clean_financials(financials)

        try:
            with self.uow_class() as uow:
                proposal = Proposal.objects.create(
                    company_id=company_id,
                    client=client,
                    billboard_ids=ids,
                    status=Proposal.Status.IN_PROGRESS,
                    payment_terms=payment_terms or "",
                    **period.as_fields(),
                    **financial_fields,
                )
                self.allocator.materialize(proposal, ids)

                uow.add_event(
                    ProposalCreated(
                        company_id=company_id,
                        proposal_id=proposal.pk,
                        proposal_code=proposal.proposal_code,
                        client_id=client.pk,
                        billboard_ids=ids,
                        start_date=proposal.start_date,
                        end_date=proposal.end_date,
                    )
                )
        except DatabaseError as exc:
            raise InfrastructureError(f"Could not create proposal: {exc}") from exc

        logger.info(
            f"Proposal {proposal.proposal_code} created for client {client.pk} "
            f"with {len(ids)} billboards ({period})"
        )
        return proposal

    def update(self, proposal_id: int, company_id: int, patch: Mapping[str, Any]) -> Proposal:
        """
        Apply an allow-listed patch.

        - ``billboard_ids``: bookings of removed billboards are deleted and
          bookings for added billboards are materialized; the rest are kept
        - ``period``: every booking of the proposal gets the new period
        - ``client_id``: every booking of the proposal gets the new client
        """

        if not isinstance(patch, Mapping):
            raise ValidationError("patch must be a mapping")
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        try:
            with self.uow_class() as uow:
                proposal = self._lock_proposal(proposal_id, company_id)
                if not proposal.is_editable:
                    raise ValidationError(
                        f"Proposal {proposal.proposal_code} is {proposal.status} and cannot be changed"
                    )

                changed: list[str] = []
                client_changed = False
                period = None
                added: list[int] = []
                removed: list[int] = []

                if "client_id" in patch and patch["client_id"] != proposal.client_id:
                    proposal.client = get_client(patch["client_id"], company_id)
                    client_changed = True
                    changed.append("client_id")

                if "financials" in patch:
                    for name, value in clean_financials(patch["financials"]).items():
                        setattr(proposal, name, value)
                    changed.append("financials")

                if "payment_terms" in patch:
                    proposal.payment_terms = patch["payment_terms"] or ""
                    changed.append("payment_terms")

                if "period" in patch:
                    resolved = self.resolver.resolve(patch["period"], company_id=company_id)
                    if not resolved.matches(proposal):
                        period = resolved
                        for name, value in period.as_fields().items():
                            setattr(proposal, name, value)
                        changed.append("period")

                if "billboard_ids" in patch:
                    new_ids = clean_billboard_ids(patch["billboard_ids"], company_id)
                    old_ids = list(proposal.billboard_ids)
                    removed = [billboard_id for billboard_id in old_ids if billboard_id not in new_ids]
                    added = [billboard_id for billboard_id in new_ids if billboard_id not in old_ids]
                    if new_ids != old_ids:
                        proposal.billboard_ids = new_ids
                        changed.append("billboard_ids")

                proposal.save()

                code = proposal.proposal_code
                if removed:
                    self.allocator.remove_for_proposal(code, removed)
                if period is not None:
                    self.allocator.sync_proposal_bookings(code, **period.as_fields())
                if client_changed:
                    self.allocator.sync_proposal_bookings(code, client_id=proposal.client_id)
                if added:
                    self.allocator.materialize(proposal, added)

                if changed:
                    uow.add_event(
                        ProposalUpdated(
                            company_id=company_id,
                            proposal_id=proposal.pk,
                            proposal_code=code,
                            changed_fields=changed,
                            added_billboards=added,
                            removed_billboards=removed,
                        )
                    )
        except DatabaseError as exc:
            raise InfrastructureError(f"Could not update proposal {proposal_id}: {exc}") from exc

        logger.info(
            f"Proposal {proposal.proposal_code} updated: {', '.join(changed) or 'no changes'}"
        )
        return proposal

    def delete(self, proposal_id: int, company_id: int) -> int:
        """Delete the proposal and every booking sharing its code.

        Returns the number of bookings removed.
        """

        try:
            with self.uow_class() as uow:
                proposal = self._lock_proposal(proposal_id, company_id)
                code = proposal.proposal_code
                removed = self.allocator.remove_for_proposal(code) if code else 0
                proposal.delete()

                uow.add_event(
                    ProposalDeleted(
                        company_id=company_id,
                        proposal_id=proposal_id,
                        proposal_code=code,
                        bookings_removed=removed,
                    )
                )
        except DatabaseError as exc:
            raise InfrastructureError(f"Could not delete proposal {proposal_id}: {exc}") from exc

        logger.info(f"Proposal {code} deleted with {removed} bookings")
        return removed

    def get(self, proposal_id: int, company_id: int) -> Proposal:
        try:
            return Proposal.objects.select_related("client").get(pk=proposal_id, company_id=company_id)
        except Proposal.DoesNotExist:
            raise ProposalNotFoundError(proposal_id) from None

    def expire_overdue(self, now=None) -> int:
        """In-progress proposals whose period is over become "vencida"."""

        now = now or timezone.now()
        expired = Proposal.objects.filter(
            status=Proposal.Status.IN_PROGRESS,
            end_date__lt=now,
        ).update(status=Proposal.Status.EXPIRED, updated_at=timezone.now())

        if expired:
            logger.info(f"{expired} proposals expired")
        return expired

    def _lock_proposal(self, proposal_id: int, company_id: int) -> Proposal:
        proposal = _lock_queryset_if_possible(
            Proposal.objects.filter(pk=proposal_id, company_id=company_id)
        ).first()
        if proposal is None:
            raise ProposalNotFoundError(proposal_id)
        return proposal
