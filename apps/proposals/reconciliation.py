"""
Proposal / booking reconciliation.

Bookings are tied to their proposal only by ``proposal_code``, so nothing
at write time stops the two from drifting apart (a booking deleted by
hand, a failed partial update, a proposal deleted by another process).
The job below re-reads every open proposal and repairs its bookings:

- cardinality: one booking per billboard id, no bookings for billboards
  the proposal no longer lists
- dates: every booking carries the proposal period
- ownership: every booking carries the proposal client and company

A final pass deletes proposal bookings whose proposal is gone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.db import transaction  # type: ignore

from apps.bookings.models import Booking
from apps.bookings.services import BookingAllocator, _lock_queryset_if_possible
from apps.companies.models import Billboard
from shared.domain.exceptions import InconsistentStateError
from shared.domain.value_objects import Period

from .models import Proposal

logger = logging.getLogger(__name__)

RECONCILED_STATUSES = (Proposal.Status.IN_PROGRESS, Proposal.Status.CONCLUDED)


@dataclass
class ReconciliationReport:
    proposal_id: int
    proposal_code: str
    had_problem: bool = False
    created: int = 0
    corrected: int = 0
    orphans_removed: int = 0
    problems: list[str] = field(default_factory=list)

    @property
    def changes(self) -> int:
        return self.created + self.corrected + self.orphans_removed

    def add_problem(self, error: Exception) -> None:
        self.had_problem = True
        self.problems.append(str(error))


class ReconciliationJob:
    """Heals drift between proposals and their materialized bookings."""

    def __init__(self, allocator: BookingAllocator | None = None):
        self.allocator = allocator or BookingAllocator()
        self.orphan_bookings_removed = 0

    def run(self) -> list[ReconciliationReport]:
        """Reconcile every open proposal, then remove orphan bookings."""

        reports = self.reconcile_all()
        self.orphan_bookings_removed = self.clean_orphan_bookings()

        drifted = [report for report in reports if report.had_problem]
        logger.info(
            f"Reconciliation finished: {len(reports)} proposals checked, "
            f"{len(drifted)} with problems, "
            f"{self.orphan_bookings_removed} orphan bookings removed"
        )
        return reports

    def reconcile_all(self) -> list[ReconciliationReport]:
        proposal_ids = list(
            Proposal.objects.filter(status__in=RECONCILED_STATUSES)
            .order_by("pk")
            .values_list("pk", flat=True)
        )

        reports = []
        for proposal_id in proposal_ids:
            try:
                report = self.reconcile(proposal_id)
            except Exception as e:
                logger.error(f"Error reconciling proposal {proposal_id}: {e}", exc_info=True)
                report = ReconciliationReport(proposal_id=proposal_id, proposal_code="")
                report.add_problem(e)

            if report is not None:
                reports.append(report)
        return reports

    def reconcile(self, proposal_id: int) -> ReconciliationReport | None:
        """
        Repair the bookings of one proposal inside a single transaction.

        Returns ``None`` when the proposal was deleted or closed since the
        sweep started.
        """

        with transaction.atomic():
            proposal = _lock_queryset_if_possible(
                Proposal.objects.filter(pk=proposal_id, status__in=RECONCILED_STATUSES)
            ).first()
            if proposal is None:
                return None

            report = ReconciliationReport(
                proposal_id=proposal.pk,
                proposal_code=proposal.proposal_code,
            )
            code = proposal.proposal_code
            if not code:
                self._report_inconsistency(report, f"Proposal {proposal.pk} has no proposal code")
                return report

            expected_ids = list(proposal.billboard_ids or [])
            existing_ids = set(
                Billboard.objects.filter(
                    pk__in=expected_ids,
                    company_id=proposal.company_id,
                ).values_list("pk", flat=True)
            )
            for billboard_id in expected_ids:
                if billboard_id not in existing_ids:
                    self._report_inconsistency(
                        report,
                        f"Proposal {code} references billboard {billboard_id}, which no longer exists",
                    )

            bookings = list(
                _lock_queryset_if_possible(
                    Booking.objects.filter(proposal_code=code).order_by("pk")
                )
            )

            # Cardinality: one booking per listed billboard
            kept: dict[int, Booking] = {}
            surplus: list[int] = []
            for booking in bookings:
                if booking.billboard_id in expected_ids and booking.billboard_id not in kept:
                    kept[booking.billboard_id] = booking
                else:
                    surplus.append(booking.pk)

            if surplus:
                report.orphans_removed, _ = Booking.objects.filter(
                    pk__in=surplus,
                    proposal_code=code,
                ).delete()

            # Dates and ownership
            period = Period.from_record(proposal)
            off_period = [b.pk for b in kept.values() if not period.matches(b)]
            wrong_owner = [
                b.pk
                for b in kept.values()
                if b.client_id != proposal.client_id or b.company_id != proposal.company_id
            ]
            if off_period:
                self.allocator.sync_proposal_bookings(code, **period.as_fields())
            if wrong_owner:
                self.allocator.sync_proposal_bookings(
                    code,
                    client_id=proposal.client_id,
                    company_id=proposal.company_id,
                )
            report.corrected = len(set(off_period) | set(wrong_owner))

            missing = [
                billboard_id
                for billboard_id in expected_ids
                if billboard_id not in kept and billboard_id in existing_ids
            ]
            if missing:
                report.created = len(self.allocator.materialize(proposal, missing))

        if report.changes:
            report.had_problem = True
            logger.warning(
                f"Proposal {code} reconciled: {report.created} created, "
                f"{report.corrected} corrected, {report.orphans_removed} removed"
            )
        return report

    def clean_orphan_bookings(self) -> int:
        """Delete proposal bookings whose proposal no longer exists."""

        orphans = (
            Booking.objects.filter(origin=Booking.Origin.PROPOSAL)
            .exclude(proposal_code="")
            .exclude(proposal_code__in=Proposal.objects.values("proposal_code"))
        )
        removed, _ = orphans.delete()

        if removed:
            logger.warning(f"Removed {removed} orphan proposal bookings")
        return removed

    def _report_inconsistency(self, report: ReconciliationReport, message: str) -> None:
        error = InconsistentStateError(message)
        logger.warning(str(error))
        report.add_problem(error)
