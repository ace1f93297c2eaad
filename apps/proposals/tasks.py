"""Celery tasks for the proposal domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .reconciliation import ReconciliationJob
from .services import ProposalService

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run automatically by Celery Beat)
# ============================================================================

@shared_task(name="proposals.reconcile_proposals")
def reconcile_proposals() -> dict[str, int]:
    """
    Repair drift between proposals and their bookings.

    Runs every PROPOSAL_RECONCILIATION_INTERVAL seconds (30 minutes by
    default) through Celery Beat.

    Returns:
        dict: proposals checked, proposals with problems and booking changes
    """
    job = ReconciliationJob()
    reports = job.run()

    summary = {
        "checked": len(reports),
        "with_problems": sum(1 for report in reports if report.had_problem),
        "created": sum(report.created for report in reports),
        "corrected": sum(report.corrected for report in reports),
        "orphans_removed": sum(report.orphans_removed for report in reports)
        + job.orphan_bookings_removed,
    }

    if summary["with_problems"] > 0:
        logger.warning(f"Reconciliation repaired drift: {summary}")

    return summary


@shared_task(name="proposals.expire_overdue_proposals")
def expire_overdue_proposals() -> dict[str, int]:
    """
    In-progress proposals whose end date has passed become "vencida".

    Runs every hour through Celery Beat.

    Returns:
        dict: {"expired": number of expired proposals}
    """
    return {"expired": ProposalService().expire_overdue()}
