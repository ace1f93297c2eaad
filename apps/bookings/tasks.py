"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import BookingAllocator

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run automatically by Celery Beat)
# ============================================================================

@shared_task(name="bookings.finalize_finished_bookings")
def finalize_finished_bookings() -> dict[str, int]:
    """
    Active bookings whose end date has passed become "finalizado".

    Runs every hour through Celery Beat.

    Returns:
        dict: {"finalized": number of finished bookings}
    """
    finalized = BookingAllocator().finalize_finished()

    if finalized > 0:
        logger.info(f"Finalized {finalized} bookings")

    return {"finalized": finalized}
