import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("billboard_reservations")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

RECONCILIATION_INTERVAL = float(os.environ.get("PROPOSAL_RECONCILIATION_INTERVAL", 30 * 60))

app.conf.beat_schedule = {
    # Proposal <-> booking drift repair and orphan cleanup - every 30 minutes
    "reconcile-proposals": {
        "task": "proposals.reconcile_proposals",
        "schedule": RECONCILIATION_INTERVAL,
        "options": {"expires": RECONCILIATION_INTERVAL - 60},
    },
    # Overdue proposals become "vencida" - every hour
    "expire-overdue-proposals": {
        "task": "proposals.expire_overdue_proposals",
        "schedule": crontab(minute=5),
    },
    # Bookings past their end date become "finalizado" - every hour
    "finalize-finished-bookings": {
        "task": "bookings.finalize_finished_bookings",
        "schedule": crontab(minute=15),
    },
    # Notification outbox drain - every minute
    "process-notification-queue": {
        "task": "notifications.process_notification_queue",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
}

app.conf.timezone = "America/Sao_Paulo"
