"""Notification dispatchers.

A dispatcher receives ``(company_id, event_type, payload)`` and returns a
result dict ``{"success": bool, "error": str, ...}``. The class used is
configured with the ``NOTIFICATION_DISPATCHER`` setting.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from django.conf import settings  # type: ignore
from django.utils.module_loading import import_string  # type: ignore

logger = logging.getLogger(__name__)


class BaseDispatcher(ABC):
    """Base class for notification dispatchers"""

    @abstractmethod
    def notify(self, company_id: int | None, event_type: str, payload: dict) -> dict:
        pass


class LoggingDispatcher(BaseDispatcher):
    """Writes the notification to the log. Default for every environment."""

    def notify(self, company_id, event_type, payload):
        logger.info(f"[NOTIFICATION] {event_type} for company {company_id}: {payload}")
        return {"success": True, "message": "Logged"}


def get_dispatcher() -> BaseDispatcher:
    dispatcher_class = import_string(settings.NOTIFICATION_DISPATCHER)
    return dispatcher_class()
