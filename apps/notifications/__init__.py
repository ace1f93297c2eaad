"""Notifications app package.

Outbox for fire-and-forget notifications. Domain events published after
a commit are written as notification intents and delivered by Celery
through the configured dispatcher; delivery problems are retried and
logged but never reach the operation that raised the event.
"""
