"""Top-level package for Django configuration.

This package exposes the settings modules for the billboard reservation
engine and the Celery application that runs its periodic sweeps.
"""

# Import the Celery application as soon as Django starts. Without this
# the shared task registry will not be populated.
from .celery import app as celery_app  # noqa: F401
