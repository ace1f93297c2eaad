"""Production settings for the reservation engine.

This module extends the base settings with production specific
configuration. Sensitive values must be provided via environment
variables. Production is expected to run on PostgreSQL so that the
billboard row lock taken while allocating bookings is effective.
"""

from .base import *  # noqa: F401,F403

# Never run with debug enabled in production
DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)  # noqa: F405

# Allowed hosts should be defined explicitly via environment variable
ALLOWED_HOSTS = get_env('DJANGO_ALLOWED_HOSTS', '').split(',')  # noqa: F405

DATABASES['default']['ENGINE'] = get_env(  # noqa: F405
    'DB_ENGINE', 'django.db.backends.postgresql'
)
DATABASES['default']['CONN_MAX_AGE'] = int(get_env('DB_CONN_MAX_AGE', 60))  # noqa: F405
