"""Test settings for the reservation engine.

File-backed SQLite, so threads share the test database, and eager Celery
so tasks run inline without a broker.
"""

import os
import tempfile

from .base import *  # noqa: F401,F403

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'TEST': {
            'NAME': os.path.join(tempfile.gettempdir(), 'billboard_reservations_test.sqlite3'),
        },
    }
}

CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False

NOTIFICATION_DISPATCHER = 'apps.notifications.dispatchers.LoggingDispatcher'

LOGGING["root"]["level"] = "ERROR"  # noqa: F405
LOGGING["loggers"]["apps"]["level"] = "WARNING"  # noqa: F405
LOGGING["loggers"]["shared"]["level"] = "WARNING"  # noqa: F405
