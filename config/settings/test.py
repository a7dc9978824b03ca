"""
StockTrace — Test Settings

Fast, self-contained settings for the pytest suite. Activated by:
  DJANGO_SETTINGS_MODULE=config.settings.test

@file config/settings/test.py
"""

from .base import *  # noqa: F401, F403

DEBUG = False

ALLOWED_HOSTS = ['*']

DATABASES = {
    'default': env.db('TEST_DATABASE_URL', default='sqlite://:memory:'),  # noqa: F405
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

REST_FRAMEWORK['DEFAULT_THROTTLE_CLASSES'] = []  # noqa: F405

STOCK_RECENT_WINDOW_DAYS = 7
STOCK_ITEM_CATALOG = 'catalog.services.OrmItemCatalog'

# Let pytest's caplog see project log records.
LOGGING['loggers']['stocktrace']['propagate'] = True  # noqa: F405
