"""
Settings for the test suite.

sqlite in memory, Celery tasks run eagerly and events are only logged.
"""

from .settings import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

AUTOLEASE_EVENT_PUBLISHER = 'logging'

CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

LOG_LEVEL = 'WARNING'
LOGGING['root']['level'] = LOG_LEVEL  # noqa: F405
LOGGING['loggers']['src']['level'] = LOG_LEVEL  # noqa: F405
# records reach the root logger, where pytest's caplog listens
LOGGING['loggers']['src']['handlers'] = []  # noqa: F405
LOGGING['loggers']['src']['propagate'] = True  # noqa: F405
