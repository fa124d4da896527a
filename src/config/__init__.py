"""
Project configuration of AutoLease.

Modules:
- settings / settings_test: Django settings
- urls: root routes
- wsgi: WSGI application
- celery: Celery app for events and scheduled work
- container: dependency injection container
"""

# Load the Celery app together with Django so shared_task binds to it
from .celery import app as celery_app

__all__ = ('celery_app',)
