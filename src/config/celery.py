"""
Celery application of AutoLease.

Celery is used to:
- Deliver domain events to their handlers outside the request
- Run the periodic sweep that switches off expired offers
- Send notifications

Usage:
    # Worker
    celery -A src.config.celery worker -l INFO -Q default,events,maintenance

    # Beat (scheduled tasks)
    celery -A src.config.celery beat -l INFO
"""

import os
from celery import Celery
from kombu import Queue, Exchange

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'src.config.settings')

app = Celery('autolease')

# CELERY_* entries of the Django settings
app.config_from_object('django.conf:settings', namespace='CELERY')

app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_default_queue='default',
    worker_send_task_events=True,
    task_send_sent_event=True,
)

app.conf.task_queues = (
    Queue('default', Exchange('default'), routing_key='default'),
    Queue('events', Exchange('events'), routing_key='events.#'),
    Queue('maintenance', Exchange('maintenance'), routing_key='maintenance.#'),
)

HANDLERS = 'src.adapters.django_app.events.handlers'

# Scheduled work first, the remaining handler tasks go to the events queue
app.conf.task_routes = {
    f'{HANDLERS}.deactivate_expired_offers': {'queue': 'maintenance'},
    f'{HANDLERS}.*': {'queue': 'events'},
}

# The tasks live in handlers.py, not in a tasks.py autodiscovery would find
app.conf.imports = (HANDLERS,)

app.conf.beat_schedule = {
    'deactivate-expired-offers': {
        'task': f'{HANDLERS}.deactivate_expired_offers',
        'schedule': float(os.environ.get('AUTOLEASE_EXPIRED_OFFERS_INTERVAL', 900)),
    },
}
