"""
Celery configuration for the movie tracker.

Runs the scan and commit stages of spreadsheet imports in the background.
"""

import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')

app.config_from_object('django.conf:settings', namespace='CELERY')

app.autodiscover_tasks(['catalogue_app.tasks.import_tasks'], related_name=None)

app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    task_ignore_result=False,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    task_queues={
        'celery': {},
        'imports': {},
    },
    task_default_queue='celery',
    task_routes={
        'catalogue_app.tasks.import_tasks.*': {'queue': 'imports'},
    },
    result_expires=3600,
)
