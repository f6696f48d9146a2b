import os
from celery import Celery

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'app.settings')

app = Celery('fulfillment_backend')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()

app.conf.update(
    task_track_started=True,
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],
    timezone='UTC',
    enable_utc=True,

    # Task routing
    task_routes={
        'inventory.*': {'queue': 'inventory'},
    },

    # Periodic tasks
    beat_schedule={
        'complete-fulfilled-stock-requests': {
            'task': 'inventory.complete_fulfilled_stock_requests',
            'schedule': 3600.0,  # Run hourly
        },
    },
)
