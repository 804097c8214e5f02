"""Celery application for the order fulfilment service.

``DJANGO_SETTINGS_MODULE`` is set before the app is created so Celery
reads its configuration from Django settings (``CELERY_`` prefix).
Customer notifications run here, off the request path.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("fulfilment")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Finds tasks.py in every installed app (modules.orders.tasks).
app.autodiscover_tasks()
