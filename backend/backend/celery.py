"""
Celery application for the rescue dispatch backend.

The only periodic job is the escalation tick
(``rescues.tasks.escalate_overdue_rescues``); its schedule lives in
``settings.CELERY_BEAT_SCHEDULE``.

Usage::

    celery -A backend worker --loglevel=info
    celery -A backend beat --loglevel=info
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings")

app = Celery("backend")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
