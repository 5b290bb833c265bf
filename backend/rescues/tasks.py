"""
Celery tasks for the rescues app.

``escalate_overdue_rescues`` is scheduled by Celery beat every
``ESCALATION_INTERVAL_SECONDS`` (see ``settings.CELERY_BEAT_SCHEDULE``).
"""

import logging

from celery import shared_task

from .services import EscalationService

logger = logging.getLogger(__name__)


@shared_task(name="rescues.tasks.escalate_overdue_rescues", ignore_result=False)
def escalate_overdue_rescues() -> dict:
    result = EscalationService.run_tick()
    return {"escalated": result.escalated, "skipped": result.skipped}
