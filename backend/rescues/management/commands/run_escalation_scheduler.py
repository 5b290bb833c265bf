"""
Run the escalation tick without Celery.

Usage::

    python manage.py run_escalation_scheduler            # loop forever
    python manage.py run_escalation_scheduler --once     # single tick
    python manage.py run_escalation_scheduler --interval 30
"""

import logging
import time

from django.conf import settings
from django.core.management.base import BaseCommand

from rescues.services import EscalationService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Escalate reported rescues nobody accepted within the deadline."

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single tick and exit.",
        )
        parser.add_argument(
            "--interval",
            type=int,
            default=None,
            help="Seconds between ticks (default: ESCALATION_INTERVAL_SECONDS).",
        )

    def handle(self, *args, **options):
        interval = options["interval"] or settings.ESCALATION_INTERVAL_SECONDS

        if options["once"]:
            self._tick()
            return

        self.stdout.write(f"Escalation scheduler started (every {interval}s).")
        try:
            while True:
                self._tick()
                time.sleep(interval)
        except KeyboardInterrupt:
            self.stdout.write("Escalation scheduler stopped.")

    def _tick(self):
        result = EscalationService.run_tick()
        self.stdout.write(self.style.SUCCESS(
            f"Escalated {len(result.escalated)} rescue(s), skipped {len(result.skipped)}."
        ))
