"""
Compare every wallet's cached balance with its ledger.

Usage::

    python manage.py reconcile_wallets
    python manage.py reconcile_wallets --repair
"""

from django.core.management.base import BaseCommand

from wallet.models import Wallet
from wallet.services import LedgerService


class Command(BaseCommand):
    help = "Reconcile cached wallet balances against the append-only ledger."

    def add_arguments(self, parser):
        parser.add_argument(
            "--repair",
            action="store_true",
            help="Overwrite inconsistent cached balances with the ledger sum.",
        )

    def handle(self, *args, **options):
        repair = options["repair"]
        checked = mismatched = repaired = 0

        for wallet in Wallet.objects.select_related("user").order_by("pk").iterator():
            report = LedgerService.reconcile(wallet.user, repair=repair)
            checked += 1
            if report.consistent:
                continue
            mismatched += 1
            repaired += int(report.repaired)
            self.stdout.write(self.style.WARNING(
                f"  user #{report.user_id}: cached={report.cached_balance} "
                f"ledger={report.ledger_balance}"
                f"{' (repaired)' if report.repaired else ''}"
            ))

        style = self.style.SUCCESS if mismatched == 0 else self.style.ERROR
        self.stdout.write(style(
            f"Checked {checked} wallet(s): {mismatched} mismatched, {repaired} repaired."
        ))
