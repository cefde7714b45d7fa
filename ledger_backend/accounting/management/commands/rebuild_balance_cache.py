# accounting/management/commands/rebuild_balance_cache.py

from __future__ import annotations

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.models.account import Account
from accounting.services.balance_service import refresh_account_caches
from accounting.services.reconciliation_service import reconcile


class Command(BaseCommand):
    help = (
        "Recompute every cached balance from the ledger: "
        "Account.current_balance, then customer/supplier current_balance."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--accounts-only",
            action="store_true",
            help="Skip party caches.",
        )

    def handle(self, *args, **options):
        with transaction.atomic():
            balances = refresh_account_caches(Account.objects.values_list("code", flat=True))
        self.stdout.write(self.style.SUCCESS(f"✔ {len(balances)} account balances rebuilt."))

        if options.get("accounts_only"):
            return

        report = reconcile(auto_correct=True)
        self.stdout.write(
            self.style.SUCCESS(
                f"✔ {report.total} party balances checked, {report.corrected} corrected."
            )
        )
        if report.errors:
            self.stderr.write(
                self.style.ERROR(f"{len(report.errors)} parties could not be rebuilt; see logs.")
            )
