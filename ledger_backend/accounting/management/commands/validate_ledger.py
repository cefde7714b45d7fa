# accounting/management/commands/validate_ledger.py

from __future__ import annotations

from django.core.management.base import BaseCommand
from django.utils.dateparse import parse_date

from accounting.services.validation_service import (
    find_account_cache_drift,
    find_unbalanced_groups,
    validate_balance_sheet_equation,
)


class Command(BaseCommand):
    help = "Validate ledger integrity (balanced groups, account cache, accounting equation)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--as-of",
            dest="as_of",
            help="Balance sheet date YYYY-MM-DD (default: today).",
        )
        parser.add_argument(
            "--fix-cache",
            action="store_true",
            help="Rewrite drifted Account.current_balance values from the ledger.",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any error is found.",
        )

    def handle(self, *args, **options):
        strict = bool(options.get("strict"))
        fix_cache = bool(options.get("fix_cache"))

        as_of = None
        if options.get("as_of"):
            as_of = parse_date(options["as_of"])
            if as_of is None:
                self.stderr.write(self.style.ERROR("Invalid --as-of date. Use YYYY-MM-DD"))
                return self._exit(strict)

        self.stdout.write(self.style.MIGRATE_HEADING("Ledger Validation"))
        errors = 0

        # -----------------------------
        # 1) Balanced groups
        # -----------------------------
        unbalanced = find_unbalanced_groups()
        if unbalanced:
            errors += len(unbalanced)
            self.stderr.write(self.style.ERROR(f"[FAIL] Unbalanced groups: {len(unbalanced)}"))
            for g in unbalanced[:10]:
                self.stderr.write(
                    f"  {g.transaction_id} ({g.reference_type}:{g.reference_id}) "
                    f"debit={g.total_debit} credit={g.total_credit}"
                )
        else:
            self.stdout.write(self.style.SUCCESS("[OK] Every live group balances"))

        # -----------------------------
        # 2) Account balance cache
        # -----------------------------
        drifts = find_account_cache_drift(auto_correct=fix_cache)
        if drifts:
            label = "[FIXED]" if fix_cache else "[FAIL]"
            style = self.style.WARNING if fix_cache else self.style.ERROR
            if not fix_cache:
                errors += len(drifts)
            self.stderr.write(style(f"{label} Account cache drift: {len(drifts)}"))
            for d in drifts[:10]:
                self.stderr.write(
                    f"  {d.code} {d.name} cached={d.cached_balance} "
                    f"ledger={d.ledger_balance} ({d.severity})"
                )
        else:
            self.stdout.write(self.style.SUCCESS("[OK] Account balance cache matches the ledger"))

        # -----------------------------
        # 3) Accounting equation
        # -----------------------------
        equation = validate_balance_sheet_equation(as_of)
        if equation["is_balanced"]:
            self.stdout.write(
                self.style.SUCCESS(
                    f"[OK] Assets {equation['total_assets']} == "
                    f"Liabilities + Equity {equation['total_liabilities_and_equity']}"
                )
            )
        else:
            errors += 1
            self.stderr.write(
                self.style.ERROR(
                    f"[FAIL] Balance sheet off by {equation['difference']} "
                    f"as of {equation['as_of']}"
                )
            )

        self.stdout.write("")
        if errors == 0:
            self.stdout.write(self.style.SUCCESS("✅ VALIDATION PASSED"))
        else:
            self.stderr.write(self.style.ERROR(f"❌ VALIDATION FOUND ISSUES: {errors} problem(s)"))

        return self._exit(strict and errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
