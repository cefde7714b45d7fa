# accounting/management/commands/reconcile_balances.py

"""
Party balance reconciliation job.

Scheduling:
- daily:   manage.py reconcile_balances                    (alert only)
- weekly:  manage.py reconcile_balances --auto-correct
- ad hoc:  manage.py reconcile_balances --scope customers --party-id 42
"""

from __future__ import annotations

import json

from django.core.management.base import BaseCommand

from accounting.services.exceptions import ReconciliationScopeError
from accounting.services.reconciliation_service import SCOPE_ALL, SCOPES, reconcile


class Command(BaseCommand):
    help = "Compare cached party balances with ledger-derived balances (optionally auto-correct)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--scope",
            choices=sorted(SCOPES),
            default=SCOPE_ALL,
            help="Which parties to reconcile (default: all).",
        )
        parser.add_argument(
            "--auto-correct",
            action="store_true",
            help="Overwrite cached balances with the ledger value.",
        )
        parser.add_argument(
            "--party-id",
            type=int,
            default=None,
            help="Reconcile a single party (requires --scope customers|suppliers).",
        )
        parser.add_argument(
            "--batch-size",
            type=int,
            default=None,
            help="Parties per bulk query (default: LEDGER_RECONCILIATION_BATCH_SIZE).",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the full report as JSON.",
        )
        parser.add_argument(
            "--strict",
            "--fail-on-discrepancy",
            dest="strict",
            action="store_true",
            help="Fail (non-zero exit) if any uncorrected discrepancy or error is found.",
        )

    def handle(self, *args, **options):
        strict = bool(options.get("strict"))

        try:
            report = reconcile(
                options["scope"],
                auto_correct=bool(options.get("auto_correct")),
                party_id=options.get("party_id"),
                batch_size=options.get("batch_size"),
            )
        except ReconciliationScopeError as exc:
            self.stderr.write(self.style.ERROR(str(exc)))
            return self._exit(True)

        if options.get("json"):
            self.stdout.write(json.dumps(report.as_dict(), indent=2))
            return self._exit(strict and self._has_open_issues(report))

        self.stdout.write(self.style.MIGRATE_HEADING("Party Balance Reconciliation"))
        self.stdout.write(f"Scope:        {report.scope}")
        self.stdout.write(f"Auto-correct: {'yes' if report.auto_correct else 'no'}")
        self.stdout.write(f"Checked:      {report.total}")
        self.stdout.write(f"Matched:      {report.matched}")
        self.stdout.write(f"Duration:     {report.duration_seconds:.2f}s")
        self.stdout.write("")

        for d in report.discrepancies[:50]:
            line = (
                f"  {d.party_type}:{d.party_id} {d.party_name}  "
                f"cached={d.cached_balance} ledger={d.ledger_balance} delta={d.delta} [{d.status}]"
            )
            if d.corrected:
                self.stdout.write(self.style.WARNING(line))
            else:
                self.stderr.write(self.style.ERROR(line))
        if len(report.discrepancies) > 50:
            self.stdout.write(f"  ... {len(report.discrepancies) - 50} more")

        for e in report.errors:
            self.stderr.write(self.style.ERROR(f"  {e.party_type}:{e.party_id} ERROR {e.error}"))

        if report.is_clean:
            self.stdout.write(self.style.SUCCESS("✅ All party balances match the ledger."))
        else:
            self.stdout.write(
                f"Discrepancies: {len(report.discrepancies)} "
                f"(corrected {report.corrected}), errors: {len(report.errors)}"
            )

        return self._exit(strict and self._has_open_issues(report))

    @staticmethod
    def _has_open_issues(report) -> bool:
        return bool(report.errors) or any(not d.corrected for d in report.discrepancies)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
