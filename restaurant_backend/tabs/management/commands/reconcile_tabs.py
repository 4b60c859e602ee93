# tabs/management/commands/reconcile_tabs.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from tabs.services.reconciliation_service import (
    close_settled_table,
    reconcile_open_tables,
    reconcile_table,
)


class Command(BaseCommand):
    help = "Reconcile open table tabs (payments vs. items/orders) and optionally close settled tabs."

    def add_arguments(self, parser):
        parser.add_argument(
            "--table",
            type=int,
            dest="table_number",
            help="Only check this table number (optional)",
        )
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Close tabs whose remaining balance is within tolerance.",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any problem is left unfixed.",
        )

    def handle(self, *args, **options):
        table_number = options.get("table_number")
        fix = bool(options.get("fix"))
        strict = bool(options.get("strict"))

        if table_number is not None and table_number < 1:
            self.stderr.write(self.style.ERROR("Invalid --table. Use a positive table number"))
            return self._exit(strict)

        self.stdout.write(self.style.MIGRATE_HEADING("Tab Reconciliation"))

        if table_number is not None:
            reports = [reconcile_table(table_number=table_number)]
        else:
            reports = reconcile_open_tables()

        self.stdout.write(f"Tables checked: {len(reports)}")
        self.stdout.write("")

        errors = 0
        fixed = 0

        for report in reports:
            label = f"Table {report.table_number}"

            if report.ok:
                self.stdout.write(
                    self.style.SUCCESS(
                        f"[OK] {label}: remaining={report.balance.total_remaining} "
                        f"paid={report.balance.total_paid}"
                    )
                )
                continue

            for issue in report.issues:
                if issue.code == "settled_but_open" and fix:
                    continue
                errors += 1
                self.stderr.write(self.style.ERROR(f"[FAIL] {label} {issue.code}: {issue.message}"))

            if fix and report.closable:
                result = close_settled_table(table_number=report.table_number)
                if result.closed:
                    fixed += 1
                    self.stdout.write(
                        self.style.SUCCESS(f"[FIXED] {label}: closed {len(result.closed_order_ids)} order(s)")
                    )
                else:
                    errors += 1
                    self.stderr.write(self.style.ERROR(f"[FAIL] {label}: closure did not apply"))

        self.stdout.write("")
        if errors == 0:
            self.stdout.write(self.style.SUCCESS(f"RECONCILIATION PASSED (fixed {fixed})"))
        else:
            self.stderr.write(self.style.ERROR(f"RECONCILIATION FOUND ISSUES: {errors} problem(s)"))

        return self._exit(strict and errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
