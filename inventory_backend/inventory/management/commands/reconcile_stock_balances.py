# inventory/management/commands/reconcile_stock_balances.py

from __future__ import annotations

import logging
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.db.models import Sum

from inventory.models import ItemWarehouse, StockTransactionItem
from organizations.models import Company

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Compare item_warehouse balances with the stock ledger (sum of signed quantities)."

    def add_arguments(self, parser):
        parser.add_argument("--company", help="Company code (default: all companies)")
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Overwrite drifted balances with the ledger total.",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any drift is found and not fixed.",
        )

    def handle(self, *args, **options):
        company_code = (options.get("company") or "").strip().upper()
        fix = bool(options.get("fix"))
        strict = bool(options.get("strict"))

        ledger_qs = StockTransactionItem.objects.all()
        balance_qs = ItemWarehouse.objects.filter(deleted_at__isnull=True)

        if company_code:
            company = Company.objects.filter(code=company_code).first()
            if company is None:
                raise CommandError(f"Company not found: {company_code}")
            ledger_qs = ledger_qs.filter(company=company)
            balance_qs = balance_qs.filter(company=company)

        ledger_totals = {
            (row["item_id"], row["warehouse_id"]): Decimal(row["total"] or 0)
            for row in ledger_qs.values("item_id", "warehouse_id").annotate(total=Sum("quantity"))
        }

        self.stdout.write(self.style.MIGRATE_HEADING("Stock balance reconciliation"))

        drift = []
        seen = set()
        for balance in balance_qs.select_related("item", "warehouse"):
            key = (balance.item_id, balance.warehouse_id)
            seen.add(key)
            expected = ledger_totals.get(key, Decimal("0"))
            if Decimal(balance.current_stock) != expected:
                drift.append((balance, expected))

        orphans = [key for key in ledger_totals if key not in seen and ledger_totals[key] != 0]

        for balance, expected in drift:
            self.stdout.write(
                self.style.WARNING(
                    f"DRIFT {balance.item.item_code} @ {balance.warehouse.warehouse_code}: "
                    f"balance={balance.current_stock} ledger={expected}"
                )
            )
        for item_id, warehouse_id in orphans:
            self.stdout.write(
                self.style.WARNING(
                    f"MISSING balance row for item={item_id} warehouse={warehouse_id}: "
                    f"ledger={ledger_totals[(item_id, warehouse_id)]}"
                )
            )

        if fix and drift:
            with transaction.atomic():
                for balance, expected in drift:
                    # lock row for concurrency safety
                    locked = ItemWarehouse.objects.select_for_update().get(pk=balance.pk)
                    locked.current_stock = expected
                    locked.save(update_fields=["current_stock", "updated_at"])
                    logger.warning(
                        "Stock balance repaired from ledger",
                        extra={
                            "balance_id": str(locked.pk),
                            "previous": str(balance.current_stock),
                            "ledger_total": str(expected),
                        },
                    )
            self.stdout.write(self.style.SUCCESS(f"Repaired {len(drift)} balance row(s)."))

        total_issues = len(orphans) + (0 if fix else len(drift))
        if not drift and not orphans:
            self.stdout.write(self.style.SUCCESS("OK: balances match the ledger."))
        elif strict and total_issues:
            raise CommandError(f"{total_issues} stock balance issue(s) found.")
