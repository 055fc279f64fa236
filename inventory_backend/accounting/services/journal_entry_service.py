# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create JournalEntry
- Create LedgerEntry
- Enforce debit == credit
- Guarantee atomicity
- Enforce idempotency via reference (prevents double-posting)
- Enforce company scoping (every posting account belongs to the entry's company)

Everything else (purchase receipts, adjustments, POS) must pass through here.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.exceptions import (
    IdempotencyError,
    JournalEntryCreationError,
)

TWOPLACES = Decimal("0.01")
MIN_LINE_AMOUNT = Decimal("0.01")


def _money(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise JournalEntryCreationError(f"Invalid money value: {value!r}") from exc

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _as_aware_dt(dt: datetime | None) -> datetime:
    if dt is None:
        return timezone.now()
    if timezone.is_naive(dt):
        return timezone.make_aware(dt, timezone.get_current_timezone())
    return dt


def build_reference(reference_type: str | None, reference_id) -> str | None:
    if not reference_type or not reference_id:
        return None

    rt = str(reference_type).strip()
    rid = str(reference_id).strip()
    if not rt or not rid:
        return None

    return f"{rt}:{rid}"


@transaction.atomic
def create_journal_entry(
    *,
    company_id,
    description: str,
    postings: list,
    reference_type: str | None = None,
    reference_id=None,
    posted_at: datetime | None = None,
    user=None,
):
    if not postings:
        raise JournalEntryCreationError(
            "Journal entry must contain at least one posting"
        )

    description = (description or "").strip()
    if not description:
        raise JournalEntryCreationError("Journal entry description is required")

    reference = build_reference(reference_type, reference_id)

    total_debits = Decimal("0.00")
    total_credits = Decimal("0.00")
    normalized_postings: list[dict] = []

    for line in postings:
        if not isinstance(line, dict):
            raise JournalEntryCreationError("Each posting must be an object/dict")

        account = line.get("account")
        if account is None:
            raise JournalEntryCreationError("Posting missing account")

        if account.company_id != company_id:
            raise JournalEntryCreationError(
                f"Account {account.code} does not belong to this company"
            )

        if not account.is_active:
            raise JournalEntryCreationError(f"Account {account.code} is inactive")

        debit = _money(line.get("debit"))
        credit = _money(line.get("credit"))

        if debit < 0 or credit < 0:
            raise JournalEntryCreationError("Debit or credit cannot be negative")

        if debit > 0 and credit > 0:
            raise JournalEntryCreationError(
                "A posting cannot have both debit and credit"
            )

        if debit == 0 and credit == 0:
            raise JournalEntryCreationError(
                "A posting must have either debit or credit"
            )

        if 0 < debit < MIN_LINE_AMOUNT or 0 < credit < MIN_LINE_AMOUNT:
            raise JournalEntryCreationError("Posting amount too small")

        total_debits += debit
        total_credits += credit

        normalized_postings.append(
            {"account": account, "debit": debit, "credit": credit}
        )

    if total_debits != total_credits:
        raise JournalEntryCreationError(
            f"Journal entry not balanced: debits={total_debits} credits={total_credits}"
        )

    # Clear error before DB constraint race handling
    existing = JournalEntry.objects.filter(company_id=company_id, reference=reference)
    if reference and existing.exists():
        raise IdempotencyError(
            f"Journal entry already exists for reference {reference}"
        )

    try:
        with transaction.atomic():
            journal_entry = JournalEntry.objects.create(
                company_id=company_id,
                description=description,
                reference=reference,
                posted_at=_as_aware_dt(posted_at),
                created_by=user,
                is_posted=True,
            )
    except IntegrityError as exc:
        if reference and existing.exists():
            raise IdempotencyError(
                f"Journal entry already exists for reference {reference}"
            ) from exc
        raise JournalEntryCreationError(
            f"Failed to create journal entry: {exc}"
        ) from exc

    ledger_entries: list[LedgerEntry] = []
    for line in normalized_postings:
        if line["debit"] > 0:
            ledger_entries.append(
                LedgerEntry(
                    journal_entry=journal_entry,
                    account=line["account"],
                    entry_type=LedgerEntry.DEBIT,
                    amount=line["debit"],
                )
            )
        else:
            ledger_entries.append(
                LedgerEntry(
                    journal_entry=journal_entry,
                    account=line["account"],
                    entry_type=LedgerEntry.CREDIT,
                    amount=line["credit"],
                )
            )

    LedgerEntry.objects.bulk_create(ledger_entries)
    return journal_entry
