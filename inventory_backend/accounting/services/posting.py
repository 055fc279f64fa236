# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
BEST-EFFORT GL POSTING ADAPTER

Documents (receipts, adjustments, POS sales) call this AFTER their stock
work has committed. A GL failure never rolls back stock:

- posting disabled (ACCOUNTING_POSTING_ENABLED=False) -> skipped silently
- accounting error / missing account / DB error     -> logged, returned as a warning

Each rule runs in its own atomic block so a failed journal leaves no
partial ledger lines behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction

from accounting.services.exceptions import AccountingServiceError

logger = logging.getLogger(__name__)


@dataclass
class PostingOutcome:
    journal_entries: list = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def extend(self, other: PostingOutcome) -> PostingOutcome:
        self.journal_entries.extend(other.journal_entries)
        self.warnings.extend(other.warnings)
        return self


def posting_enabled() -> bool:
    return bool(getattr(settings, "ACCOUNTING_POSTING_ENABLED", False))


def post_best_effort(label: str, rule, **kwargs) -> PostingOutcome:
    """
    Run one posting rule; never raises for accounting failures.

    label is the human name used in the warning ("AP posting", "COGS posting").
    """
    outcome = PostingOutcome()
    if not posting_enabled():
        return outcome

    try:
        with transaction.atomic():
            entry = rule(**kwargs)
    except (AccountingServiceError, DjangoValidationError, DatabaseError) as exc:
        logger.warning(
            "%s failed",
            label,
            extra={
                "company_id": str(kwargs.get("company_id")),
                "rule": getattr(rule, "__name__", str(rule)),
                "error": str(exc),
            },
        )
        outcome.warnings.append(f"{label} failed: {exc}")
        return outcome

    if entry is not None:
        outcome.journal_entries.append(entry)
    return outcome
