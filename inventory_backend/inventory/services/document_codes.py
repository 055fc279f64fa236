# inventory/services/document_codes.py

"""
DOCUMENT CODES

One generator for every document type:

    {PREFIX}-{YYYY}-{NNNN}

Backed by DocumentSequence, one row per (company, prefix, year), locked
with select_for_update() inside the caller's transaction so codes are
sequential and never duplicated. A rolled-back posting releases its
number together with everything else.
"""

from __future__ import annotations

from django.db import IntegrityError, transaction
from django.utils import timezone

from inventory.models import DocumentSequence

PREFIX_STOCK_TRANSACTION = "ST"
PREFIX_ADJUSTMENT = "ADJ"
PREFIX_PURCHASE_RECEIPT = "GRN"
PREFIX_PURCHASE_ORDER = "PO"
PREFIX_POS = "POS"
PREFIX_PICK_LIST = "PL"
PREFIX_TRANSFORMATION = "TRN"


def format_code(prefix: str, year: int, value: int) -> str:
    return f"{prefix}-{year}-{value:04d}"


def _locked_sequence(company_id, prefix: str, year: int) -> DocumentSequence:
    qs = DocumentSequence.objects.select_for_update().filter(
        company_id=company_id, prefix=prefix, year=year
    )
    seq = qs.first()
    if seq is not None:
        return seq

    try:
        with transaction.atomic():
            return DocumentSequence.objects.create(
                company_id=company_id, prefix=prefix, year=year, last_value=0
            )
    except IntegrityError:
        return qs.get()


@transaction.atomic
def next_document_code(company_id, prefix: str, *, on_date=None) -> str:
    year = (on_date or timezone.localdate()).year

    # lock row for concurrency safety
    seq = _locked_sequence(company_id, prefix, year)
    seq.last_value += 1
    seq.save(update_fields=["last_value", "updated_at"])

    return format_code(prefix, year, seq.last_value)
