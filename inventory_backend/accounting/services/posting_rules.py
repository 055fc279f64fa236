# accounting/services/posting_rules.py

"""
POSTING RULES (AUTHORITATIVE)

Defines HOW each business event maps to accounting intent.

RESPONSIBILITIES:
- Resolve semantic accounts
- Construct debit / credit postings
- Delegate persistence to the journal entry engine

THIS MODULE DOES NOT:
- Touch JournalEntry / LedgerEntry directly
- Enforce debit == credit math (the engine does)
- Decide whether posting is enabled (see accounting.services.posting)

Amounts are positive Decimals; a zero amount means "nothing to post"
and returns None.
"""

from __future__ import annotations

from decimal import Decimal

from accounting.services.account_resolver import (
    get_accounts_payable_account,
    get_cash_account,
    get_cogs_account,
    get_inventory_account,
    get_inventory_adjustment_account,
    get_sales_revenue_account,
    get_tax_payable_account,
)
from accounting.services.journal_entry_service import _money, create_journal_entry
from accounting.services.exceptions import PostingRuleError

ZERO = Decimal("0.00")

REF_PURCHASE_RECEIPT = "purchase_receipt"
REF_STOCK_ADJUSTMENT = "stock_adjustment"
REF_POS_SALE = "pos_sale"
REF_POS_COGS = "pos_cogs"
REF_POS_VOID = "pos_void"
REF_POS_VOID_COGS = "pos_void_cogs"


def _debit(account, amount):
    return {"account": account, "debit": amount, "credit": ZERO}


def _credit(account, amount):
    return {"account": account, "debit": ZERO, "credit": amount}


def post_purchase_receipt(*, company_id, receipt_id, receipt_code, amount, user=None, posted_at=None):
    """
    Goods received from a supplier.

    Debit  Inventory         (amount)
    Credit Accounts Payable  (amount)
    """
    amount = _money(amount)
    if amount <= ZERO:
        return None

    return create_journal_entry(
        company_id=company_id,
        description=f"Purchase receipt {receipt_code}",
        postings=[
            _debit(get_inventory_account(company_id), amount),
            _credit(get_accounts_payable_account(company_id), amount),
        ],
        reference_type=REF_PURCHASE_RECEIPT,
        reference_id=receipt_id,
        posted_at=posted_at,
        user=user,
    )


def post_stock_adjustment(*, company_id, adjustment_id, adjustment_code, net_value, user=None, posted_at=None):
    """
    Net value of a posted stock adjustment.

    Gain (net_value > 0): Debit Inventory / Credit Inventory Adjustments
    Loss (net_value < 0): Debit Inventory Adjustments / Credit Inventory
    """
    net_value = _money(net_value)
    if net_value == ZERO:
        return None

    inventory = get_inventory_account(company_id)
    adjustment = get_inventory_adjustment_account(company_id)
    amount = abs(net_value)

    if net_value > ZERO:
        postings = [_debit(inventory, amount), _credit(adjustment, amount)]
    else:
        postings = [_debit(adjustment, amount), _credit(inventory, amount)]

    return create_journal_entry(
        company_id=company_id,
        description=f"Stock adjustment {adjustment_code}",
        postings=postings,
        reference_type=REF_STOCK_ADJUSTMENT,
        reference_id=adjustment_id,
        posted_at=posted_at,
        user=user,
    )




def _sale_amounts(total_amount, tax_amount):
    total_amount = _money(total_amount)
    tax_amount = _money(tax_amount)
    if tax_amount < ZERO or tax_amount > total_amount:
        raise PostingRuleError("Tax amount must be between zero and the sale total")
    return total_amount, total_amount - tax_amount, tax_amount


def _sale_credits(company_id, revenue, tax_amount):
    lines = []
    if revenue > ZERO:
        lines.append((get_sales_revenue_account(company_id), revenue))
    if tax_amount > ZERO:
        lines.append((get_tax_payable_account(company_id), tax_amount))
    return lines


def post_pos_sale(*, company_id, sale_id, sale_code, total_amount, tax_amount=ZERO, user=None, posted_at=None):
    """
    Debit  Cash               (total_amount)
    Credit Sales Revenue      (total_amount - tax_amount)
    Credit Sales Tax Payable  (tax_amount, when > 0)

    Revenue is already net of line discounts.
    """
    total_amount, revenue, tax_amount = _sale_amounts(total_amount, tax_amount)
    if total_amount <= ZERO:
        return None

    postings = [_debit(get_cash_account(company_id), total_amount)]
    postings += [_credit(acc, amt) for acc, amt in _sale_credits(company_id, revenue, tax_amount)]

    return create_journal_entry(
        company_id=company_id,
        description=f"POS Sale {sale_code}",
        postings=postings,
        reference_type=REF_POS_SALE,
        reference_id=sale_id,
        posted_at=posted_at,
        user=user,
    )


def post_pos_void(*, company_id, sale_id, sale_code, total_amount, tax_amount=ZERO, user=None, posted_at=None):
    """Exact reversal of post_pos_sale."""
    total_amount, revenue, tax_amount = _sale_amounts(total_amount, tax_amount)
    if total_amount <= ZERO:
        return None

    postings = [_debit(acc, amt) for acc, amt in _sale_credits(company_id, revenue, tax_amount)]
    postings.append(_credit(get_cash_account(company_id), total_amount))

    return create_journal_entry(
        company_id=company_id,
        description=f"Void/Reversal - POS {sale_code}",
        postings=postings,
        reference_type=REF_POS_VOID,
        reference_id=sale_id,
        posted_at=posted_at,
        user=user,
    )


def post_pos_cogs(*, company_id, sale_id, sale_code, cost, user=None, posted_at=None, reverse=False):
    """
    Debit  Cost of Goods Sold (cost)
    Credit Inventory          (cost)

    reverse=True swaps the sides (sale voided, goods back on hand).
    """
    cost = _money(cost)
    if cost <= ZERO:
        return None

    cogs = get_cogs_account(company_id)
    inventory = get_inventory_account(company_id)

    if reverse:
        postings = [_debit(inventory, cost), _credit(cogs, cost)]
        description = f"Void/Reversal COGS - POS {sale_code}"
        reference_type = REF_POS_VOID_COGS
    else:
        postings = [_debit(cogs, cost), _credit(inventory, cost)]
        description = f"COGS - POS {sale_code}"
        reference_type = REF_POS_COGS

    return create_journal_entry(
        company_id=company_id,
        description=description,
        postings=postings,
        reference_type=reference_type,
        reference_id=sale_id,
        posted_at=posted_at,
        user=user,
    )
