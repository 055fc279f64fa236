# accounting/services/account_resolver.py

"""
ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose?"

Semantic names (INVENTORY, COGS, ...) map to fixed account codes; the
account itself is looked up per company.

Design goals:
- deterministic
- company-safe
- hard-fail on missing setup (so we don't post to wrong accounts)
"""

from __future__ import annotations

import logging

from django.db import transaction

from accounting.models.account import Account
from accounting.services.exceptions import AccountResolutionError

logger = logging.getLogger(__name__)

CASH = "CASH"
INVENTORY = "INVENTORY"
ACCOUNTS_PAYABLE = "ACCOUNTS_PAYABLE"
TAX_PAYABLE = "TAX_PAYABLE"
SALES_REVENUE = "SALES_REVENUE"
COGS = "COGS"
INVENTORY_ADJUSTMENT = "INVENTORY_ADJUSTMENT"

# semantic -> (code, name, account_type)
DEFAULT_CHART = {
    CASH: ("A-1000", "Cash and Bank", Account.ASSET),
    INVENTORY: ("A-1200", "Inventory", Account.ASSET),
    ACCOUNTS_PAYABLE: ("L-2000", "Accounts Payable", Account.LIABILITY),
    TAX_PAYABLE: ("L-2100", "Sales Tax Payable", Account.LIABILITY),
    SALES_REVENUE: ("R-4000", "Sales Revenue", Account.REVENUE),
    COGS: ("C-5000", "Cost of Goods Sold", Account.COST),
    INVENTORY_ADJUSTMENT: ("E-5100", "Inventory Adjustments", Account.EXPENSE),
}


def code_for(semantic: str) -> str:
    try:
        return DEFAULT_CHART[semantic][0]
    except KeyError as exc:
        raise AccountResolutionError(f"Unknown account purpose: {semantic}") from exc


def get_account(company_id, semantic: str) -> Account:
    code = code_for(semantic)
    account = Account.objects.filter(
        company_id=company_id, code=code, is_active=True
    ).first()
    if account is None:
        raise AccountResolutionError(
            f"Account {code} ({DEFAULT_CHART[semantic][1]}) is not set up for this company"
        )
    return account


def get_cash_account(company_id) -> Account:
    return get_account(company_id, CASH)


def get_inventory_account(company_id) -> Account:
    return get_account(company_id, INVENTORY)


def get_accounts_payable_account(company_id) -> Account:
    return get_account(company_id, ACCOUNTS_PAYABLE)


def get_tax_payable_account(company_id) -> Account:
    return get_account(company_id, TAX_PAYABLE)


def get_sales_revenue_account(company_id) -> Account:
    return get_account(company_id, SALES_REVENUE)


def get_cogs_account(company_id) -> Account:
    return get_account(company_id, COGS)


def get_inventory_adjustment_account(company_id) -> Account:
    return get_account(company_id, INVENTORY_ADJUSTMENT)


@transaction.atomic
def ensure_default_chart(company) -> list[Account]:
    """
    Idempotently create the accounts posting rules depend on.
    Existing accounts are left untouched (names may have been customized).
    """
    created: list[Account] = []
    for code, name, account_type in DEFAULT_CHART.values():
        account, was_created = Account.objects.get_or_create(
            company=company,
            code=code,
            defaults={"name": name, "account_type": account_type},
        )
        if was_created:
            created.append(account)

    if created:
        logger.info(
            "Seeded chart of accounts",
            extra={"company_id": str(company.id), "codes": [a.code for a in created]},
        )
    return created
