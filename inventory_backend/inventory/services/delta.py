# inventory/services/delta.py

"""
DELTA CALCULATOR

Pure mapping from (transaction type, quantity, leg) to the signed
base-unit change applied to a balance. Never looks at balances.

    in                   -> +q
    out                  -> -q
    transfer (source)    -> -q
    transfer (destination) -> +q
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .exceptions import InvalidQuantity, InvalidTransactionType

TYPE_IN = "in"
TYPE_OUT = "out"
TYPE_TRANSFER = "transfer"

TRANSACTION_TYPES = (TYPE_IN, TYPE_OUT, TYPE_TRANSFER)

LEG_SOURCE = "source"
LEG_DESTINATION = "destination"


def to_decimal(value, *, field: str = "quantity") -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        raise InvalidQuantity(f"{field} is required")
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidQuantity(f"{field} must be a valid number")


def signed_delta(transaction_type: str, quantity, *, leg: str = LEG_SOURCE) -> Decimal:
    if transaction_type not in TRANSACTION_TYPES:
        raise InvalidTransactionType(f"Invalid transaction type: {transaction_type}")

    qty = to_decimal(quantity)
    if not qty.is_finite() or qty <= 0:
        raise InvalidQuantity()

    if transaction_type == TYPE_IN:
        return qty
    if transaction_type == TYPE_OUT:
        return -qty

    if leg == LEG_DESTINATION:
        return qty
    if leg == LEG_SOURCE:
        return -qty
    raise InvalidTransactionType(f"Invalid transfer leg: {leg}")


def is_outbound(delta: Decimal) -> bool:
    return delta < 0
