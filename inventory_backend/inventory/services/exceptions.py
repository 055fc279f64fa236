# inventory/services/exceptions.py

"""
STOCK ENGINE ERRORS

Centralized domain errors for every posting service (stock transactions,
receipts, adjustments, POS, picking, transformations).

Each error carries the HTTP status the API layer renders it with
(see backend/exception_handler.py). Services raise; views never catch
just to re-wrap.
"""

from __future__ import annotations

from decimal import Decimal


class StockEngineError(Exception):
    """Base exception for all stock engine failures."""

    status_code = 400
    default_message = "Stock operation failed"

    def __init__(self, message: str | None = None):
        self.message = (message or self.default_message).strip()
        super().__init__(self.message)


class StockValidationError(StockEngineError):
    """Missing or malformed input (fields, quantities, references)."""

    default_message = "Invalid request"


class InvalidQuantity(StockValidationError):
    default_message = "Quantity must be greater than zero"


class InvalidTransactionType(StockValidationError):
    default_message = "Invalid transaction type"


class InsufficientStock(StockEngineError):
    """
    Outbound movement would drive a balance negative.

    available/requested are base-unit quantities.
    """

    def __init__(
        self,
        *,
        available: Decimal,
        requested: Decimal,
        item_code: str = "",
        warehouse_code: str = "",
    ):
        self.available = available
        self.requested = requested
        self.item_code = item_code
        self.warehouse_code = warehouse_code

        label = f" {item_code}" if item_code else ""
        where = f" in {warehouse_code}" if warehouse_code else ""
        super().__init__(
            f"Insufficient stock for item{label}{where}. "
            f"Available: {_fmt(available)}, Requested: {_fmt(requested)}"
        )


class NotFound(StockEngineError):
    """Referenced row is absent or belongs to another tenant."""

    status_code = 404
    default_message = "Not found"


class DocumentStateError(StockEngineError):
    """Operation not allowed in the document's current status."""

    default_message = "Operation not allowed in the current status"


class ConflictError(StockEngineError):
    status_code = 409
    default_message = "Conflicting update, retry the request"


class PersistenceError(StockEngineError):
    status_code = 500
    default_message = "Failed to persist stock changes"


def _fmt(value) -> str:
    try:
        d = Decimal(str(value)).normalize()
    except Exception:
        return str(value)
    # normalize() renders 10 as 1E+1
    return format(d, "f")
