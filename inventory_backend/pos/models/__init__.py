from .sale import PosTransaction, PosTransactionItem, PosTransactionPayment

__all__ = [
    "PosTransaction",
    "PosTransactionItem",
    "PosTransactionPayment",
]
