"""
PATH: inventory/models/__init__.py

Inventory models export surface (imports only).
"""

from .balance import ItemLocation, ItemWarehouse
from .document_sequence import DocumentSequence
from .item import Item, ItemPackage, UnitOfMeasure
from .stock_ledger import StockTransactionItem
from .stock_transaction import StockTransaction, StockTransactionLine
from .warehouse import DEFAULT_LOCATION_CODE, Warehouse, WarehouseLocation

__all__ = [
    "UnitOfMeasure",
    "Item",
    "ItemPackage",
    "Warehouse",
    "WarehouseLocation",
    "DEFAULT_LOCATION_CODE",
    "ItemWarehouse",
    "ItemLocation",
    "StockTransaction",
    "StockTransactionLine",
    "StockTransactionItem",
    "DocumentSequence",
]
