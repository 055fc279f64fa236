# inventory/services/normalization.py

"""
PACKAGE NORMALIZATION

Converts a caller-facing quantity (possibly in packages) into base units.

    base_qty = input_qty * conversion_factor
    conversion_factor = package.qty_per_pack, or 1 without a package
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .delta import to_decimal
from .exceptions import InvalidQuantity, StockValidationError

ONE = Decimal("1")
Q4 = Decimal("0.0001")


@dataclass(frozen=True)
class NormalizedQuantity:
    input_qty: Decimal
    conversion_factor: Decimal
    base_qty: Decimal
    uom: object = None
    package: object = None


def normalize_quantity(*, item, quantity, package=None, uom=None) -> NormalizedQuantity:
    input_qty = to_decimal(quantity)
    if not input_qty.is_finite() or input_qty <= 0:
        raise InvalidQuantity()
    input_qty = input_qty.quantize(Q4)

    factor = ONE
    if package is not None:
        if package.item_id != item.pk:
            raise StockValidationError(
                f"Package {package.pack_name} does not belong to item {item.item_code}"
            )
        factor = Decimal(package.qty_per_pack)
        if factor <= 0:
            raise StockValidationError(f"Package {package.pack_name} has no valid qty_per_pack")

    base_qty = (input_qty * factor).quantize(Q4)
    if base_qty <= 0:
        raise InvalidQuantity()

    return NormalizedQuantity(
        input_qty=input_qty,
        conversion_factor=factor,
        base_qty=base_qty,
        uom=uom if uom is not None else item.uom,
        package=package,
    )
