# purchases/tests/factories.py

from decimal import Decimal

from purchases.models import Supplier
from purchases.services.purchase_order_service import (
    PurchaseOrderLine,
    approve_purchase_order,
    create_purchase_order,
)


def make_supplier(company, code="SUP-1", name="Main Supplier", **extra):
    return Supplier.objects.create(company=company, supplier_code=code, name=name, **extra)


def make_approved_order(ctx, supplier, item, quantity="10", rate="5"):
    order = create_purchase_order(
        ctx,
        supplier=supplier,
        lines=[PurchaseOrderLine(item=item, quantity=Decimal(quantity), rate=Decimal(rate))],
    )
    return approve_purchase_order(ctx, order)
