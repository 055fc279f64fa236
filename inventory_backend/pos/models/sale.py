"""
PATH: pos/models/sale.py

POS SALE (PosTransaction)

A completed counter sale. The header is written together with its lines,
payments and the 'out' stock transaction in one database transaction.

Lifecycle:
    completed --void--> voided   (terminal)

Money:
- subtotal        = sum(quantity * unit_price)
- total_discount  = sum(line discount amounts), line discount is a percentage
- total_tax       = (subtotal - total_discount) * tax_rate / 100
- total_amount    = subtotal - total_discount + total_tax
- change_amount   = amount_paid - total_amount (never negative)
- total_cost      = cost of goods sold, valued from the stock ledger rows
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

User = settings.AUTH_USER_MODEL


def _money(**kwargs):
    return models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"), **kwargs)


class PosTransaction(models.Model):
    STATUS_COMPLETED = "completed"
    STATUS_VOIDED = "voided"

    STATUSES = [
        (STATUS_COMPLETED, "Completed"),
        (STATUS_VOIDED, "Voided"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="pos_transactions",
    )
    business_unit = models.ForeignKey(
        "organizations.BusinessUnit",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pos_transactions",
    )

    transaction_code = models.CharField(max_length=32)
    transaction_date = models.DateTimeField(default=timezone.now, db_index=True)

    warehouse = models.ForeignKey(
        "inventory.Warehouse",
        on_delete=models.PROTECT,
        related_name="pos_transactions",
    )

    customer_name = models.CharField(max_length=255, blank=True, default="")

    subtotal = _money()
    total_discount = _money()
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    total_tax = _money()
    total_amount = _money()
    amount_paid = _money()
    change_amount = _money()
    total_cost = _money()

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_COMPLETED)

    cashier = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="pos_transactions",
    )
    cashier_name = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    stock_transaction = models.ForeignKey(
        "inventory.StockTransaction",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    void_stock_transaction = models.ForeignKey(
        "inventory.StockTransaction",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pos_transactions_voided",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-transaction_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "transaction_code"],
                name="uniq_pos_transaction_company_code",
            ),
            models.CheckConstraint(
                condition=Q(change_amount__gte=0),
                name="pos_transaction_change_nonnegative",
            ),
            models.CheckConstraint(
                condition=Q(total_amount__gte=0),
                name="pos_transaction_total_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"], name="pos_company_status_idx"),
            models.Index(fields=["cashier", "transaction_date"], name="pos_cashier_date_idx"),
        ]

    def clean(self):
        if self.status == self.STATUS_VOIDED and not self.voided_at:
            raise ValidationError({"voided_at": "voided_at is required for voided sales"})
        if self.amount_paid < self.total_amount:
            raise ValidationError({"amount_paid": "Insufficient payment amount"})

    def save(self, *args, **kwargs):
        self.full_clean(validate_constraints=False)
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.transaction_code} ({self.status})"


class PosTransactionItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    pos_transaction = models.ForeignKey(
        PosTransaction,
        on_delete=models.CASCADE,
        related_name="items",
    )
    line_no = models.PositiveIntegerField(default=1)

    item = models.ForeignKey(
        "inventory.Item",
        on_delete=models.PROTECT,
        related_name="pos_transaction_items",
    )
    item_code = models.CharField(max_length=64)
    item_name = models.CharField(max_length=255)
    package = models.ForeignKey(
        "inventory.ItemPackage",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    unit_price = models.DecimalField(max_digits=18, decimal_places=4)
    # percentage, 0..100
    discount = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    line_total = models.DecimalField(max_digits=18, decimal_places=4)

    class Meta:
        ordering = ["line_no"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="pos_item_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(discount__gte=0) & Q(discount__lte=100),
                name="pos_item_discount_pct_range",
            ),
        ]

    def __str__(self):
        return f"{self.item_code} x {self.quantity}"


class PosTransactionPayment(models.Model):
    METHOD_CASH = "cash"
    METHOD_CREDIT_CARD = "credit_card"
    METHOD_GCASH = "gcash"
    METHOD_PAYMAYA = "paymaya"
    METHOD_BANK_TRANSFER = "bank_transfer"
    METHOD_CHECK = "check"
    METHOD_OTHER = "other"

    METHOD_CHOICES = [
        (METHOD_CASH, "Cash"),
        (METHOD_CREDIT_CARD, "Credit card"),
        (METHOD_GCASH, "GCash"),
        (METHOD_PAYMAYA, "PayMaya"),
        (METHOD_BANK_TRANSFER, "Bank transfer"),
        (METHOD_CHECK, "Check"),
        (METHOD_OTHER, "Other"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    pos_transaction = models.ForeignKey(
        PosTransaction,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    method = models.CharField(max_length=32, choices=METHOD_CHOICES)
    amount = models.DecimalField(max_digits=18, decimal_places=4)
    reference = models.CharField(max_length=128, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="pos_payment_amount_gt_zero",
            ),
        ]

    def __str__(self):
        return f"{self.pos_transaction_id} | {self.method} | {self.amount}"
