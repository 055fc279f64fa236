# inventory/api/filters.py

import django_filters

from inventory.models import Item, ItemWarehouse, StockTransaction, StockTransactionItem


class ItemFilter(django_filters.FilterSet):
    q = django_filters.CharFilter(method="filter_q")

    class Meta:
        model = Item
        fields = ["item_type", "is_active", "uom"]

    def filter_q(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset
        return queryset.filter(item_code__icontains=value) | queryset.filter(
            item_name__icontains=value
        )


class StockTransactionFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name="transaction_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="transaction_date", lookup_expr="lte")

    class Meta:
        model = StockTransaction
        fields = ["transaction_type", "status", "warehouse", "reference_type", "reference_id"]


class StockLedgerFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(field_name="posting_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="posting_date", lookup_expr="lte")

    class Meta:
        model = StockTransactionItem
        fields = ["item", "warehouse", "transaction", "location"]


class ItemWarehouseFilter(django_filters.FilterSet):
    class Meta:
        model = ItemWarehouse
        fields = ["item", "warehouse"]
