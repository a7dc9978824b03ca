"""
Stock — Serializers

Read serializers for stock items and ledger rows; plain input
serializers for registration, posting, batch posting and balance
queries. Business validation (signs, existence, dates) lives in the
services. Explicit field lists; no __all__.

@file stock/serializers.py
"""

from rest_framework import serializers

from catalog.models import ItemType

from .models import QUANTITY_DECIMALS, QUANTITY_DIGITS, StockItem, StockTransaction


class StockItemSerializer(serializers.ModelSerializer):
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)

    class Meta:
        model = StockItem
        fields = [
            'id', 'company', 'warehouse', 'warehouse_name', 'item_type', 'item_id',
            'current_quantity', 'unit', 'last_updated', 'created_at', 'created_by',
        ]
        read_only_fields = fields


class StockItemRegisterSerializer(serializers.Serializer):
    company_id = serializers.UUIDField()
    warehouse_id = serializers.UUIDField()
    item_type = serializers.ChoiceField(choices=ItemType.choices)
    item_id = serializers.UUIDField()
    unit = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')


class StockTransactionSerializer(serializers.ModelSerializer):
    signed_quantity = serializers.DecimalField(
        max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_DECIMALS, read_only=True,
    )
    transaction_type_display = serializers.CharField(source='get_transaction_type_display', read_only=True)

    class Meta:
        model = StockTransaction
        fields = [
            'id', 'stock_item', 'transaction_type', 'transaction_type_display',
            'quantity', 'signed_quantity', 'timestamp', 'actor',
            'reference_id', 'reference_type', 'notes',
            'item_name_snapshot', 'unit_snapshot', 'created_at',
        ]
        read_only_fields = fields


class StockTransactionWriteSerializer(serializers.Serializer):
    stock_item_id = serializers.UUIDField()
    transaction_type = serializers.ChoiceField(choices=StockTransaction.TransactionType.choices)
    quantity = serializers.DecimalField(max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_DECIMALS)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    reference_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    reference_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    timestamp = serializers.DateTimeField(required=False, allow_null=True, default=None)


class StockBatchPostingSerializer(serializers.Serializer):
    """
    Parallel arrays: quantities[i] is posted to stock_item_ids[i].
    Ids are kept as strings so one malformed id fails only its own row.
    """

    stock_item_ids = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    quantities = serializers.ListField(
        child=serializers.DecimalField(max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_DECIMALS),
        allow_empty=False,
    )
    transaction_type = serializers.ChoiceField(choices=StockTransaction.TransactionType.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    reference_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    reference_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')


class BalanceQuerySerializer(serializers.Serializer):
    company_id = serializers.UUIDField()
    # Parsed by the reconstruction service so date errors share one message.
    target_date = serializers.CharField()
    stock_item_id = serializers.UUIDField(required=False, allow_null=True, default=None)
