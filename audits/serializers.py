"""
Audits — Serializers

Read serializers for audits and their items; input serializers for
opening an audit, recording counts and completing.

@file audits/serializers.py
"""

from rest_framework import serializers

from catalog.models import ItemType
from stock.models import QUANTITY_DECIMALS, QUANTITY_DIGITS

from .models import StockAudit, StockAuditItem
from .services import StockAuditService


class StockAuditItemSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = StockAuditItem
        fields = [
            'id', 'audit', 'stock_item', 'item_name', 'item_code', 'item_type', 'unit',
            'expected_quantity', 'actual_quantity', 'difference',
            'status', 'status_display', 'notes', 'audited_by', 'audited_at',
        ]
        read_only_fields = fields


class StockAuditListSerializer(serializers.ModelSerializer):
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = StockAudit
        fields = [
            'id', 'company', 'warehouse', 'warehouse_name', 'name', 'description',
            'audit_date', 'status', 'status_display', 'completed_at',
            'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class StockAuditDetailSerializer(StockAuditListSerializer):
    items = StockAuditItemSerializer(many=True, read_only=True)
    stats = serializers.SerializerMethodField()

    class Meta(StockAuditListSerializer.Meta):
        fields = StockAuditListSerializer.Meta.fields + ['stats', 'items']
        read_only_fields = fields

    def get_stats(self, obj):
        return StockAuditService.get_stats(obj)


class StockAuditCreateSerializer(serializers.Serializer):
    company_id = serializers.UUIDField()
    warehouse_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    audit_date = serializers.DateField()
    item_types = serializers.ListField(
        child=serializers.ChoiceField(choices=ItemType.choices),
        required=False,
        allow_empty=False,
    )
    include_untracked = serializers.BooleanField(default=True)


class AuditCountSerializer(serializers.Serializer):
    audit_item_id = serializers.UUIDField()
    actual_quantity = serializers.DecimalField(
        max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_DECIMALS, min_value=0,
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class AuditCountBatchSerializer(serializers.Serializer):
    counts = AuditCountSerializer(many=True, allow_empty=False)


class AuditCompleteSerializer(serializers.Serializer):
    apply_differences = serializers.BooleanField(default=False)
