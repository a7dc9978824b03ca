"""
Stock — Django Admin Configuration

Stock items are browsable; balances change only through the ledger.
StockTransaction and StockSnapshot are read-only (insert-only models:
save() blocks updates, delete() raises).

@file stock/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import StockItem, StockSnapshot, StockTransaction


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False  # INSERT ONLY — no updates

    def has_delete_permission(self, request, obj=None):
        return False  # INSERT ONLY — no deletes


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'company', 'warehouse', 'item_type', 'item_id',
        'current_quantity', 'unit', 'last_updated',
    )
    list_filter = ('item_type', 'company', 'warehouse')
    search_fields = ('item_id',)
    readonly_fields = ('id', 'current_quantity', 'last_updated', 'created_at', 'created_by')
    list_select_related = ('company', 'warehouse')
    ordering = ('company', 'item_type', 'created_at')

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockTransaction)
class StockTransactionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        'id', 'stock_item', 'transaction_type', 'quantity', 'timestamp',
        'item_name_snapshot', 'reference_type', 'reference_id', 'actor',
    )
    list_filter = ('transaction_type', 'timestamp')
    search_fields = ('item_name_snapshot', 'reference_type', 'notes')
    readonly_fields = (
        'id', 'stock_item', 'transaction_type', 'quantity', 'timestamp',
        'actor', 'reference_id', 'reference_type', 'notes',
        'item_name_snapshot', 'unit_snapshot', 'created_at',
    )
    list_select_related = ('stock_item', 'actor')
    show_full_result_count = False
    list_per_page = 50
    date_hierarchy = 'timestamp'
    ordering = ('-timestamp',)

    fieldsets = (
        (_('Transaction'), {
            'fields': ('id', 'stock_item', 'transaction_type', 'quantity', 'timestamp'),
        }),
        (_('Item at posting'), {
            'fields': ('item_name_snapshot', 'unit_snapshot'),
        }),
        (_('Reference'), {
            'fields': ('reference_id', 'reference_type', 'notes'),
        }),
        (_('Audit'), {
            'fields': ('actor', 'created_at'),
        }),
    )


@admin.register(StockSnapshot)
class StockSnapshotAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ('snapshot_date', 'stock_item', 'item_name', 'quantity', 'unit', 'company')
    list_filter = ('snapshot_date', 'company')
    search_fields = ('item_name',)
    readonly_fields = (
        'id', 'company', 'stock_item', 'snapshot_date',
        'quantity', 'item_name', 'unit', 'created_at',
    )
    list_select_related = ('stock_item', 'company')
    date_hierarchy = 'snapshot_date'
    ordering = ('-snapshot_date',)
