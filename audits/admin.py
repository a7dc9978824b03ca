"""
Audits — Django Admin Configuration

Audits with their counted items inline. Counts and status change only
through StockAuditService, so everything is read-only here.

@file audits/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import StockAudit, StockAuditItem


class StockAuditItemInline(admin.TabularInline):
    model = StockAuditItem
    extra = 0
    can_delete = False
    fields = (
        'item_name', 'item_code', 'item_type', 'unit',
        'expected_quantity', 'actual_quantity', 'difference', 'status', 'audited_by',
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(StockAudit)
class StockAuditAdmin(admin.ModelAdmin):
    list_display = ('name', 'company', 'warehouse', 'audit_date', 'status', 'completed_at')
    list_filter = ('status', 'audit_date')
    search_fields = ('name', 'company__name')
    readonly_fields = (
        'id', 'company', 'warehouse', 'audit_date', 'status', 'completed_at',
        'created_by', 'created_at', 'updated_at',
    )
    list_select_related = ('company', 'warehouse')
    date_hierarchy = 'audit_date'
    inlines = [StockAuditItemInline]

    fieldsets = (
        (_('Audit'), {
            'fields': ('id', 'name', 'description', 'company', 'warehouse', 'audit_date'),
        }),
        (_('Status'), {
            'fields': ('status', 'completed_at'),
        }),
        (_('Audit trail'), {
            'fields': ('created_by', 'created_at', 'updated_at'),
        }),
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return obj is not None and not obj.is_completed
