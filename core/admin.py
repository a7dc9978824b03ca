"""
Core — Django Admin Configuration

Activity log viewer. Ledger writes and audit workflow steps show the
balance change they caused, when there is one.

@file core/admin.py
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from core.models import ActivityLog

ACTION_COLORS = {
    ActivityLog.ActionChoices.CREATE.value: '#22c55e',
    ActivityLog.ActionChoices.UPDATE.value: '#3b82f6',
    ActivityLog.ActionChoices.DELETE.value: '#ef4444',
    ActivityLog.ActionChoices.STATUS_CHANGE.value: '#eab308',
    ActivityLog.ActionChoices.RECONCILE.value: '#8b5cf6',
}


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'action_badge', 'model_name', 'object_id', 'balance_change', 'actor')
    list_filter = ('action', 'model_name')
    search_fields = ('object_id', 'actor__username')
    readonly_fields = [f.name for f in ActivityLog._meta.fields]
    date_hierarchy = 'timestamp'
    list_select_related = ('actor',)
    show_full_result_count = False
    ordering = ('-timestamp',)

    fieldsets = (
        (_('Event'), {'fields': ('id', 'action', 'timestamp', 'actor')}),
        (_('Target'), {'fields': ('model_name', 'object_id')}),
        (_('Values'), {'fields': ('old_values', 'new_values'), 'classes': ('collapse',)}),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Action'))
    def action_badge(self, obj):
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; border-radius:4px;">{}</span>',
            ACTION_COLORS.get(obj.action, '#6b7280'), obj.get_action_display(),
        )

    @admin.display(description=_('Balance'))
    def balance_change(self, obj):
        before = (obj.old_values or {}).get('current_quantity')
        after = (obj.new_values or {}).get('current_quantity')
        if after is None:
            return '—'
        return f'{before} → {after}' if before is not None else after
