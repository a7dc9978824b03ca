"""
Companies — Django Admin Configuration

@file companies/admin.py
"""

from django.contrib import admin

from .models import Company, Warehouse


class WarehouseInline(admin.TabularInline):
    model = Warehouse
    extra = 0
    fields = ('name', 'is_active', 'is_default')


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ('name', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('name',)
    inlines = [WarehouseInline]


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ('name', 'company', 'is_active', 'is_default')
    list_filter = ('is_active', 'is_default')
    search_fields = ('name', 'company__name')
    list_select_related = ('company',)
