"""
Catalog — Django Admin Configuration

@file catalog/admin.py
"""

from django.contrib import admin

from .models import Container, Ingredient


@admin.register(Ingredient)
class IngredientAdmin(admin.ModelAdmin):
    list_display = ('name', 'code_name', 'unit', 'category', 'stock_grade', 'company')
    list_filter = ('category', 'stock_grade')
    search_fields = ('name', 'code_name')
    list_select_related = ('company',)


@admin.register(Container)
class ContainerAdmin(admin.ModelAdmin):
    list_display = ('name', 'code_name', 'category', 'parent', 'company')
    list_filter = ('category',)
    search_fields = ('name', 'code_name')
    list_select_related = ('company', 'parent')
