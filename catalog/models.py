"""
Catalog — Models

Items that can be stocked: ingredients and containers. The stock app
refers to them by (item_type, item_id) only and resolves names, units,
codes and categories through catalog.services.

@file catalog/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class ItemType(models.TextChoices):
    INGREDIENT = 'ingredient', _('Ingredient')
    CONTAINER = 'container', _('Container')


class Ingredient(BaseModel):
    company = models.ForeignKey(
        'companies.Company',
        on_delete=models.CASCADE,
        related_name='ingredients',
        verbose_name=_('company'),
    )
    name = models.CharField(_('name'), max_length=255)
    code_name = models.CharField(_('code'), max_length=50, blank=True, db_index=True)
    unit = models.CharField(_('unit'), max_length=20, default='kg')
    category = models.CharField(_('category'), max_length=100, blank=True)
    stock_grade = models.CharField(
        _('stock grade'), max_length=10, blank=True,
        help_text=_('Empty when the ingredient is not stock-managed'),
    )

    class Meta:
        verbose_name = _('ingredient')
        verbose_name_plural = _('ingredients')
        ordering = ['name']
        indexes = [
            models.Index(fields=['company', 'name'], name='catalog_ingredient_co_name_idx'),
        ]

    def __str__(self):
        return self.name


class Container(BaseModel):
    company = models.ForeignKey(
        'companies.Company',
        on_delete=models.CASCADE,
        related_name='containers',
        verbose_name=_('company'),
    )
    parent = models.ForeignKey(
        'self',
        null=True, blank=True,
        on_delete=models.CASCADE,
        related_name='children',
        verbose_name=_('parent group'),
    )
    name = models.CharField(_('name'), max_length=255)
    code_name = models.CharField(_('code'), max_length=50, blank=True, db_index=True)
    category = models.CharField(_('category'), max_length=100, blank=True)

    class Meta:
        verbose_name = _('container')
        verbose_name_plural = _('containers')
        ordering = ['name']
        indexes = [
            models.Index(fields=['company', 'name'], name='catalog_container_co_name_idx'),
        ]

    def __str__(self):
        return self.name
