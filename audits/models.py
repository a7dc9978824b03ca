"""
Audits — Models

A stock audit is a physical count of one warehouse. StockAuditItem
freezes the expected quantity when the audit is opened and stores the
counted quantity and the difference once the count is recorded.

Lifecycle: pending -> completed (one-way). Applying the differences of a
completed audit writes adjustment entries to the stock ledger.

@file audits/models.py
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from catalog.models import ItemType
from core.models import BaseModel
from stock.models import QUANTITY_DECIMALS, QUANTITY_DIGITS


class StockAudit(BaseModel):

    class StatusChoices(models.TextChoices):
        PENDING = 'pending', _('Pending')
        COMPLETED = 'completed', _('Completed')

    company = models.ForeignKey(
        'companies.Company',
        on_delete=models.CASCADE,
        related_name='stock_audits',
        verbose_name=_('company'),
    )
    warehouse = models.ForeignKey(
        'companies.Warehouse',
        on_delete=models.RESTRICT,
        related_name='stock_audits',
        verbose_name=_('warehouse'),
    )
    name = models.CharField(_('name'), max_length=255)
    description = models.TextField(_('description'), blank=True)
    audit_date = models.DateField(_('audit date'), db_index=True)
    status = models.CharField(
        _('status'), max_length=12,
        choices=StatusChoices.choices,
        default=StatusChoices.PENDING, db_index=True,
    )
    completed_at = models.DateTimeField(_('completed at'), null=True, blank=True)

    class Meta:
        verbose_name = _('stock audit')
        verbose_name_plural = _('stock audits')
        ordering = ['-audit_date', '-created_at']
        indexes = [
            models.Index(fields=['company', 'status'], name='stock_audit_company_st_idx'),
        ]

    def __str__(self):
        return f'{self.name} ({self.audit_date}, {self.status})'

    @property
    def is_completed(self) -> bool:
        return self.status == self.StatusChoices.COMPLETED


class StockAuditItem(models.Model):
    """
    One counted line. difference = actual_quantity - expected_quantity,
    stored when the count is recorded and never re-derived.
    """

    class StatusChoices(models.TextChoices):
        PENDING = 'pending', _('Pending')
        COMPLETED = 'completed', _('Completed')
        DISCREPANCY = 'discrepancy', _('Discrepancy')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    audit = models.ForeignKey(
        StockAudit,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('audit'),
    )
    stock_item = models.ForeignKey(
        'stock.StockItem',
        on_delete=models.CASCADE,
        related_name='audit_items',
        verbose_name=_('stock item'),
    )
    item_name = models.CharField(_('item name'), max_length=255, blank=True)
    item_code = models.CharField(_('item code'), max_length=50, blank=True)
    item_type = models.CharField(_('item type'), max_length=12, choices=ItemType.choices)
    unit = models.CharField(_('unit'), max_length=20, blank=True)
    expected_quantity = models.DecimalField(
        _('expected quantity'),
        max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_DECIMALS,
    )
    actual_quantity = models.DecimalField(
        _('actual quantity'),
        max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_DECIMALS,
        null=True, blank=True,
    )
    difference = models.DecimalField(
        _('difference'),
        max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_DECIMALS,
        null=True, blank=True,
    )
    status = models.CharField(
        _('status'), max_length=12,
        choices=StatusChoices.choices,
        default=StatusChoices.PENDING, db_index=True,
    )
    notes = models.TextField(_('notes'), blank=True)
    audited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=_('audited by'),
    )
    audited_at = models.DateTimeField(_('audited at'), null=True, blank=True)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('stock audit item')
        verbose_name_plural = _('stock audit items')
        ordering = ['item_type', 'item_name']
        constraints = [
            models.UniqueConstraint(
                fields=['audit', 'stock_item'],
                name='stock_audit_item_unique',
            ),
        ]

    def __str__(self):
        return f'{self.item_name}: expected {self.expected_quantity}, counted {self.actual_quantity}'
