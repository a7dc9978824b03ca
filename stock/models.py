"""
Stock — Models

StockItem holds the cached current balance of one item in one warehouse.
StockTransaction is the append-only ledger behind that balance: INSERT
ONLY, never update or delete. StockSnapshot is an immutable end-of-day
checkpoint written by an external job and only read here.

current_quantity always equals the sum of signed_effect() over the
item's transactions.

@file stock/models.py
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from catalog.models import ItemType

QUANTITY_DIGITS = 15
QUANTITY_DECIMALS = 3


class StockItem(models.Model):
    """
    One trackable unit: a catalog item held in a warehouse.

    Created explicitly or lazily on first posting. Never deleted except by
    cascading company deletion.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    company = models.ForeignKey(
        'companies.Company',
        on_delete=models.CASCADE,
        related_name='stock_items',
        verbose_name=_('company'),
    )
    item_type = models.CharField(
        _('item type'), max_length=12,
        choices=ItemType.choices, db_index=True,
    )
    item_id = models.UUIDField(
        _('item ID'),
        help_text=_('Ingredient or container UUID; resolved through the item catalog'),
    )
    warehouse = models.ForeignKey(
        'companies.Warehouse',
        on_delete=models.RESTRICT,
        related_name='stock_items',
        verbose_name=_('warehouse'),
    )
    current_quantity = models.DecimalField(
        _('current quantity'),
        max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_DECIMALS,
        default=Decimal('0'),
    )
    unit = models.CharField(_('unit'), max_length=20, blank=True)
    last_updated = models.DateTimeField(_('last updated'), default=timezone.now)
    created_at = models.DateTimeField(_('created at'), default=timezone.now, db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=_('created by'),
    )

    class Meta:
        verbose_name = _('stock item')
        verbose_name_plural = _('stock items')
        ordering = ['company', 'item_type', 'created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['company', 'warehouse', 'item_type', 'item_id'],
                name='stock_item_unique_per_warehouse',
            ),
        ]
        indexes = [
            models.Index(fields=['company', 'warehouse'], name='stock_item_company_wh_idx'),
            models.Index(fields=['item_type', 'item_id'], name='stock_item_catalog_idx'),
        ]

    def __str__(self):
        return f'{self.item_type}:{self.item_id} @ {self.warehouse_id} = {self.current_quantity}{self.unit}'

    @property
    def catalog_key(self):
        return (self.item_type, self.item_id)


class StockTransaction(models.Model):
    """
    A single immutable ledger entry (insert only).

    quantity is non-negative for incoming/outgoing/disposal. For
    adjustment it is the signed delta, computed once when written.
    """

    class TransactionType(models.TextChoices):
        INCOMING = 'incoming', _('Incoming')
        OUTGOING = 'outgoing', _('Outgoing')
        DISPOSAL = 'disposal', _('Disposal')
        ADJUSTMENT = 'adjustment', _('Adjustment')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    stock_item = models.ForeignKey(
        StockItem,
        on_delete=models.CASCADE,
        related_name='transactions',
        verbose_name=_('stock item'),
    )
    transaction_type = models.CharField(
        _('transaction type'), max_length=12,
        choices=TransactionType.choices, db_index=True,
    )
    quantity = models.DecimalField(
        _('quantity'),
        max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_DECIMALS,
    )
    timestamp = models.DateTimeField(_('timestamp'), default=timezone.now, db_index=True)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=_('actor'),
    )
    reference_id = models.UUIDField(
        _('reference ID'), null=True, blank=True,
        help_text=_('Source record: stock audit, cooking plan, etc.'),
    )
    reference_type = models.CharField(
        _('reference type'), max_length=100, blank=True,
        help_text=_('Kind of source record'),
    )
    notes = models.TextField(_('notes'), blank=True)
    item_name_snapshot = models.CharField(_('item name at posting'), max_length=255, blank=True)
    unit_snapshot = models.CharField(_('unit at posting'), max_length=20, blank=True)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    # No updated_at — immutable record.

    class Meta:
        verbose_name = _('stock transaction')
        verbose_name_plural = _('stock transactions')
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['stock_item', 'timestamp'], name='stock_txn_item_ts_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='stock_txn_reference_idx'),
        ]

    def __str__(self):
        return f'{self.transaction_type} {self.quantity} item={self.stock_item_id} at {self.timestamp:%Y-%m-%d %H:%M}'

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise NotImplementedError('StockTransaction is insert-only; updates are not allowed.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise NotImplementedError('StockTransaction records cannot be deleted.')

    @property
    def signed_quantity(self) -> Decimal:
        return signed_effect(self.transaction_type, self.quantity)


# Sign applied to quantity for each transaction type. Adjustments are
# stored pre-signed, so they pass through unchanged.
TRANSACTION_SIGNS = {
    StockTransaction.TransactionType.INCOMING: 1,
    StockTransaction.TransactionType.OUTGOING: -1,
    StockTransaction.TransactionType.DISPOSAL: -1,
    StockTransaction.TransactionType.ADJUSTMENT: 1,
}


def signed_effect(transaction_type: str, quantity) -> Decimal:
    """
    Balance delta of one ledger entry. Posting adds it, backward replay
    subtracts it, forward replay adds it.

    Raises ValueError for an unknown transaction type.
    """
    sign = TRANSACTION_SIGNS[StockTransaction.TransactionType(transaction_type)]
    return sign * Decimal(str(quantity))


class StockSnapshot(models.Model):
    """
    Balance of one stock item at end of snapshot_date, as known when the
    snapshot was written. Immutable; superseded only by later dates.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    company = models.ForeignKey(
        'companies.Company',
        on_delete=models.CASCADE,
        related_name='stock_snapshots',
        verbose_name=_('company'),
    )
    stock_item = models.ForeignKey(
        StockItem,
        on_delete=models.CASCADE,
        related_name='snapshots',
        verbose_name=_('stock item'),
    )
    snapshot_date = models.DateField(_('snapshot date'), db_index=True)
    quantity = models.DecimalField(
        _('quantity'),
        max_digits=QUANTITY_DIGITS, decimal_places=QUANTITY_DECIMALS,
    )
    item_name = models.CharField(_('item name'), max_length=255, blank=True)
    unit = models.CharField(_('unit'), max_length=20, blank=True)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('stock snapshot')
        verbose_name_plural = _('stock snapshots')
        ordering = ['-snapshot_date']
        constraints = [
            models.UniqueConstraint(
                fields=['stock_item', 'snapshot_date'],
                name='stock_snapshot_unique_per_day',
            ),
        ]
        indexes = [
            models.Index(fields=['company', 'snapshot_date'], name='stock_snap_company_date_idx'),
        ]

    def __str__(self):
        return f'{self.stock_item_id} @ {self.snapshot_date} = {self.quantity}'

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise NotImplementedError('StockSnapshot is immutable; write a snapshot for a later date instead.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise NotImplementedError('StockSnapshot records cannot be deleted.')
