"""
Tests — Stock models: sign convention, insert-only ledger, immutable snapshots.

@file stock/tests/test_models.py
"""

from decimal import Decimal

import pytest

from stock.models import StockSnapshot, StockTransaction, signed_effect
from stock.services import StockLedgerService
from tests.factories import StockItemFactory, StockSnapshotFactory


class TestSignedEffect:

    @pytest.mark.parametrize('txn_type, quantity, expected', [
        ('incoming', '10', Decimal('10')),
        ('outgoing', '3', Decimal('-3')),
        ('disposal', '1.250', Decimal('-1.25')),
        ('adjustment', '2', Decimal('2')),
        ('adjustment', '-4.5', Decimal('-4.5')),
    ])
    def test_sign_per_type(self, txn_type, quantity, expected):
        assert signed_effect(txn_type, Decimal(quantity)) == expected

    def test_float_quantity_keeps_decimal_precision(self):
        assert signed_effect('incoming', 0.1) == Decimal('0.1')

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            signed_effect('transfer', Decimal('1'))


@pytest.mark.django_db
class TestStockTransactionImmutable:

    def test_update_raises(self):
        stock_item = StockItemFactory()
        movement = StockLedgerService.post_transaction(
            stock_item_id=stock_item.pk, transaction_type='incoming', quantity=5,
        )
        movement.notes = 'edited'
        with pytest.raises(NotImplementedError):
            movement.save()

    def test_delete_raises(self):
        stock_item = StockItemFactory()
        movement = StockLedgerService.post_transaction(
            stock_item_id=stock_item.pk, transaction_type='incoming', quantity=5,
        )
        with pytest.raises(NotImplementedError):
            movement.delete()
        assert StockTransaction.objects.filter(pk=movement.pk).exists()

    def test_signed_quantity_property(self):
        stock_item = StockItemFactory()
        movement = StockLedgerService.post_transaction(
            stock_item_id=stock_item.pk, transaction_type='disposal', quantity=2,
        )
        assert movement.signed_quantity == Decimal('-2')


@pytest.mark.django_db
class TestStockSnapshotImmutable:

    def test_update_raises(self):
        snapshot = StockSnapshotFactory(quantity=Decimal('4'))
        snapshot.quantity = Decimal('5')
        with pytest.raises(NotImplementedError):
            snapshot.save()

    def test_delete_raises(self):
        snapshot = StockSnapshotFactory()
        with pytest.raises(NotImplementedError):
            snapshot.delete()
        assert StockSnapshot.objects.filter(pk=snapshot.pk).exists()
