"""
Tests — Stock API: registration, posting, batch posting, balance query.

@file stock/tests/test_views.py
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone

from stock.models import StockTransaction
from stock.services import StockLedgerService
from tests.factories import IngredientFactory, StockItemFactory, WarehouseFactory


pytestmark = pytest.mark.django_db

BALANCE_URL = reverse('api-v1:stock:balance')
ITEMS_URL = reverse('api-v1:stock:item-list')
TRANSACTIONS_URL = reverse('api-v1:stock:transaction-list')
BATCH_URL = reverse('api-v1:stock:transaction-batch')


class TestBalanceEndpoint:

    def test_requires_authentication(self, api_client):
        stock_item = StockItemFactory()
        response = api_client.get(BALANCE_URL, {
            'company_id': str(stock_item.company_id),
            'target_date': timezone.localdate().isoformat(),
        })
        assert response.status_code == 401
        assert response.json()['success'] is False

    def test_returns_envelope_with_numeric_quantities(self, authenticated_client):
        stock_item = StockItemFactory()
        StockLedgerService.post_transaction(
            stock_item_id=stock_item.pk, transaction_type='incoming', quantity=Decimal('2.5'),
        )

        response = authenticated_client.get(BALANCE_URL, {
            'company_id': str(stock_item.company_id),
            'target_date': timezone.localdate().isoformat(),
        })

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        data = body['data']
        assert data['calculation_method'] == 'realtime'
        assert data['snapshot_date_used'] is None
        item = data['items'][0]
        assert item['stock_item_id'] == str(stock_item.pk)
        assert item['quantity'] == 2.5
        assert item['method'] == 'realtime'
        assert item['details']['id'] == str(stock_item.item_id)

    def test_future_date_is_validation_error(self, authenticated_client):
        stock_item = StockItemFactory()
        tomorrow = timezone.localdate() + timedelta(days=1)
        response = authenticated_client.get(BALANCE_URL, {
            'company_id': str(stock_item.company_id),
            'target_date': tomorrow.isoformat(),
        })
        assert response.status_code == 400
        assert response.json()['code'] == 'VALIDATION_ERROR'

    def test_malformed_date_is_validation_error(self, authenticated_client):
        stock_item = StockItemFactory()
        response = authenticated_client.get(BALANCE_URL, {
            'company_id': str(stock_item.company_id),
            'target_date': '01/02/2026',
        })
        assert response.status_code == 400
        assert response.json()['code'] == 'VALIDATION_ERROR'

    def test_unknown_company_is_not_found(self, authenticated_client):
        response = authenticated_client.get(BALANCE_URL, {
            'company_id': str(uuid.uuid4()),
            'target_date': timezone.localdate().isoformat(),
        })
        assert response.status_code == 404
        assert response.json()['code'] == 'RESOURCE_NOT_FOUND'


class TestStockItemEndpoints:

    def test_register(self, authenticated_client):
        warehouse = WarehouseFactory()
        ingredient = IngredientFactory(company=warehouse.company, unit='l')

        response = authenticated_client.post(ITEMS_URL, {
            'company_id': str(warehouse.company_id),
            'warehouse_id': str(warehouse.pk),
            'item_type': 'ingredient',
            'item_id': str(ingredient.pk),
        }, format='json')

        assert response.status_code == 201
        data = response.json()['data']
        assert data['unit'] == 'l'
        assert data['current_quantity'] == 0

    def test_register_rejects_foreign_warehouse(self, authenticated_client):
        warehouse = WarehouseFactory()
        ingredient = IngredientFactory()
        response = authenticated_client.post(ITEMS_URL, {
            'company_id': str(ingredient.company_id),
            'warehouse_id': str(warehouse.pk),
            'item_type': 'ingredient',
            'item_id': str(ingredient.pk),
        }, format='json')
        assert response.status_code == 404

    def test_list_filtered_by_company(self, authenticated_client):
        stock_item = StockItemFactory()
        StockItemFactory()
        response = authenticated_client.get(ITEMS_URL, {'company': str(stock_item.company_id)})
        assert response.status_code == 200
        body = response.json()
        assert [row['id'] for row in body['data']] == [str(stock_item.pk)]
        assert body['meta']['count'] == 1


class TestTransactionEndpoints:

    def test_post_transaction(self, authenticated_client, user):
        stock_item = StockItemFactory()

        response = authenticated_client.post(TRANSACTIONS_URL, {
            'stock_item_id': str(stock_item.pk),
            'transaction_type': 'outgoing',
            'quantity': '1.5',
            'notes': 'lunch service',
        }, format='json')

        assert response.status_code == 201
        data = response.json()['data']
        assert data['signed_quantity'] == -1.5
        assert data['actor'] == user.pk
        stock_item.refresh_from_db()
        assert stock_item.current_quantity == Decimal('-1.5')

    def test_negative_quantity_rejected(self, authenticated_client):
        stock_item = StockItemFactory()
        response = authenticated_client.post(TRANSACTIONS_URL, {
            'stock_item_id': str(stock_item.pk),
            'transaction_type': 'incoming',
            'quantity': '-3',
        }, format='json')
        assert response.status_code == 400
        assert not StockTransaction.objects.exists()

    def test_update_not_routed(self, authenticated_client):
        stock_item = StockItemFactory()
        movement = StockLedgerService.post_transaction(
            stock_item_id=stock_item.pk, transaction_type='incoming', quantity=1,
        )
        url = reverse('api-v1:stock:transaction-detail', args=[movement.pk])
        assert authenticated_client.patch(url, {'notes': 'x'}, format='json').status_code == 405
        assert authenticated_client.delete(url).status_code == 405

    def test_list_is_cursor_paginated(self, authenticated_client):
        stock_item = StockItemFactory()
        for _ in range(3):
            StockLedgerService.post_transaction(
                stock_item_id=stock_item.pk, transaction_type='incoming', quantity=1,
            )
        response = authenticated_client.get(TRANSACTIONS_URL, {'stock_item': str(stock_item.pk)})
        assert response.status_code == 200
        body = response.json()
        assert len(body['data']) == 3
        assert 'next' in body['meta']

    def test_batch_reports_each_item(self, authenticated_client):
        first = StockItemFactory()
        second = StockItemFactory(company=first.company, warehouse=first.warehouse)

        response = authenticated_client.post(BATCH_URL, {
            'stock_item_ids': [str(first.pk), str(uuid.uuid4()), str(second.pk)],
            'quantities': ['4', '1', '2'],
            'transaction_type': 'incoming',
        }, format='json')

        assert response.status_code == 207
        body = response.json()
        assert body['success'] is False
        assert body['code'] == 'PARTIAL_FAILURE'
        assert body['meta'] == {'total': 3, 'failed': 1}
        rows = body['data']
        assert [row['success'] for row in rows] == [True, False, True]
        assert rows[1]['error']['code'] == 'RESOURCE_NOT_FOUND'
        assert rows[2]['current_quantity'] == 2

    def test_batch_all_succeeded(self, authenticated_client):
        stock_item = StockItemFactory()
        response = authenticated_client.post(BATCH_URL, {
            'stock_item_ids': [str(stock_item.pk)],
            'quantities': ['1'],
            'transaction_type': 'disposal',
        }, format='json')
        assert response.status_code == 207
        body = response.json()
        assert body['success'] is True
        assert 'code' not in body

    def test_batch_length_mismatch(self, authenticated_client):
        stock_item = StockItemFactory()
        response = authenticated_client.post(BATCH_URL, {
            'stock_item_ids': [str(stock_item.pk)],
            'quantities': ['1', '2'],
            'transaction_type': 'incoming',
        }, format='json')
        assert response.status_code == 400
        assert response.json()['code'] == 'VALIDATION_ERROR'
