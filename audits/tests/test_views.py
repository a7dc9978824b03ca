"""
Tests — Stock audit API endpoints.

@file audits/tests/test_views.py
"""

import uuid
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone

from audits.models import StockAudit, StockAuditItem
from stock.models import StockItem
from stock.services import StockLedgerService
from tests.factories import StockAuditFactory, StockAuditItemFactory, StockItemFactory, WarehouseFactory


pytestmark = pytest.mark.django_db

LIST_URL = reverse('api-v1:audits:audit-list')


def _url(name, audit):
    return reverse(f'api-v1:audits:audit-{name}', kwargs={'pk': audit.pk})


def _counted_item(expected, actual):
    """A completed audit with one counted item; the stock item holds `expected`."""
    stock_item = StockItemFactory()
    StockLedgerService.post_transaction(
        stock_item_id=stock_item.pk, transaction_type='incoming', quantity=expected,
    )
    audit = StockAuditFactory(
        company=stock_item.company, warehouse=stock_item.warehouse,
        status=StockAudit.StatusChoices.COMPLETED,
    )
    return StockAuditItemFactory(
        audit=audit, stock_item=stock_item,
        expected_quantity=Decimal(expected),
        actual_quantity=Decimal(actual),
        difference=Decimal(actual) - Decimal(expected),
        status=StockAuditItem.StatusChoices.DISCREPANCY,
    )


class TestStockAuditAPI:

    def test_list_requires_auth(self, api_client):
        assert api_client.get(LIST_URL).status_code == 401

    def test_list_filtered_by_company(self, authenticated_client):
        audit = StockAuditFactory()
        StockAuditFactory()
        resp = authenticated_client.get(LIST_URL, {'company': str(audit.company_id)})
        assert resp.status_code == 200
        assert [row['id'] for row in resp.data['results']] == [str(audit.pk)]

    def test_create(self, authenticated_client, default_warehouse):
        warehouse = default_warehouse
        StockItemFactory(company=warehouse.company, warehouse=warehouse)

        resp = authenticated_client.post(LIST_URL, {
            'company_id': str(warehouse.company_id),
            'name': 'Weekly count',
            'audit_date': timezone.localdate().isoformat(),
            'include_untracked': False,
        }, format='json')

        assert resp.status_code == 201
        assert resp.data['status'] == 'pending'
        assert resp.data['warehouse'] == warehouse.pk
        assert len(resp.data['items']) == 1
        assert resp.data['stats']['pending_items'] == 1

    def test_create_rejects_bad_item_type(self, authenticated_client, default_warehouse):
        warehouse = default_warehouse
        resp = authenticated_client.post(LIST_URL, {
            'company_id': str(warehouse.company_id),
            'name': 'Weekly count',
            'audit_date': timezone.localdate().isoformat(),
            'item_types': ['spice'],
        }, format='json')
        assert resp.status_code == 400

    def test_retrieve_includes_stats_and_items(self, authenticated_client):
        item = StockAuditItemFactory()
        resp = authenticated_client.get(_url('detail', item.audit))
        assert resp.status_code == 200
        assert resp.data['stats']['total_items'] == 1
        assert resp.data['items'][0]['id'] == str(item.pk)

    def test_record_counts(self, authenticated_client):
        item = StockAuditItemFactory(expected_quantity=Decimal('3'))

        resp = authenticated_client.post(_url('counts', item.audit), {
            'counts': [
                {'audit_item_id': str(item.pk), 'actual_quantity': '2'},
                {'audit_item_id': str(uuid.uuid4()), 'actual_quantity': '1'},
            ],
        }, format='json')

        assert resp.status_code == 207
        body = resp.json()
        assert body['code'] == 'PARTIAL_FAILURE'
        assert body['data'][0]['status'] == 'discrepancy'
        assert body['data'][0]['difference'] == -1
        assert body['data'][1]['error']['code'] == 'RESOURCE_NOT_FOUND'

    def test_negative_count_rejected_by_input_validation(self, authenticated_client):
        item = StockAuditItemFactory()
        resp = authenticated_client.post(_url('counts', item.audit), {
            'counts': [{'audit_item_id': str(item.pk), 'actual_quantity': '-1'}],
        }, format='json')
        assert resp.status_code == 400

    def test_counts_on_completed_audit_conflict(self, authenticated_client):
        item = StockAuditItemFactory(audit__status=StockAudit.StatusChoices.COMPLETED)
        resp = authenticated_client.post(_url('counts', item.audit), {
            'counts': [{'audit_item_id': str(item.pk), 'actual_quantity': '1'}],
        }, format='json')
        assert resp.status_code == 409
        assert resp.json()['code'] == 'CONFLICT'

    def test_complete(self, authenticated_client):
        audit = StockAuditFactory()
        resp = authenticated_client.post(_url('complete', audit), {}, format='json')
        assert resp.status_code == 200
        assert resp.data['status'] == 'completed'

    def test_complete_twice(self, authenticated_client):
        audit = StockAuditFactory(status=StockAudit.StatusChoices.COMPLETED)
        resp = authenticated_client.post(_url('complete', audit), {}, format='json')
        assert resp.status_code == 409
        assert resp.json()['code'] == 'INVALID_STATE_TRANSITION'

    def test_complete_and_apply(self, authenticated_client):
        item = _counted_item('5', '4')
        StockAudit.objects.filter(pk=item.audit_id).update(status=StockAudit.StatusChoices.PENDING)

        resp = authenticated_client.post(
            _url('complete', item.audit), {'apply_differences': True}, format='json',
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body['success'] is True
        assert body['data']['audit']['status'] == 'completed'
        assert body['data']['apply_result']['updated_count'] == 1
        assert StockItem.objects.get(pk=item.stock_item_id).current_quantity == Decimal('4')

    def test_apply_differences(self, authenticated_client):
        item = _counted_item('5', '7')
        resp = authenticated_client.post(_url('apply-differences', item.audit), {}, format='json')
        assert resp.status_code == 200
        assert resp.json()['data']['apply_result']['errors'] == []
        assert StockItem.objects.get(pk=item.stock_item_id).current_quantity == Decimal('7')

    def test_apply_pending_audit_conflict(self, authenticated_client):
        audit = StockAuditFactory()
        resp = authenticated_client.post(_url('apply-differences', audit), {}, format='json')
        assert resp.status_code == 409

    def test_apply_with_every_item_failing(self, authenticated_client):
        item = _counted_item('5', '7')
        StockItem.objects.filter(pk=item.stock_item_id).update(
            warehouse=WarehouseFactory(company=item.audit.company),
        )

        resp = authenticated_client.post(_url('apply-differences', item.audit), {}, format='json')

        assert resp.status_code == 422
        body = resp.json()
        assert body['success'] is False
        assert body['code'] == 'PARTIAL_FAILURE'
        assert body['errors']['items'][0]['item']['audit_item_id'] == str(item.pk)

    def test_delete_pending(self, authenticated_client):
        audit = StockAuditFactory()
        resp = authenticated_client.delete(_url('detail', audit))
        assert resp.status_code == 204
        assert not StockAudit.objects.filter(pk=audit.pk).exists()

    def test_delete_completed_conflict(self, authenticated_client):
        audit = StockAuditFactory(status=StockAudit.StatusChoices.COMPLETED)
        resp = authenticated_client.delete(_url('detail', audit))
        assert resp.status_code == 409
        assert StockAudit.objects.filter(pk=audit.pk).exists()
