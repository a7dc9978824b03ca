"""
Tests — Company default warehouse resolution.

@file companies/tests/test_models.py
"""

import pytest

from tests.factories import CompanyFactory, WarehouseFactory


pytestmark = pytest.mark.django_db


class TestDefaultWarehouse:

    def test_flagged_default_wins(self):
        company = CompanyFactory()
        WarehouseFactory(company=company, name='A')
        flagged = WarehouseFactory(company=company, name='B', is_default=True)
        assert company.get_default_warehouse() == flagged

    def test_falls_back_to_active_warehouse(self):
        company = CompanyFactory()
        first = WarehouseFactory(company=company)
        WarehouseFactory(company=company, is_active=False)
        assert company.get_default_warehouse() == first

    def test_none_when_company_has_no_warehouse(self):
        assert CompanyFactory().get_default_warehouse() is None
