"""
Tests — Item catalog lookups and resolve_item_details() fallbacks.

@file catalog/tests/test_services.py
"""

import uuid

import pytest
from django.test import override_settings

from catalog.services import ItemCatalog, ItemDetails, OrmItemCatalog, get_item_catalog, resolve_item_details
from core.exceptions import UpstreamUnavailableError
from tests.factories import ContainerFactory, IngredientFactory


pytestmark = pytest.mark.django_db


class UnavailableCatalog(ItemCatalog):
    def bulk_lookup(self, keys):
        raise UpstreamUnavailableError(detail='down')

    def lookup(self, item_type, item_id):
        raise UpstreamUnavailableError(detail='down')


class TestOrmItemCatalog:

    def test_bulk_lookup_mixed_types(self):
        ingredient = IngredientFactory(name='Carrot', unit='kg', code_name='CAR')
        container = ContainerFactory(name='GN 1/1 tray')
        keys = {('ingredient', ingredient.pk), ('container', container.pk), ('ingredient', uuid.uuid4())}

        found = OrmItemCatalog().bulk_lookup(keys)

        assert set(found) == {('ingredient', ingredient.pk), ('container', container.pk)}
        assert found[('ingredient', ingredient.pk)].code == 'CAR'
        assert found[('container', container.pk)].unit == 'ea'

    def test_lookup_unknown_returns_none(self):
        assert OrmItemCatalog().lookup('ingredient', uuid.uuid4()) is None

    def test_unknown_item_type_returns_nothing(self):
        assert OrmItemCatalog().bulk_lookup({('spice', uuid.uuid4())}) == {}


class TestResolveItemDetails:

    def test_empty_keys(self):
        assert resolve_item_details(set(), UnavailableCatalog()) == {}

    def test_unavailable_catalog_yields_placeholders(self):
        ingredient_id, container_id = uuid.uuid4(), uuid.uuid4()

        resolved = resolve_item_details(
            {('ingredient', ingredient_id), ('container', container_id)}, UnavailableCatalog(),
        )

        assert resolved[('ingredient', ingredient_id)] == ItemDetails.placeholder('ingredient', ingredient_id)
        assert resolved[('ingredient', ingredient_id)].name == 'Unknown ingredient'
        assert resolved[('container', container_id)].name == 'Unknown container'
        assert resolved[('container', container_id)].found is False

    def test_found_item_serialises_details(self):
        ingredient = IngredientFactory(name='Leek', category='vegetable')
        details = resolve_item_details({('ingredient', ingredient.pk)})[('ingredient', ingredient.pk)]
        assert details.as_dict() == {
            'id': str(ingredient.pk),
            'name': 'Leek',
            'code_name': ingredient.code_name,
            'category': 'vegetable',
            'unit': 'kg',
        }

    @override_settings(STOCK_ITEM_CATALOG='catalog.tests.test_services.UnavailableCatalog')
    def test_catalog_class_is_configurable(self):
        assert isinstance(get_item_catalog(), UnavailableCatalog)
