"""
StockTrace — Test Factories

Factory Boy factories for generating test data. Used across all test
modules.

Ledger rows are never built by factories: post them through
StockLedgerService so current_quantity stays the sum of the ledger.

@file tests/factories.py
"""

from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from django.utils import timezone

from audits.models import StockAudit, StockAuditItem
from catalog.models import Container, Ingredient, ItemType
from companies.models import Company, Warehouse
from stock.models import StockItem, StockSnapshot


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = get_user_model()
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f'user-{n:04d}')
    email = factory.LazyAttribute(lambda o: f'{o.username}@stocktrace.test')
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    is_active = True

    @factory.post_generation
    def password(self, create, extracted, **kwargs):
        password = extracted or 'TestPass2026!'
        self.set_password(password)
        if create:
            self.save(update_fields=['password'])


class SuperuserFactory(UserFactory):
    username = factory.Sequence(lambda n: f'admin-{n:04d}')
    is_staff = True
    is_superuser = True


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------

class CompanyFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Company

    name = factory.Sequence(lambda n: f'Kitchen-{n:03d}')
    is_active = True


class WarehouseFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Warehouse

    company = factory.SubFactory(CompanyFactory)
    name = factory.Sequence(lambda n: f'Warehouse-{n:03d}')
    is_active = True
    is_default = False


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class IngredientFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Ingredient

    company = factory.SubFactory(CompanyFactory)
    name = factory.Sequence(lambda n: f'Ingredient-{n:03d}')
    code_name = factory.Sequence(lambda n: f'ING-{n:04d}')
    unit = 'kg'
    category = 'vegetable'
    stock_grade = 'A'


class ContainerFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Container

    company = factory.SubFactory(CompanyFactory)
    name = factory.Sequence(lambda n: f'Container-{n:03d}')
    code_name = factory.Sequence(lambda n: f'CNT-{n:04d}')
    category = 'tray'
    parent = None


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------

class StockItemFactory(factory.django.DjangoModelFactory):
    """An ingredient tracked in a warehouse of the same company, at zero."""

    class Meta:
        model = StockItem

    company = factory.SubFactory(CompanyFactory)
    warehouse = factory.SubFactory(WarehouseFactory, company=factory.SelfAttribute('..company'))
    item_type = ItemType.INGREDIENT
    item_id = factory.LazyAttribute(lambda o: IngredientFactory(company=o.company).pk)
    current_quantity = Decimal('0')
    unit = 'kg'


class StockSnapshotFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = StockSnapshot

    stock_item = factory.SubFactory(StockItemFactory)
    company = factory.SelfAttribute('stock_item.company')
    snapshot_date = factory.LazyFunction(lambda: timezone.localdate())
    quantity = Decimal('0')
    item_name = 'Snapshot item'
    unit = 'kg'


# ---------------------------------------------------------------------------
# Audits
# ---------------------------------------------------------------------------

class StockAuditFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = StockAudit

    company = factory.SubFactory(CompanyFactory)
    warehouse = factory.SubFactory(WarehouseFactory, company=factory.SelfAttribute('..company'))
    name = factory.Sequence(lambda n: f'Audit-{n:03d}')
    audit_date = factory.LazyFunction(lambda: timezone.localdate())
    status = StockAudit.StatusChoices.PENDING


class StockAuditItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = StockAuditItem

    audit = factory.SubFactory(StockAuditFactory)
    stock_item = factory.SubFactory(
        StockItemFactory,
        company=factory.SelfAttribute('..audit.company'),
        warehouse=factory.SelfAttribute('..audit.warehouse'),
    )
    item_name = factory.Sequence(lambda n: f'Audited item {n:03d}')
    item_type = factory.SelfAttribute('stock_item.item_type')
    unit = 'kg'
    expected_quantity = factory.SelfAttribute('stock_item.current_quantity')
