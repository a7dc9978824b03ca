"""
Catalog — Item Lookup Service

Resolves (item_type, item_id) to display details for the stock app.

ItemCatalog is a strategy: the reconstruction engine and the ledger
depend on the interface only, so a catalog backed by another service
(or a failing one, in tests) can be swapped in through the
STOCK_ITEM_CATALOG setting or by passing an instance.

resolve_item_details() does one bulk lookup for the whole key set and
falls back to per-item lookups for the keys the bulk call did not
return. Keys that still cannot be resolved get a placeholder.

@file catalog/services.py
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from django.conf import settings
from django.db import DatabaseError
from django.utils.module_loading import import_string

from core.exceptions import UpstreamUnavailableError

from .models import Container, Ingredient, ItemType

logger = logging.getLogger('stocktrace')

ItemKey = tuple[str, UUID]

CONTAINER_UNIT = 'ea'

PLACEHOLDER_NAMES = {
    ItemType.INGREDIENT.value: 'Unknown ingredient',
    ItemType.CONTAINER.value: 'Unknown container',
}


@dataclass(frozen=True)
class ItemDetails:
    item_type: str
    item_id: UUID
    name: str
    unit: str = ''
    code: str = ''
    category: str = ''
    found: bool = True

    @classmethod
    def placeholder(cls, item_type: str, item_id: UUID, *, name: str = '', unit: str = '') -> 'ItemDetails':
        return cls(
            item_type=item_type,
            item_id=item_id,
            name=name or PLACEHOLDER_NAMES.get(str(item_type), 'Unknown item'),
            unit=unit,
            found=False,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            'id': str(self.item_id),
            'name': self.name,
            'code_name': self.code or None,
            'category': self.category or None,
            'unit': self.unit or None,
        }


class ItemCatalog:
    """Interface for item detail lookups."""

    def bulk_lookup(self, keys: Iterable[ItemKey]) -> dict[ItemKey, ItemDetails]:
        """
        Return details for as many keys as possible. May return a partial
        mapping, or raise UpstreamUnavailableError when nothing can be read.
        """
        raise NotImplementedError

    def lookup(self, item_type: str, item_id: UUID) -> ItemDetails | None:
        """Return details for one key, None if unknown. Raises UpstreamUnavailableError."""
        raise NotImplementedError


class OrmItemCatalog(ItemCatalog):
    """Catalog backed by the local Ingredient and Container tables."""

    def bulk_lookup(self, keys):
        ids_by_type: dict[str, set] = defaultdict(set)
        for item_type, item_id in keys:
            ids_by_type[item_type].add(item_id)

        found: dict[ItemKey, ItemDetails] = {}
        for item_type, ids in ids_by_type.items():
            try:
                found.update(self._fetch(item_type, ids))
            except DatabaseError as exc:
                # One failed item type leaves only its keys unresolved.
                logger.warning(
                    'Bulk catalog lookup failed for %s (%d ids): %s', item_type, len(ids), exc,
                )
        return found

    def lookup(self, item_type, item_id):
        try:
            return self._fetch(item_type, {item_id}).get((item_type, item_id))
        except DatabaseError as exc:
            raise UpstreamUnavailableError(
                detail=f'Catalog lookup failed for {item_type} {item_id}: {exc}',
            )

    def _fetch(self, item_type: str, ids) -> dict[ItemKey, ItemDetails]:
        if item_type == ItemType.INGREDIENT:
            rows = Ingredient.objects.filter(pk__in=ids).values_list(
                'id', 'name', 'unit', 'code_name', 'category',
            )
            return {
                (item_type, pk): ItemDetails(item_type, pk, name, unit, code, category)
                for pk, name, unit, code, category in rows
            }
        if item_type == ItemType.CONTAINER:
            rows = Container.objects.filter(pk__in=ids).values_list(
                'id', 'name', 'code_name', 'category',
            )
            return {
                (item_type, pk): ItemDetails(item_type, pk, name, CONTAINER_UNIT, code, category)
                for pk, name, code, category in rows
            }
        logger.warning('Unknown item type %r requested from catalog', item_type)
        return {}


def get_item_catalog() -> ItemCatalog:
    """Instantiate the catalog configured in settings.STOCK_ITEM_CATALOG."""
    return import_string(settings.STOCK_ITEM_CATALOG)()


def resolve_item_details(
    keys: Iterable[ItemKey],
    catalog: ItemCatalog | None = None,
) -> dict[ItemKey, ItemDetails]:
    """Bulk lookup, then per-item lookups for the missing subset only."""
    keys = set(keys)
    if not keys:
        return {}
    catalog = catalog or get_item_catalog()

    try:
        resolved = dict(catalog.bulk_lookup(keys))
    except UpstreamUnavailableError as exc:
        logger.warning(
            'Bulk catalog lookup unavailable (%s); falling back to per-item lookups for %d items',
            exc.detail, len(keys),
        )
        resolved = {}

    missing = keys - resolved.keys()
    if missing:
        logger.info('Resolving %d of %d catalog items individually', len(missing), len(keys))
    for item_type, item_id in missing:
        try:
            details = catalog.lookup(item_type, item_id)
        except UpstreamUnavailableError as exc:
            logger.warning('Catalog lookup unavailable for %s %s: %s', item_type, item_id, exc.detail)
            details = None
        resolved[(item_type, item_id)] = details or ItemDetails.placeholder(item_type, item_id)
    return resolved
