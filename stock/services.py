"""
Stock — Ledger Service

Stock item registration and ledger posting. Every posting locks its one
StockItem row, applies signed_effect() to current_quantity and appends
the StockTransaction inside the same database transaction. INSERT ONLY
— never update or delete StockTransaction.

Batch posting is not atomic across items: each item is its own unit and
the caller gets one PostingResult per item.

@file stock/services.py
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import APIException

from catalog.models import ItemType
from catalog.services import ItemCatalog, ItemDetails, resolve_item_details
from companies.models import Warehouse
from core.constants import ACTIVITY_ACTION_CREATE, ACTIVITY_ACTION_RECONCILE
from core.exceptions import ConflictError, InvalidInputError, ResourceNotFoundError
from core.services import ActivityLogService

from .models import StockItem, StockTransaction, signed_effect

logger = logging.getLogger('stocktrace')

TransactionType = StockTransaction.TransactionType


def actor_or_none(actor):
    """Request users may be anonymous; only real users are stored."""
    return actor if getattr(actor, 'is_authenticated', False) else None


def parse_quantity(quantity) -> Decimal:
    try:
        value = Decimal(str(quantity))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(detail=f'Quantity must be a number, got {quantity!r}.')
    if not value.is_finite():
        raise InvalidInputError(detail=f'Quantity must be finite, got {quantity!r}.')
    return value


def _validate_posting(transaction_type, quantity) -> tuple[TransactionType, Decimal]:
    try:
        txn_type = TransactionType(transaction_type)
    except ValueError:
        raise InvalidInputError(detail=f'Invalid transaction_type: {transaction_type}.')
    value = parse_quantity(quantity)
    if txn_type != TransactionType.ADJUSTMENT and value < 0:
        raise InvalidInputError(
            detail=f'Quantity must be non-negative for {txn_type.value} transactions, got {value}.',
        )
    return txn_type, value


@dataclass
class PostingResult:
    """Outcome of posting one item of a batch."""

    stock_item_id: Any
    success: bool
    transaction: StockTransaction | None = None
    error_code: str = ''
    message: str = ''

    @classmethod
    def failed(cls, stock_item_id, exc: Exception) -> 'PostingResult':
        if isinstance(exc, APIException):
            return cls(stock_item_id, False, error_code=exc.default_code, message=str(exc.detail))
        return cls(stock_item_id, False, error_code='DATABASE_ERROR', message=str(exc))

    def as_dict(self) -> dict[str, Any]:
        data = {'stock_item_id': str(self.stock_item_id), 'success': self.success}
        if self.success:
            data['transaction_id'] = str(self.transaction.pk)
            data['current_quantity'] = self.transaction.stock_item.current_quantity
        else:
            data['error'] = {'code': self.error_code, 'message': self.message}
        return data


class StockLedgerService:
    """Stock item registry and append-only ledger writes."""

    @staticmethod
    def register_stock_item(
        *,
        company_id,
        warehouse_id,
        item_type: str,
        item_id,
        unit: str = '',
        actor=None,
        catalog: ItemCatalog | None = None,
    ) -> StockItem:
        """Return the stock item for (warehouse, item), creating it at zero if missing."""
        if item_type not in ItemType.values:
            raise InvalidInputError(detail=f'Invalid item_type: {item_type}.')
        warehouse = Warehouse.objects.filter(pk=warehouse_id, company_id=company_id).first()
        if warehouse is None:
            raise ResourceNotFoundError(detail=f'Warehouse {warehouse_id} not found for company {company_id}.')

        lookup = {
            'company_id': company_id,
            'warehouse': warehouse,
            'item_type': item_type,
            'item_id': item_id,
        }
        existing = StockItem.objects.filter(**lookup).first()
        if existing is not None:
            return existing

        if not unit:
            details = resolve_item_details([(item_type, item_id)], catalog)[(item_type, item_id)]
            unit = details.unit
        stock_item, created = StockItem.objects.get_or_create(
            **lookup,
            defaults={'unit': unit, 'created_by': actor_or_none(actor)},
        )
        if created:
            ActivityLogService.log(
                actor=actor,
                action=ACTIVITY_ACTION_CREATE,
                model_name='StockItem',
                object_id=str(stock_item.pk),
                new_values={
                    'company_id': company_id,
                    'warehouse_id': warehouse.pk,
                    'item_type': item_type,
                    'item_id': item_id,
                    'unit': unit,
                },
            )
            logger.info(
                'StockItem %s registered: %s:%s warehouse=%s',
                stock_item.pk, item_type, item_id, warehouse.pk,
            )
        return stock_item

    @staticmethod
    def post_transaction(
        *,
        stock_item_id,
        transaction_type: str,
        quantity,
        actor=None,
        notes: str = '',
        reference_id=None,
        reference_type: str = '',
        timestamp=None,
        catalog: ItemCatalog | None = None,
    ) -> StockTransaction:
        """
        Append one ledger entry and move current_quantity by its signed
        effect, atomically for that one stock item.
        """
        txn_type, value = _validate_posting(transaction_type, quantity)
        if timestamp is not None and timestamp > timezone.now():
            raise InvalidInputError(detail='Transaction timestamp cannot be in the future.')
        try:
            stock_item = StockItem.objects.get(pk=stock_item_id)
        except (StockItem.DoesNotExist, DjangoValidationError):
            raise ResourceNotFoundError(detail=f'Stock item {stock_item_id} not found.')

        key = stock_item.catalog_key
        details = resolve_item_details([key], catalog)[key]
        return StockLedgerService._append(
            stock_item_id=stock_item.pk,
            txn_type=txn_type,
            quantity=value,
            details=details,
            actor=actor,
            notes=notes,
            reference_id=reference_id,
            reference_type=reference_type,
            timestamp=timestamp,
        )

    @staticmethod
    def post_for_catalog_item(
        *,
        company_id,
        warehouse_id,
        item_type: str,
        item_id,
        transaction_type: str,
        quantity,
        actor=None,
        notes: str = '',
        reference_id=None,
        reference_type: str = '',
        catalog: ItemCatalog | None = None,
    ) -> StockTransaction:
        """Post against (warehouse, item), registering the stock item on first use."""
        _validate_posting(transaction_type, quantity)
        stock_item = StockLedgerService.register_stock_item(
            company_id=company_id,
            warehouse_id=warehouse_id,
            item_type=item_type,
            item_id=item_id,
            actor=actor,
            catalog=catalog,
        )
        return StockLedgerService.post_transaction(
            stock_item_id=stock_item.pk,
            transaction_type=transaction_type,
            quantity=quantity,
            actor=actor,
            notes=notes,
            reference_id=reference_id,
            reference_type=reference_type,
            catalog=catalog,
        )

    @staticmethod
    def post_batch(
        *,
        stock_item_ids: list,
        quantities: list,
        transaction_type: str,
        actor=None,
        notes: str = '',
        reference_id=None,
        reference_type: str = '',
        catalog: ItemCatalog | None = None,
    ) -> list[PostingResult]:
        """
        Post the same transaction type for many items. Each item commits or
        fails on its own; one failure never rolls back the others.
        """
        if len(stock_item_ids) != len(quantities):
            raise InvalidInputError(
                detail=(
                    f'stock_item_ids ({len(stock_item_ids)}) and quantities '
                    f'({len(quantities)}) must have the same length.'
                ),
            )
        if not stock_item_ids:
            raise InvalidInputError(detail='At least one item is required.')
        try:
            txn_type = TransactionType(transaction_type)
        except ValueError:
            raise InvalidInputError(detail=f'Invalid transaction_type: {transaction_type}.')

        valid_ids = set()
        for raw_id in stock_item_ids:
            try:
                valid_ids.add(uuid.UUID(str(raw_id)))
            except ValueError:
                continue
        stock_items = StockItem.objects.in_bulk(list(valid_ids))
        details = resolve_item_details(
            {item.catalog_key for item in stock_items.values()}, catalog,
        )

        results: list[PostingResult] = []
        for raw_id, quantity in zip(stock_item_ids, quantities):
            try:
                stock_item = stock_items.get(uuid.UUID(str(raw_id)))
            except ValueError:
                stock_item = None
            try:
                if stock_item is None:
                    raise ResourceNotFoundError(detail=f'Stock item {raw_id} not found.')
                _, value = _validate_posting(txn_type, quantity)
                movement = StockLedgerService._append(
                    stock_item_id=stock_item.pk,
                    txn_type=txn_type,
                    quantity=value,
                    details=details[stock_item.catalog_key],
                    actor=actor,
                    notes=notes,
                    reference_id=reference_id,
                    reference_type=reference_type,
                )
            except (APIException, DatabaseError) as exc:
                logger.warning('Batch %s posting failed for stock item %s: %s', txn_type.value, raw_id, exc)
                results.append(PostingResult.failed(raw_id, exc))
            else:
                results.append(PostingResult(raw_id, True, transaction=movement))

        succeeded = sum(1 for r in results if r.success)
        logger.info('Batch %s posting: %d/%d items succeeded', txn_type.value, succeeded, len(results))
        return results

    @staticmethod
    def reconcile_to_count(
        *,
        stock_item_id,
        counted_quantity: Decimal,
        expected_warehouse_id=None,
        actor=None,
        item_name: str = '',
        unit: str = '',
        reference_id=None,
        reference_type: str = '',
        notes: str = '',
    ) -> tuple[StockTransaction, Decimal]:
        """
        Overwrite current_quantity with a physically counted value and
        append the adjustment (counted - previous) that explains it.

        Returns the adjustment and the balance it replaced. A stock item
        that moved to another warehouse than expected_warehouse_id is a
        ConflictError and nothing is written.
        """
        counted = parse_quantity(counted_quantity)
        with transaction.atomic():
            try:
                stock_item = StockItem.objects.select_for_update().get(pk=stock_item_id)
            except StockItem.DoesNotExist:
                raise ResourceNotFoundError(detail=f'Stock item {stock_item_id} not found.')
            if expected_warehouse_id is not None and stock_item.warehouse_id != expected_warehouse_id:
                raise ConflictError(
                    detail=(
                        f'Stock item {stock_item.pk} is in warehouse {stock_item.warehouse_id}, '
                        f'not {expected_warehouse_id}.'
                    ),
                )
            previous = stock_item.current_quantity
            delta = counted - previous
            now = timezone.now()
            StockItem.objects.filter(pk=stock_item.pk).update(current_quantity=counted, last_updated=now)

            movement = StockTransaction.objects.create(
                stock_item=stock_item,
                transaction_type=TransactionType.ADJUSTMENT,
                quantity=delta,
                timestamp=now,
                actor=actor_or_none(actor),
                reference_id=reference_id,
                reference_type=reference_type,
                notes=notes,
                item_name_snapshot=item_name,
                unit_snapshot=unit or stock_item.unit,
            )
            ActivityLogService.log(
                actor=actor,
                action=ACTIVITY_ACTION_RECONCILE,
                model_name='StockItem',
                object_id=str(stock_item.pk),
                old_values={'current_quantity': previous},
                new_values={'current_quantity': counted, 'adjustment_id': movement.pk, 'delta': delta},
            )
        logger.info(
            'StockItem %s reconciled to count %s (was %s, adjustment %s)',
            stock_item.pk, counted, previous, delta,
        )
        return movement, previous

    @staticmethod
    def _append(
        *,
        stock_item_id,
        txn_type: TransactionType,
        quantity: Decimal,
        details: ItemDetails,
        actor=None,
        notes: str = '',
        reference_id=None,
        reference_type: str = '',
        timestamp=None,
    ) -> StockTransaction:
        delta = signed_effect(txn_type, quantity)
        with transaction.atomic():
            stock_item = StockItem.objects.select_for_update().get(pk=stock_item_id)
            previous = stock_item.current_quantity
            now = timezone.now()
            StockItem.objects.filter(pk=stock_item.pk).update(
                current_quantity=F('current_quantity') + delta,
                last_updated=now,
            )
            stock_item.refresh_from_db(fields=['current_quantity', 'last_updated'])

            movement = StockTransaction.objects.create(
                stock_item=stock_item,
                transaction_type=txn_type,
                quantity=quantity,
                timestamp=timestamp or now,
                actor=actor_or_none(actor),
                reference_id=reference_id,
                reference_type=reference_type or '',
                notes=notes or '',
                item_name_snapshot=details.name,
                unit_snapshot=stock_item.unit or details.unit,
            )
            ActivityLogService.log(
                actor=actor,
                action=ACTIVITY_ACTION_CREATE,
                model_name='StockTransaction',
                object_id=str(movement.pk),
                old_values={'current_quantity': previous},
                new_values={
                    'stock_item_id': stock_item.pk,
                    'transaction_type': txn_type.value,
                    'quantity': quantity,
                    'current_quantity': stock_item.current_quantity,
                },
            )
        logger.info(
            'StockTransaction %s %s qty=%s item=%s balance %s -> %s',
            txn_type.value, movement.pk, quantity, stock_item.pk, previous, stock_item.current_quantity,
        )
        return movement
