"""
Audits — Service Layer

Stock audit lifecycle: open (pending, expected quantities frozen),
record counts, complete, apply differences to the stock ledger, delete.
State machine enforced here.

Applying differences processes each audit item in its own transaction:
a stale item (moved to another warehouse, vanished) is reported and the
others still apply. Re-applying an audit is allowed. It rewrites the
counted balance and appends another adjustment, normally zero-delta;
those items are counted in reapplied_count and logged.

@file audits/services.py
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.db.models import Count
from django.utils import timezone
from rest_framework.exceptions import APIException

from catalog.models import Container, Ingredient, ItemType
from catalog.services import CONTAINER_UNIT, ItemCatalog, resolve_item_details
from companies.models import Company, Warehouse
from core.constants import (
    ACTIVITY_ACTION_CREATE,
    ACTIVITY_ACTION_DELETE,
    ACTIVITY_ACTION_RECONCILE,
    ACTIVITY_ACTION_STATUS_CHANGE,
    ACTIVITY_ACTION_UPDATE,
)
from core.exceptions import ConflictError, InvalidInputError, InvalidStateTransition, ResourceNotFoundError
from core.services import ActivityLogService
from stock.models import StockItem, StockTransaction
from stock.services import StockLedgerService, actor_or_none, parse_quantity

from .models import StockAudit, StockAuditItem

logger = logging.getLogger('stocktrace')

AUDIT_REFERENCE_TYPE = 'stock_audit'

# Valid status transitions: from_status -> set of allowed to_status
AUDIT_TRANSITIONS = {
    StockAudit.StatusChoices.PENDING: {StockAudit.StatusChoices.COMPLETED},
    StockAudit.StatusChoices.COMPLETED: set(),
}

APPLICABLE_ITEM_STATUSES = (
    StockAuditItem.StatusChoices.COMPLETED,
    StockAuditItem.StatusChoices.DISCREPANCY,
)


def _assert_transition(audit: StockAudit, new_status: str) -> None:
    allowed = AUDIT_TRANSITIONS.get(StockAudit.StatusChoices(audit.status), set())
    if new_status not in allowed:
        raise InvalidStateTransition(
            detail=f'Cannot transition audit from {audit.status} to {new_status}.',
        )


def _get_audit(audit_id, *, lock: bool = False) -> StockAudit:
    qs = StockAudit.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=audit_id)
    except (StockAudit.DoesNotExist, DjangoValidationError):
        raise ResourceNotFoundError(detail=f'Stock audit {audit_id} not found.')


def _assert_pending(audit: StockAudit) -> None:
    if audit.is_completed:
        raise ConflictError(detail=f'Audit {audit.pk} is completed; counts can no longer change.')


@dataclass
class CountResult:
    audit_item_id: Any
    success: bool
    item: StockAuditItem | None = None
    error_code: str = ''
    message: str = ''

    def as_dict(self) -> dict[str, Any]:
        data = {'audit_item_id': str(self.audit_item_id), 'success': self.success}
        if self.success:
            data['status'] = self.item.status
            data['difference'] = self.item.difference
        else:
            data['error'] = {'code': self.error_code, 'message': self.message}
        return data


@dataclass
class ApplyResult:
    """Per-item report of applying an audit's differences."""

    audit_id: Any
    updated_count: int = 0
    reapplied_count: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.updated_count > 0 or not self.errors

    def as_dict(self) -> dict[str, Any]:
        return {
            'audit_id': str(self.audit_id),
            'success': self.success,
            'updated_count': self.updated_count,
            'reapplied_count': self.reapplied_count,
            'errors': self.errors,
        }


class StockAuditService:
    """Stock audit lifecycle and reconciliation into the ledger."""

    @staticmethod
    def create_audit(
        *,
        company_id,
        name: str,
        audit_date: date,
        warehouse_id=None,
        description: str = '',
        item_types: list[str] | None = None,
        include_untracked: bool = True,
        actor=None,
        catalog: ItemCatalog | None = None,
    ) -> StockAudit:
        """
        Open a pending audit over every stock item of the warehouse.

        With include_untracked, catalog items of the company that have no
        stock item in this warehouse yet are registered at zero first, so
        they can be counted too. Ingredients without a stock grade are not
        stock-managed and are left out.
        """
        company = Company.objects.filter(pk=company_id).first()
        if company is None:
            raise ResourceNotFoundError(detail=f'Company {company_id} not found.')
        name = (name or '').strip()
        if not name:
            raise InvalidInputError(detail='Audit name is required.')
        item_types = list(item_types or ItemType.values)
        unknown = [t for t in item_types if t not in ItemType.values]
        if unknown:
            raise InvalidInputError(detail=f'Invalid item_types: {", ".join(unknown)}.')

        if warehouse_id is not None:
            warehouse = Warehouse.objects.filter(pk=warehouse_id, company=company).first()
        else:
            warehouse = company.get_default_warehouse()
        if warehouse is None:
            raise ResourceNotFoundError(
                detail=f'Warehouse {warehouse_id or "(default)"} not found for company {company.pk}.',
            )

        with transaction.atomic():
            if include_untracked:
                StockAuditService._register_untracked(company, warehouse, item_types, actor)

            ungraded = Ingredient.objects.filter(company=company, stock_grade='').values_list('id', flat=True)
            stock_items = list(
                StockItem.objects.filter(company=company, warehouse=warehouse, item_type__in=item_types)
                .exclude(item_type=ItemType.INGREDIENT.value, item_id__in=ungraded)
                .order_by('item_type', 'created_at')
            )
            details = resolve_item_details({s.catalog_key for s in stock_items}, catalog)

            audit = StockAudit.objects.create(
                company=company,
                warehouse=warehouse,
                name=name,
                description=description or '',
                audit_date=audit_date,
                created_by=actor_or_none(actor),
            )
            StockAuditItem.objects.bulk_create([
                StockAuditItem(
                    audit=audit,
                    stock_item=stock_item,
                    item_type=stock_item.item_type,
                    item_name=details[stock_item.catalog_key].name,
                    item_code=details[stock_item.catalog_key].code,
                    unit=stock_item.unit or details[stock_item.catalog_key].unit,
                    expected_quantity=stock_item.current_quantity,
                )
                for stock_item in stock_items
            ])
            ActivityLogService.log(
                actor=actor,
                action=ACTIVITY_ACTION_CREATE,
                model_name='StockAudit',
                object_id=str(audit.pk),
                new_values={
                    'name': name,
                    'audit_date': audit_date,
                    'warehouse_id': warehouse.pk,
                    'item_types': item_types,
                    'item_count': len(stock_items),
                },
            )
        logger.info(
            'StockAudit %s opened for warehouse %s with %d items',
            audit.pk, warehouse.pk, len(stock_items),
        )
        return audit

    @staticmethod
    def _register_untracked(company, warehouse, item_types, actor) -> int:
        tracked = set(
            StockItem.objects.filter(company=company, warehouse=warehouse)
            .values_list('item_type', 'item_id')
        )
        candidates = []
        if ItemType.INGREDIENT in item_types:
            candidates += [
                (ItemType.INGREDIENT.value, pk, unit)
                for pk, unit in Ingredient.objects.filter(company=company).exclude(stock_grade='')
                .values_list('id', 'unit')
            ]
        if ItemType.CONTAINER in item_types:
            # Container groups are not counted, only leaf containers.
            candidates += [
                (ItemType.CONTAINER.value, pk, CONTAINER_UNIT)
                for pk in Container.objects.filter(company=company, children__isnull=True)
                .values_list('id', flat=True)
            ]

        registered = 0
        for item_type, item_id, unit in candidates:
            if (item_type, item_id) in tracked:
                continue
            StockLedgerService.register_stock_item(
                company_id=company.pk,
                warehouse_id=warehouse.pk,
                item_type=item_type,
                item_id=item_id,
                unit=unit,
                actor=actor,
            )
            registered += 1
        if registered:
            logger.info('Registered %d untracked catalog items in warehouse %s for audit', registered, warehouse.pk)
        return registered

    @staticmethod
    @transaction.atomic
    def record_count(*, audit_id, audit_item_id, actual_quantity, notes=None, actor=None) -> StockAuditItem:
        """Store the counted quantity and its difference to the expected one."""
        audit = _get_audit(audit_id, lock=True)
        _assert_pending(audit)
        try:
            item = audit.items.get(pk=audit_item_id)
        except (StockAuditItem.DoesNotExist, DjangoValidationError):
            raise ResourceNotFoundError(detail=f'Audit item {audit_item_id} not found in audit {audit.pk}.')
        return StockAuditService._store_count(item, actual_quantity, notes, actor)

    @staticmethod
    def record_counts(*, audit_id, counts: list[dict], actor=None) -> list[CountResult]:
        """
        Record many counts. The audit must be pending; after that every
        count succeeds or fails on its own.
        """
        audit = _get_audit(audit_id)
        _assert_pending(audit)
        if not counts:
            raise InvalidInputError(detail='At least one count is required.')

        results = []
        for row in counts:
            audit_item_id = row.get('audit_item_id')
            try:
                item = StockAuditService.record_count(
                    audit_id=audit.pk,
                    audit_item_id=audit_item_id,
                    actual_quantity=row.get('actual_quantity'),
                    notes=row.get('notes'),
                    actor=actor,
                )
            except ConflictError:
                # The audit itself was completed meanwhile; nothing else can succeed.
                raise
            except (APIException, DatabaseError) as exc:
                logger.warning('Count for audit item %s failed: %s', audit_item_id, exc)
                code = exc.default_code if isinstance(exc, APIException) else 'DATABASE_ERROR'
                message = str(exc.detail) if isinstance(exc, APIException) else str(exc)
                results.append(CountResult(audit_item_id, False, error_code=code, message=message))
            else:
                results.append(CountResult(audit_item_id, True, item=item))
        return results

    @staticmethod
    def _store_count(item: StockAuditItem, actual_quantity, notes, actor) -> StockAuditItem:
        if actual_quantity is None:
            raise InvalidInputError(detail='actual_quantity is required.')
        actual = parse_quantity(actual_quantity)
        if actual < 0:
            raise InvalidInputError(detail=f'actual_quantity must be non-negative, got {actual}.')

        old_values = {
            'actual_quantity': item.actual_quantity,
            'difference': item.difference,
            'status': item.status,
        }
        item.actual_quantity = actual
        item.difference = actual - item.expected_quantity
        item.status = (
            StockAuditItem.StatusChoices.DISCREPANCY if item.difference != 0
            else StockAuditItem.StatusChoices.COMPLETED
        )
        update_fields = ['actual_quantity', 'difference', 'status', 'audited_by', 'audited_at', 'updated_at']
        if notes is not None:
            item.notes = notes.strip()
            update_fields.append('notes')
        item.audited_by = actor_or_none(actor)
        item.audited_at = timezone.now()
        item.save(update_fields=update_fields)

        ActivityLogService.log(
            actor=actor,
            action=ACTIVITY_ACTION_UPDATE,
            model_name='StockAuditItem',
            object_id=str(item.pk),
            old_values=old_values,
            new_values={
                'actual_quantity': item.actual_quantity,
                'difference': item.difference,
                'status': item.status,
            },
        )
        return item

    @staticmethod
    @transaction.atomic
    def complete_audit(*, audit_id, actor=None) -> StockAudit:
        """pending -> completed. Completing twice is an InvalidStateTransition (409)."""
        audit = _get_audit(audit_id, lock=True)
        old_status = audit.status
        _assert_transition(audit, StockAudit.StatusChoices.COMPLETED)
        audit.status = StockAudit.StatusChoices.COMPLETED
        audit.completed_at = timezone.now()
        audit.updated_by = actor_or_none(actor)
        audit.save(update_fields=['status', 'completed_at', 'updated_by', 'updated_at'])
        ActivityLogService.log(
            actor=actor,
            action=ACTIVITY_ACTION_STATUS_CHANGE,
            model_name='StockAudit',
            object_id=str(audit.pk),
            old_values={'status': old_status},
            new_values={'status': audit.status},
        )
        logger.info('StockAudit %s: %s -> %s', audit.pk, old_status, audit.status)
        return audit

    @staticmethod
    def apply_differences(*, audit_id, actor=None) -> ApplyResult:
        """
        Set each counted stock item to its counted quantity and append the
        adjustment that explains the change. Completed audits only.
        """
        audit = _get_audit(audit_id)
        if not audit.is_completed:
            raise ConflictError(
                detail=f'Audit {audit.pk} is {audit.status}; only completed audits can be applied.',
            )

        items = list(
            audit.items.filter(status__in=APPLICABLE_ITEM_STATUSES, actual_quantity__isnull=False)
            .order_by('item_type', 'item_name')
        )
        already_applied = set(
            StockTransaction.objects.filter(
                transaction_type=StockTransaction.TransactionType.ADJUSTMENT,
                reference_type=AUDIT_REFERENCE_TYPE,
                reference_id=audit.pk,
            ).values_list('stock_item_id', flat=True)
        )

        result = ApplyResult(audit_id=audit.pk)
        for item in items:
            try:
                StockLedgerService.reconcile_to_count(
                    stock_item_id=item.stock_item_id,
                    counted_quantity=item.actual_quantity,
                    expected_warehouse_id=audit.warehouse_id,
                    actor=actor,
                    item_name=item.item_name,
                    unit=item.unit,
                    reference_id=audit.pk,
                    reference_type=AUDIT_REFERENCE_TYPE,
                    notes=f'Audit adjustment: {item.item_name} (counted {item.actual_quantity})',
                )
            except (APIException, DatabaseError) as exc:
                message = str(exc.detail) if isinstance(exc, APIException) else str(exc)
                logger.warning(
                    'Audit %s: could not apply item %s (%s): %s',
                    audit.pk, item.pk, item.item_name, message,
                )
                result.errors.append({
                    'item': {
                        'audit_item_id': str(item.pk),
                        'stock_item_id': str(item.stock_item_id),
                        'item_name': item.item_name,
                    },
                    'message': message,
                })
                continue

            result.updated_count += 1
            if item.stock_item_id in already_applied:
                result.reapplied_count += 1
                logger.warning(
                    'Audit %s re-applied to stock item %s; a duplicate adjustment entry was written',
                    audit.pk, item.stock_item_id,
                )

        ActivityLogService.log(
            actor=actor,
            action=ACTIVITY_ACTION_RECONCILE,
            model_name='StockAudit',
            object_id=str(audit.pk),
            new_values=result.as_dict(),
        )
        logger.info(
            'StockAudit %s applied: %d updated, %d re-applied, %d errors',
            audit.pk, result.updated_count, result.reapplied_count, len(result.errors),
        )
        return result

    @staticmethod
    @transaction.atomic
    def delete_audit(*, audit_id, actor=None) -> None:
        """Delete a pending audit and its items. Completed audits are kept."""
        audit = _get_audit(audit_id, lock=True)
        if audit.is_completed:
            raise ConflictError(detail=f'Audit {audit.pk} is completed and cannot be deleted.')
        ActivityLogService.log(
            actor=actor,
            action=ACTIVITY_ACTION_DELETE,
            model_name='StockAudit',
            object_id=str(audit.pk),
            old_values={'name': audit.name, 'audit_date': audit.audit_date, 'status': audit.status},
        )
        audit_pk = audit.pk
        audit.delete()
        logger.info('StockAudit %s deleted', audit_pk)

    @staticmethod
    def get_stats(audit: StockAudit) -> dict[str, Any]:
        counts = dict(
            audit.items.order_by().values_list('status').annotate(n=Count('id'))
        )
        total = sum(counts.values())
        done = (
            counts.get(StockAuditItem.StatusChoices.COMPLETED.value, 0)
            + counts.get(StockAuditItem.StatusChoices.DISCREPANCY.value, 0)
        )
        completion_rate = 0
        if total:
            completion_rate = int(
                (Decimal(done) * 100 / Decimal(total)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
            )
        return {
            'total_items': total,
            'pending_items': counts.get(StockAuditItem.StatusChoices.PENDING.value, 0),
            'completed_items': counts.get(StockAuditItem.StatusChoices.COMPLETED.value, 0),
            'discrepancy_items': counts.get(StockAuditItem.StatusChoices.DISCREPANCY.value, 0),
            'completion_rate': completion_rate,
        }
