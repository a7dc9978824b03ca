"""
Stock — Point-in-Time Balance Reconstruction

Answers "what was the balance of each stock item at the end of day D?"
from the ledger and the snapshot store, without a stored daily history.

Strategy, by whole days between today and D:
  - within the recent window: backward replay. Start from
    current_quantity and undo every entry stamped on or after the start
    of D+1.
  - older: forward replay from the latest snapshot on or before D,
    applying entries in [start of snapshot day + 1, start of D + 1).
    A snapshot taken on D itself is returned unchanged. With no usable
    snapshot the backward replay is used instead; that is a normal
    branch, not an error.

Both replays go through signed_effect(), the same function the ledger
uses when posting, so all paths agree on signs. Reads never lock and
never write.

@file stock/reconstruction.py
"""

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, models
from django.utils import timezone

from catalog.services import ItemCatalog, ItemDetails, get_item_catalog, resolve_item_details
from companies.models import Company
from core.exceptions import InvalidInputError, ReconstructionError, ResourceNotFoundError

from .models import StockItem, StockTransaction, signed_effect
from .snapshots import SnapshotStore

logger = logging.getLogger('stocktrace')

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
ZERO = Decimal('0')


class CalculationMethod(models.TextChoices):
    REALTIME = 'realtime', 'Realtime'
    SNAPSHOT = 'snapshot', 'Snapshot'
    HYBRID = 'hybrid', 'Hybrid'


def start_of_day(day: date) -> datetime:
    """Midnight at the start of `day` in the project time zone."""
    return timezone.make_aware(datetime.combine(day, time.min))


def parse_target_date(value) -> date:
    if isinstance(value, datetime):
        return timezone.localtime(value).date() if timezone.is_aware(value) else value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and DATE_PATTERN.match(value):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise InvalidInputError(detail=f'target_date must be a date in YYYY-MM-DD format, got {value!r}.')


@dataclass(frozen=True)
class ItemBalance:
    stock_item_id: UUID
    item_type: str
    item_name: str
    unit: str
    quantity: Decimal
    raw_quantity: Decimal
    method: str
    details: ItemDetails

    def as_dict(self) -> dict[str, Any]:
        return {
            'stock_item_id': str(self.stock_item_id),
            'item_type': self.item_type,
            'item_name': self.item_name,
            'unit': self.unit,
            'quantity': self.quantity,
            'raw_quantity': self.raw_quantity,
            'method': self.method,
            'details': self.details.as_dict(),
        }


@dataclass(frozen=True)
class BalanceResult:
    company_id: Any
    target_date: date
    calculation_method: str
    items: tuple[ItemBalance, ...] = field(default_factory=tuple)
    snapshot_date_used: date | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            'company_id': str(self.company_id),
            'target_date': self.target_date.isoformat(),
            'calculation_method': self.calculation_method,
            'snapshot_date_used': self.snapshot_date_used.isoformat() if self.snapshot_date_used else None,
            'items': [item.as_dict() for item in self.items],
        }


class BalanceReconstructionService:
    """
    Historical balances for a company, optionally narrowed to one stock
    item.

    catalog, today and recent_window_days default to the configured
    catalog, the local date and settings.STOCK_RECENT_WINDOW_DAYS; tests
    pass their own.
    """

    def __init__(
        self,
        catalog: ItemCatalog | None = None,
        today: date | None = None,
        recent_window_days: int | None = None,
    ):
        self.catalog = catalog or get_item_catalog()
        self._today = today
        if recent_window_days is None:
            recent_window_days = settings.STOCK_RECENT_WINDOW_DAYS
        self.recent_window_days = recent_window_days

    @property
    def today(self) -> date:
        return self._today or timezone.localdate()

    def get_balance(self, company_id, target_date, stock_item_id=None) -> BalanceResult:
        target = parse_target_date(target_date)
        today = self.today
        if target > today:
            raise InvalidInputError(
                detail=f'target_date {target.isoformat()} is in the future (today is {today.isoformat()}).',
            )
        days_back = (today - target).days

        method = CalculationMethod.REALTIME
        snapshot_date = None
        snapshots = {}
        zero_started = set()
        try:
            stock_items = self._load_stock_items(company_id, stock_item_id)
            if days_back <= self.recent_window_days:
                raw = self.backward_replay(stock_items, target)
            else:
                snapshot_date = SnapshotStore.latest_snapshot_date(company_id, target, stock_item_id)
                if snapshot_date is None:
                    logger.info(
                        'No snapshot on or before %s for company %s; using backward replay',
                        target, company_id,
                    )
                    raw = self.backward_replay(stock_items, target)
                else:
                    method = (
                        CalculationMethod.SNAPSHOT if snapshot_date == target
                        else CalculationMethod.HYBRID
                    )
                    snapshots = SnapshotStore.snapshots_on(company_id, snapshot_date, stock_item_id)
                    raw = self.forward_replay(stock_items, snapshot_date, target, snapshots=snapshots)
                    zero_started = set(raw) - set(snapshots)
                    uncovered = [s for s in stock_items if s.pk not in raw]
                    if uncovered:
                        logger.warning(
                            'No snapshot row on %s for %d stock items of company %s; using backward replay for them',
                            snapshot_date, len(uncovered), company_id,
                        )
                        raw.update(self.backward_replay(uncovered, target))
        except DatabaseError as exc:
            logger.exception(
                'Balance reconstruction failed: company=%s target=%s item=%s method=%s',
                company_id, target, stock_item_id, method,
            )
            raise ReconstructionError(detail={
                'detail': f'Balance reconstruction failed: {exc}',
                'company_id': str(company_id),
                'target_date': target.isoformat(),
                'stock_item_id': str(stock_item_id or ''),
                'method': str(method),
            })

        items = self._build_items(stock_items, raw, snapshots, snapshot_date, target, zero_started)
        logger.info(
            'Reconstructed %d balances for company %s at %s via %s',
            len(items), company_id, target, method,
        )
        return BalanceResult(
            company_id=company_id,
            target_date=target,
            calculation_method=str(method),
            items=tuple(items),
            snapshot_date_used=snapshot_date,
        )

    # ----- replay strategies -----

    def backward_replay(self, stock_items, target_date: date) -> dict[UUID, Decimal]:
        """Undo every entry stamped on or after the start of target_date + 1."""
        stock_items = list(stock_items)
        if not stock_items:
            return {}
        since = start_of_day(target_date + timedelta(days=1))
        effects = self._sum_effects(stock_items, since=since)
        return {
            item.pk: item.current_quantity - effects.get(item.pk, ZERO)
            for item in stock_items
        }

    def forward_replay(
        self, stock_items, snapshot_date: date, target_date: date, snapshots: dict | None = None,
    ) -> dict[UUID, Decimal]:
        """
        Apply entries between the end of snapshot_date and the end of
        target_date on top of the snapshot.

        Items created after snapshot_date with no ledger entry on or before
        it start from zero. Other items without a snapshot row are left out
        of the result.
        """
        stock_items = list(stock_items)
        if not stock_items:
            return {}
        if snapshots is None:
            company_ids = {item.company_id for item in stock_items}
            snapshots = {}
            for company_id in company_ids:
                snapshots.update(SnapshotStore.snapshots_on(company_id, snapshot_date))

        since = start_of_day(snapshot_date + timedelta(days=1))
        until = start_of_day(target_date + timedelta(days=1))
        starts = {}
        late = []
        for item in stock_items:
            if item.pk in snapshots:
                starts[item.pk] = snapshots[item.pk].quantity
            elif item.created_at >= since:
                late.append(item.pk)
        if late:
            # A backdated entry on or before the snapshot day means the item
            # had history the snapshot never saw.
            backdated = set(
                StockTransaction.objects.filter(stock_item_id__in=late, timestamp__lt=since)
                .values_list('stock_item_id', flat=True)
            )
            starts.update({pk: ZERO for pk in late if pk not in backdated})
        if not starts:
            return {}

        covered = [item for item in stock_items if item.pk in starts]
        effects = self._sum_effects(covered, since=since, until=until)
        return {pk: start + effects.get(pk, ZERO) for pk, start in starts.items()}

    # ----- helpers -----

    def _load_stock_items(self, company_id, stock_item_id=None) -> list[StockItem]:
        try:
            if not Company.objects.filter(pk=company_id).exists():
                raise ResourceNotFoundError(detail=f'Company {company_id} not found.')
            qs = StockItem.objects.filter(company_id=company_id)
            if stock_item_id is not None:
                qs = qs.filter(pk=stock_item_id)
            stock_items = list(qs.order_by('item_type', 'created_at'))
        except DjangoValidationError:
            raise InvalidInputError(detail='company_id and stock_item_id must be valid UUIDs.')
        if stock_item_id is not None and not stock_items:
            raise ResourceNotFoundError(
                detail=f'Stock item {stock_item_id} not found for company {company_id}.',
            )
        return stock_items

    @staticmethod
    def _sum_effects(stock_items, *, since: datetime, until: datetime | None = None) -> dict[UUID, Decimal]:
        """One ledger query for the whole item set, summed per stock item."""
        qs = StockTransaction.objects.filter(
            stock_item_id__in=[item.pk for item in stock_items],
            timestamp__gte=since,
        )
        if until is not None:
            qs = qs.filter(timestamp__lt=until)
        totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        rows = qs.order_by('timestamp').values_list('stock_item_id', 'transaction_type', 'quantity')
        for item_pk, txn_type, quantity in rows:
            totals[item_pk] += signed_effect(txn_type, quantity)
        return totals

    def _build_items(self, stock_items, raw, snapshots, snapshot_date, target, zero_started=()) -> list[ItemBalance]:
        details = resolve_item_details({item.catalog_key for item in stock_items}, self.catalog)

        items = []
        for stock_item in stock_items:
            detail = details[stock_item.catalog_key]
            snap = snapshots.get(stock_item.pk)
            if snap is not None:
                method = CalculationMethod.SNAPSHOT if snapshot_date == target else CalculationMethod.HYBRID
            elif stock_item.pk in zero_started:
                method = CalculationMethod.HYBRID
            else:
                method = CalculationMethod.REALTIME

            raw_quantity = raw[stock_item.pk]
            quantity = raw_quantity
            if method != CalculationMethod.SNAPSHOT:
                if raw_quantity < 0:
                    logger.warning(
                        'Negative reconstructed balance %s for stock item %s at %s (%s); reporting 0',
                        raw_quantity, stock_item.pk, target, method,
                    )
                quantity = max(raw_quantity, ZERO)

            name = detail.name
            if not detail.found and snap is not None and snap.item_name:
                name = snap.item_name
            items.append(ItemBalance(
                stock_item_id=stock_item.pk,
                item_type=stock_item.item_type,
                item_name=name,
                unit=stock_item.unit or detail.unit,
                quantity=quantity,
                raw_quantity=raw_quantity,
                method=str(method),
                details=detail,
            ))
        return items
