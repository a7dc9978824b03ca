"""
Stock — Snapshot Store

Read-only access to StockSnapshot rows. Snapshots are written by an
external end-of-day job; this module only answers which snapshot date
applies to a target date and which rows exist on it. Many rows share one
date (one per stock item), and having no snapshot at all is normal.

@file stock/snapshots.py
"""

import logging
from datetime import date

from .models import StockSnapshot

logger = logging.getLogger('stocktrace')


class SnapshotStore:

    @staticmethod
    def latest_snapshot_date(company_id, on_or_before: date, stock_item_id=None) -> date | None:
        """Latest snapshot_date <= on_or_before, or None when no snapshot precedes it."""
        qs = StockSnapshot.objects.filter(company_id=company_id, snapshot_date__lte=on_or_before)
        if stock_item_id is not None:
            qs = qs.filter(stock_item_id=stock_item_id)
        return (
            qs.order_by('-snapshot_date')
            .values_list('snapshot_date', flat=True)
            .first()
        )

    @staticmethod
    def snapshots_on(company_id, snapshot_date: date, stock_item_id=None) -> dict:
        """Snapshot rows of one date keyed by stock_item_id."""
        qs = StockSnapshot.objects.filter(company_id=company_id, snapshot_date=snapshot_date)
        if stock_item_id is not None:
            qs = qs.filter(stock_item_id=stock_item_id)
        rows = {snap.stock_item_id: snap for snap in qs}
        logger.debug('Loaded %d snapshots for company %s on %s', len(rows), company_id, snapshot_date)
        return rows
