"""Aggregations over ``stock_usage`` for charts.

Every grouping emits explicit zero buckets (each calendar day of the range,
each known category) so that chart axes stay continuous.
"""
from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from itdesk.errors import ValidationError
from itdesk.models.stock import StockUsage
from itdesk.utils.timestamps import as_utc, utcnow

UNCATEGORIZED = 'Uncategorized'
DEFAULT_WINDOW_DAYS = 30
MAX_WINDOW_DAYS = 366


def _day(value) -> date:
    if isinstance(value, datetime):
        return as_utc(value).date()
    return value


def _bucket(acc: dict, entry: dict) -> None:
    if entry['transaction_type'] == StockUsage.TYPE_IN:
        acc['in'] += entry['quantity']
    else:
        acc['out'] += entry['quantity']


def usage_by_date(entries: Iterable[dict], start: date, end: date) -> List[dict]:
    """One ``{'date', 'in', 'out'}`` bucket per day in ``[start, end]``, ascending."""
    start, end = _day(start), _day(end)
    if end < start:
        raise ValidationError('from must not be after to')
    if (end - start).days + 1 > MAX_WINDOW_DAYS:
        raise ValidationError(f'date range must not exceed {MAX_WINDOW_DAYS} days')
    buckets: Dict[date, dict] = {}
    day = start
    while day <= end:
        buckets[day] = {'date': day.isoformat(), 'in': 0, 'out': 0}
        day += timedelta(days=1)
    for entry in entries:
        acc = buckets.get(_day(entry['date']))
        if acc is not None:
            _bucket(acc, entry)
    return list(buckets.values())


def usage_by_category(entries: Iterable[dict], item_categories: Dict[str, str],
                      categories: Iterable[str] = ()) -> List[dict]:
    """Sum movements per parent-item category.

    ``item_categories`` maps stock item id to its category; entries whose item
    is gone land in ``Uncategorized``. ``categories`` are always emitted,
    zero-filled.
    """
    buckets: Dict[str, dict] = {c: {'category': c, 'in': 0, 'out': 0} for c in categories}
    for entry in entries:
        category = item_categories.get(entry['stock_item_id']) or UNCATEGORIZED
        acc = buckets.setdefault(category, {'category': category, 'in': 0, 'out': 0})
        _bucket(acc, entry)
    return sorted(buckets.values(), key=lambda b: b['category'])


def totals(entries: Iterable[dict]) -> dict:
    acc = {'in': 0, 'out': 0, 'count': 0}
    for entry in entries:
        _bucket(acc, entry)
        acc['count'] += 1
    acc['net'] = acc['in'] - acc['out']
    return acc


def transactions_report(store, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
    """Stock movements between ``start`` and ``end`` (default: the last 30 days)."""
    end = end or utcnow()
    start = start or end - timedelta(days=DEFAULT_WINDOW_DAYS)
    if end < start:
        raise ValidationError('from must not be after to')
    if (_day(end) - _day(start)).days + 1 > MAX_WINDOW_DAYS:
        raise ValidationError(f'date range must not exceed {MAX_WINDOW_DAYS} days')
    entries = store.select(
        'stock_usage',
        filters={'date': ('gte', start)},
        ordering=['-date'],
    )
    entries = [e for e in entries if as_utc(e['date']) <= as_utc(end)]
    items = store.select('stock_items', columns=['id', 'name', 'category'])
    item_categories = {i['id']: i['category'] for i in items}
    item_names = {i['id']: i['name'] for i in items}
    return {
        'from': start,
        'to': end,
        'by_date': usage_by_date(entries, start, end),
        'by_category': usage_by_category(entries, item_categories, set(item_categories.values())),
        'totals': totals(entries),
        'transactions': [
            {**e, 'item_name': item_names.get(e['stock_item_id']),
             'category': item_categories.get(e['stock_item_id']) or UNCATEGORIZED}
            for e in entries
        ],
    }
