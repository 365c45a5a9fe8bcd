from __future__ import annotations
from datetime import timedelta
from flask import Blueprint, request, current_app

from itdesk import get_store
from itdesk.constants.permissions import Permission
from itdesk.decorators.auth import require_permission
from itdesk.errors import ValidationError
from itdesk.services.stock_ledger import StockLedger
from itdesk.services.stock_reports import transactions_report
from itdesk.utils.timestamps import iso, parse_timestamp

rpt_bp = Blueprint('reports', __name__)


def _parse_bound(name: str, end_of_day: bool = False):
    raw = request.args.get(name)
    if not raw:
        return None
    value = parse_timestamp(raw)
    if value is None:
        raise ValidationError(f'{name} invalid')
    # a bare date as upper bound covers that whole day
    if end_of_day and len(raw) == 10:
        try:
            value = value + timedelta(days=1) - timedelta(microseconds=1)
        except OverflowError:
            raise ValidationError(f'{name} invalid')
    return value


@rpt_bp.get('/issues/summary')
@require_permission(Permission.VIEW_REPORTS)
def issue_summary():
    store = get_store()
    year = request.args.get('year')
    try:
        year = int(year) if year else None
    except ValueError:
        raise ValidationError('year invalid')
    return {
        'stats': store.call_procedure('get_issue_stats')[0],
        'by_status': store.call_procedure('get_issues_by_status'),
        'by_type': store.call_procedure('get_issues_by_type'),
        'by_month': store.call_procedure('get_issues_by_month', {'year': year}),
        'resolution_by_week': store.call_procedure('get_resolution_time_by_week'),
    }


@rpt_bp.get('/stock/transactions')
@require_permission(Permission.VIEW_REPORTS)
def stock_transactions():
    report = transactions_report(get_store(), _parse_bound('from'), _parse_bound('to', end_of_day=True))
    report['from'] = iso(report['from'])
    report['to'] = iso(report['to'])
    report['transactions'] = [{**t, 'date': iso(t['date'])} for t in report['transactions']]
    return report


@rpt_bp.get('/dashboard')
@require_permission(Permission.VIEW_REPORTS)
def dashboard():
    store = get_store()
    ledger = StockLedger(store)
    items = store.select('stock_items', columns=['quantity'])
    return {
        'issues': store.call_procedure('get_issue_stats')[0],
        'issues_by_status': store.call_procedure('get_issues_by_status'),
        'stock': {
            'items': len(items),
            'units': sum(i['quantity'] for i in items),
            'low_stock': ledger.low_stock_count(current_app.config['LOW_STOCK_THRESHOLD']),
        },
    }
