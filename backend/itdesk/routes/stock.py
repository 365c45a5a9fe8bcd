from __future__ import annotations
from flask import Blueprint, request, current_app

from itdesk import get_store
from itdesk.constants.permissions import Permission, STAFF_ROLES
from itdesk.decorators.auth import require_permission, require_role, current_user
from itdesk.services.stock_ledger import StockLedger, StockFilter
from itdesk.utils.listing import list_response
from itdesk.utils.timestamps import iso

stock_bp = Blueprint('stock', __name__)


def _ledger() -> StockLedger:
    return StockLedger(get_store(), delete_policy=current_app.config['STOCK_DELETE_POLICY'])


def _item_json(r: dict) -> dict:
    return {
        'id': r['id'],
        'name': r['name'],
        'category': r['category'],
        'description': r.get('description'),
        'quantity': r['quantity'],
        'manufacturer': r.get('manufacturer'),
        'model': r.get('model'),
        'serial_number': r.get('serial_number'),
        'purchase_date': iso(r.get('purchase_date')),
        'price': r.get('price'),
        'location': r.get('location'),
        'status': r['status'],
        'image': r.get('image'),
        'version': r['version'],
        'low_stock': r['quantity'] < current_app.config['LOW_STOCK_THRESHOLD'],
        'created_at': iso(r.get('created_at')),
        'updated_at': iso(r.get('updated_at')),
    }


def _usage_json(r: dict) -> dict:
    return {
        'id': r['id'],
        'stock_item_id': r['stock_item_id'],
        'issue_id': r.get('issue_id'),
        'quantity': r['quantity'],
        'transaction_type': r['transaction_type'],
        'assigned_to': r.get('assigned_to'),
        'date': iso(r['date']),
        'sequence': r.get('sequence'),
        'notes': r.get('notes'),
    }


@stock_bp.get('/items')
@require_role(*STAFF_ROLES)
def list_items():
    flt = StockFilter(
        search=request.args.get('search'),
        category=request.args.get('category'),
        status=request.args.get('status'),
    )
    rows = _ledger().list_items(flt)
    return list_response(rows, _item_json)


@stock_bp.get('/categories')
@require_role(*STAFF_ROLES)
def list_categories():
    return {'data': _ledger().categories()}


@stock_bp.post('/items')
@require_permission(Permission.CREATE_STOCK)
def create_item():
    data = request.get_json(silent=True) or {}
    item = _ledger().create_item(data, created_by=current_user().id)
    return _item_json(item), 201


@stock_bp.get('/items/<item_id>')
@require_role(*STAFF_ROLES)
def get_item(item_id: str):
    return _item_json(_ledger().get_item(item_id))


@stock_bp.patch('/items/<item_id>')
@require_permission(Permission.EDIT_STOCK)
def update_item(item_id: str):
    data = request.get_json(silent=True) or {}
    return _item_json(_ledger().update_item(item_id, data))


@stock_bp.delete('/items/<item_id>')
@require_permission(Permission.DELETE_STOCK)
def delete_item(item_id: str):
    removed = _ledger().delete_item(item_id)
    return {'id': item_id, 'deleted': True, 'history_removed': removed}


@stock_bp.post('/items/<item_id>/transactions')
@require_permission(Permission.MANAGE_STOCK_TRANSACTIONS)
def record_transaction(item_id: str):
    data = request.get_json(silent=True) or {}
    result = _ledger().record_transaction(
        item_id,
        data.get('quantity'),
        data.get('transaction_type'),
        assigned_to=data.get('assigned_to'),
        notes=data.get('notes'),
        issue_id=data.get('issue_id'),
    )
    return {'item': _item_json(result.item), 'entry': _usage_json(result.entry)}, 201


@stock_bp.get('/items/<item_id>/usage')
@require_role(*STAFF_ROLES)
def usage_history(item_id: str):
    ledger = _ledger()
    ledger.get_item(item_id)
    rows = ledger.fetch_usage_history(item_id)
    return list_response(rows, _usage_json, 'date')


@stock_bp.get('/items/<item_id>/reconcile')
@require_role(*STAFF_ROLES)
def reconcile(item_id: str):
    return _ledger().reconcile(item_id)
