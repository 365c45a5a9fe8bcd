from __future__ import annotations
from flask import Blueprint, request

from itdesk import get_store
from itdesk.decorators.auth import require_auth, current_user
from itdesk.services.purchase_requests import PurchaseRequestService
from itdesk.utils.listing import list_response
from itdesk.utils.timestamps import iso

pr_bp = Blueprint('purchase_requests', __name__)


def _service() -> PurchaseRequestService:
    return PurchaseRequestService(get_store())


def _pr_json(r: dict) -> dict:
    return {
        'id': r['id'],
        'user_id': r['user_id'],
        'bon_number': r['bon_number'],
        'bon_signer': r['bon_signer'],
        'item_name': r['item_name'],
        'item_description': r.get('item_description'),
        'item_quantity': r['item_quantity'],
        'estimated_price': r.get('estimated_price'),
        'notes': r.get('notes'),
        'status': r['status'],
        'created_at': iso(r.get('created_at')),
        'updated_at': iso(r.get('updated_at')),
    }


@pr_bp.get('')
@require_auth
def list_requests():
    rows = _service().list_for(current_user(), request.args)
    return list_response(rows, _pr_json)


@pr_bp.post('')
@require_auth
def create_request():
    data = request.get_json(silent=True) or {}
    return _pr_json(_service().create(current_user(), data)), 201


@pr_bp.get('/<request_id>')
@require_auth
def get_request(request_id: str):
    return _pr_json(_service().get(current_user(), request_id))


@pr_bp.post('/<request_id>/approve')
@require_auth
def approve_request(request_id: str):
    return _pr_json(_service().approve(current_user(), request_id))


@pr_bp.post('/<request_id>/reject')
@require_auth
def reject_request(request_id: str):
    return _pr_json(_service().reject(current_user(), request_id))


@pr_bp.post('/<request_id>/purchase')
@require_auth
def purchase_request(request_id: str):
    return _pr_json(_service().mark_purchased(current_user(), request_id))
