"""Purchase requests: an approval workflow independent of the stock ledger."""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional

from itdesk.constants.permissions import Permission
from itdesk.errors import NotFoundError, PermissionDeniedError, InvalidTransitionError
from itdesk.models.purchase_request import PurchaseRequest
from itdesk.services import policy
from itdesk.services.policy import UserProfile
from itdesk.utils.filters import build_filters
from itdesk.utils.fsm import TransitionValidator
from itdesk.utils.timestamps import utcnow
from itdesk.utils.validation import require_fields, positive_int, optional_float

log = logging.getLogger(__name__)

PR_FSM = TransitionValidator({
    PurchaseRequest.STATUS_PENDING: {PurchaseRequest.STATUS_APPROVED, PurchaseRequest.STATUS_REJECTED},
    PurchaseRequest.STATUS_APPROVED: {PurchaseRequest.STATUS_PURCHASED},
    PurchaseRequest.STATUS_REJECTED: set(),
    PurchaseRequest.STATUS_PURCHASED: set(),
})

# capability needed to move a request into each status
_TRANSITION_PERMISSION = {
    PurchaseRequest.STATUS_APPROVED: Permission.APPROVE_PURCHASE_REQUEST,
    PurchaseRequest.STATUS_PURCHASED: Permission.APPROVE_PURCHASE_REQUEST,
    PurchaseRequest.STATUS_REJECTED: Permission.REJECT_PURCHASE_REQUEST,
}

REVIEWER_PERMISSIONS = (Permission.APPROVE_PURCHASE_REQUEST, Permission.REJECT_PURCHASE_REQUEST)

LIST_FILTERS = {
    'status': {'validate': lambda v: v in PurchaseRequest.ALL_STATUSES},
    'requested_by': {'column': 'user_id'},
}


class PurchaseRequestService:
    def __init__(self, store, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def _load(self, request_id: str) -> dict:
        row = self.store.select_one('purchase_requests', {'id': request_id})
        if row is None:
            raise NotFoundError('purchase request not found')
        return row

    def list_for(self, user: UserProfile, params: Optional[Mapping] = None) -> List[dict]:
        filters = build_filters(LIST_FILTERS, params or {})
        if not policy.has_permission(user, REVIEWER_PERMISSIONS):
            filters['user_id'] = user.id
        return self.store.select('purchase_requests', filters=filters, ordering=['-created_at', 'id'])

    def get(self, user: UserProfile, request_id: str) -> dict:
        row = self._load(request_id)
        if row['user_id'] != user.id and not policy.has_permission(user, REVIEWER_PERMISSIONS):
            raise PermissionDeniedError('Not allowed to view this purchase request')
        return row

    def create(self, user: UserProfile, data: Dict) -> dict:
        policy.assert_permission(user, Permission.CREATE_PURCHASE_REQUEST)
        require_fields(data, 'bon_number', 'bon_signer', 'item_name')
        now = self.clock()
        row = self.store.insert('purchase_requests', {
            'user_id': user.id,
            'bon_number': str(data['bon_number']).strip(),
            'bon_signer': str(data['bon_signer']).strip(),
            'item_name': str(data['item_name']).strip(),
            'item_description': data.get('item_description'),
            'item_quantity': positive_int(data.get('item_quantity', 1), 'item_quantity'),
            'estimated_price': optional_float(data.get('estimated_price'), 'estimated_price'),
            'notes': data.get('notes'),
            'status': PurchaseRequest.STATUS_PENDING,
            'created_at': now,
            'updated_at': now,
        })
        log.info('purchase request %s created by %s', row['id'], user.id)
        return row

    def transition(self, user: UserProfile, request_id: str, target: str) -> dict:
        policy.assert_permission(user, _TRANSITION_PERMISSION[target])
        row = self._load(request_id)
        PR_FSM.assert_can_transition(row['status'], target)
        updated = self.store.update_one(
            'purchase_requests',
            {'status': target, 'updated_at': self.clock()},
            {'id': request_id, 'status': row['status']},
        )
        if updated is None:
            raise InvalidTransitionError('purchase request status changed concurrently')
        log.info('purchase request %s %s -> %s by %s', request_id, row['status'], target, user.id)
        return updated

    def approve(self, user: UserProfile, request_id: str) -> dict:
        return self.transition(user, request_id, PurchaseRequest.STATUS_APPROVED)

    def reject(self, user: UserProfile, request_id: str) -> dict:
        return self.transition(user, request_id, PurchaseRequest.STATUS_REJECTED)

    def mark_purchased(self, user: UserProfile, request_id: str) -> dict:
        return self.transition(user, request_id, PurchaseRequest.STATUS_PURCHASED)
