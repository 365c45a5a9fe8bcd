"""Stock ledger: item quantities and their append-only usage history.

``stock_items.quantity`` only ever changes together with a ``stock_usage``
row, so that for every item::

    quantity == sum(in) - sum(out)

``record_transaction`` reads the item, then writes the new quantity with a
compare-and-swap on ``stock_items.version`` and appends the ledger row, all
inside one datastore transaction. A concurrent writer that got there first
makes the swap miss and the call fails with ``ConflictError``; nothing is
written in that case.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from itdesk.config.settings import STOCK_DELETE_POLICIES
from itdesk.errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from itdesk.models.stock import StockItem, StockUsage
from itdesk.utils.timestamps import utcnow, parse_timestamp
from itdesk.utils.validation import positive_int, optional_float, require_fields, required_str, validate_status

log = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'name', 'category', 'description', 'manufacturer', 'model', 'serial_number',
    'purchase_date', 'price', 'location', 'status', 'image',
)


@dataclass(frozen=True)
class StockFilter:
    search: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None

    def matches(self, item: dict) -> bool:
        if self.category and item.get('category') != self.category:
            return False
        if self.status and item.get('status') != self.status:
            return False
        if self.search:
            needle = self.search.strip().lower()
            haystack = f"{item.get('name') or ''}\n{item.get('description') or ''}".lower()
            if needle not in haystack:
                return False
        return True


@dataclass(frozen=True)
class TransactionResult:
    item: dict
    entry: dict


def _clean_fields(data: Dict, partial: bool) -> Dict:
    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    if not partial:
        require_fields(fields, 'name', 'category')
    for key in ('name', 'category'):
        if key in fields:
            fields[key] = required_str(fields[key], key)
    if 'status' in fields:
        validate_status(fields['status'], StockItem.ALL_STATUSES)
    if 'price' in fields:
        fields['price'] = optional_float(fields['price'], 'price')
    if 'purchase_date' in fields and fields['purchase_date'] is not None:
        parsed = parse_timestamp(fields['purchase_date'])
        if parsed is None:
            raise ValidationError('purchase_date invalid')
        fields['purchase_date'] = parsed
    return fields


class StockLedger:
    def __init__(self, store, clock: Callable[[], datetime] = utcnow, delete_policy: str = 'preserve'):
        if delete_policy not in STOCK_DELETE_POLICIES:
            raise ValueError(f'unknown stock delete policy {delete_policy}')
        self.store = store
        self.clock = clock
        self.delete_policy = delete_policy

    # ---- items -----------------------------------------------------------
    def get_item(self, item_id: str) -> dict:
        item = self.store.select_one('stock_items', {'id': item_id})
        if item is None:
            raise NotFoundError('stock item not found')
        return item

    def list_items(self, flt: Optional[StockFilter] = None) -> List[dict]:
        """All items ordered by name, narrowed client-side by ``flt``."""
        flt = flt or StockFilter()
        rows = self.store.select('stock_items', ordering=['name', 'id'])
        return [r for r in rows if flt.matches(r)]

    def categories(self) -> List[str]:
        rows = self.store.select('stock_items', columns=['category'])
        return sorted({r['category'] for r in rows if r['category']})

    def create_item(self, data: Dict, created_by: Optional[str] = None) -> dict:
        """Create an item; a non-zero opening quantity is booked as an ``in`` entry."""
        fields = _clean_fields(data, partial=False)
        opening = positive_int(data.get('quantity', 0), 'quantity', allow_zero=True)
        now = self.clock()
        with self.store.transaction():
            item = self.store.insert('stock_items', {
                **fields, 'quantity': opening, 'version': 1, 'created_at': now, 'updated_at': now,
            })
            if opening:
                self.store.insert('stock_usage', {
                    'stock_item_id': item['id'],
                    'quantity': opening,
                    'transaction_type': StockUsage.TYPE_IN,
                    'assigned_to': None,
                    'date': now,
                    'sequence': 1,
                    'notes': 'Opening balance',
                })
        log.info('stock item %s created by %s with opening quantity %d', item['id'], created_by, opening)
        return item

    def update_item(self, item_id: str, data: Dict) -> dict:
        if 'quantity' in data:
            raise ValidationError('quantity can only change through stock transactions')
        if 'version' in data:
            raise ValidationError('version is managed by the server')
        fields = _clean_fields(data, partial=True)
        self.get_item(item_id)
        if not fields:
            return self.get_item(item_id)
        fields['updated_at'] = self.clock()
        updated = self.store.update_one('stock_items', fields, {'id': item_id})
        if updated is None:
            raise NotFoundError('stock item not found')
        return updated

    def delete_item(self, item_id: str, policy: Optional[str] = None) -> int:
        """Hard delete. Returns the number of ledger rows removed with it.

        ``preserve`` keeps the item's ``stock_usage`` rows as history;
        ``cascade`` removes them. Issue links are always removed.
        """
        policy = policy or self.delete_policy
        if policy not in STOCK_DELETE_POLICIES:
            raise ValidationError(f'unknown stock delete policy {policy}')
        removed_history = 0
        with self.store.transaction():
            self.get_item(item_id)
            self.store.delete('issue_stock_items', {'stock_item_id': item_id})
            if policy == 'cascade':
                removed_history = self.store.delete('stock_usage', {'stock_item_id': item_id})
            self.store.delete('stock_items', {'id': item_id})
        log.info('stock item %s deleted (policy=%s, history rows removed=%d)', item_id, policy, removed_history)
        return removed_history

    # ---- ledger ----------------------------------------------------------
    def record_transaction(self, stock_item_id: str, quantity, transaction_type: str,
                           assigned_to: Optional[str] = None, notes: Optional[str] = None,
                           issue_id: Optional[str] = None) -> TransactionResult:
        quantity = positive_int(quantity, 'quantity')
        validate_status(transaction_type, StockUsage.ALL_TYPES, 'transaction_type')
        if transaction_type == StockUsage.TYPE_OUT:
            if not assigned_to:
                raise ValidationError('assigned_to required for out transactions')
        else:
            # incoming stock is not handed to anyone
            assigned_to = None
        with self.store.transaction():
            item = self.get_item(stock_item_id)
            if assigned_to and self.store.select_one('custom_users', {'id': assigned_to}) is None:
                raise NotFoundError('assigned user not found')
            if issue_id and self.store.select_one('issues', {'id': issue_id}) is None:
                raise NotFoundError('issue not found')
            current = item['quantity']
            if transaction_type == StockUsage.TYPE_OUT:
                if quantity > current:
                    raise InsufficientStockError(quantity, current)
                new_quantity = current - quantity
            else:
                new_quantity = current + quantity
            now = self.clock()
            updated = self.store.update_one(
                'stock_items',
                {'quantity': new_quantity, 'version': item['version'] + 1, 'updated_at': now},
                {'id': stock_item_id, 'version': item['version']},
            )
            if updated is None:
                raise ConflictError('stock item was modified concurrently; retry the transaction')
            entry = self.store.insert('stock_usage', {
                'stock_item_id': stock_item_id,
                'issue_id': issue_id,
                'quantity': quantity,
                'transaction_type': transaction_type,
                'assigned_to': assigned_to,
                'date': now,
                'sequence': updated['version'],
                'notes': notes,
            })
        log.info('stock %s of %d on item %s (assigned_to=%s): %d -> %d',
                 transaction_type, quantity, stock_item_id, assigned_to, current, new_quantity)
        return TransactionResult(item=updated, entry=entry)

    def fetch_usage_history(self, stock_item_id: str) -> List[dict]:
        """Ledger rows for one item, newest first."""
        return self.store.select('stock_usage', filters={'stock_item_id': stock_item_id}, ordering=['-date', '-sequence'])

    def reconcile(self, item_id: str) -> dict:
        item = self.get_item(item_id)
        net = 0
        for entry in self.fetch_usage_history(item_id):
            net += entry['quantity'] if entry['transaction_type'] == StockUsage.TYPE_IN else -entry['quantity']
        return {
            'stock_item_id': item_id,
            'quantity': item['quantity'],
            'ledger_net': net,
            'consistent': net == item['quantity'],
        }

    def low_stock_count(self, threshold: int) -> int:
        return len(self.store.select('stock_items', columns=['id'], filters={'quantity': ('lt', threshold)}))
