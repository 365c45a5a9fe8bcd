from __future__ import annotations
from flask import Blueprint, request

from itdesk import get_store
from itdesk.decorators.auth import require_auth, current_user
from itdesk.errors import ValidationError
from itdesk.services.issues import IssueService
from itdesk.utils.listing import list_response
from itdesk.utils.sorting import parse_sort
from itdesk.utils.timestamps import iso

issues_bp = Blueprint('issues', __name__)

SORTABLE = ('created_at', 'updated_at', 'status', 'severity', 'title')


def _service() -> IssueService:
    return IssueService(get_store())


def _issue_json(r: dict) -> dict:
    return {
        'id': r['id'],
        'title': r['title'],
        'description': r['description'],
        'submitted_by': r['submitted_by'],
        'assigned_to': r.get('assigned_to'),
        'severity': r['severity'],
        'type': r['type'],
        'status': r['status'],
        'created_at': iso(r.get('created_at')),
        'updated_at': iso(r.get('updated_at')),
        'resolved_at': iso(r.get('resolved_at')),
    }


def _comment_json(r: dict) -> dict:
    return {
        'id': r['id'],
        'issue_id': r['issue_id'],
        'user_id': r['user_id'],
        'text': r['text'],
        'created_at': iso(r.get('created_at')),
    }


@issues_bp.get('')
@require_auth
def list_issues():
    ordering = parse_sort(request.args.get('sort') or '-created_at', SORTABLE, 'id')
    rows = _service().list_for(
        current_user(),
        request.args,
        ordering=ordering,
    )
    return list_response(rows, _issue_json)


@issues_bp.post('')
@require_auth
def create_issue():
    data = request.get_json(silent=True) or {}
    return _issue_json(_service().create(current_user(), data)), 201


@issues_bp.get('/<issue_id>')
@require_auth
def get_issue(issue_id: str):
    return _issue_json(_service().get(current_user(), issue_id))


@issues_bp.patch('/<issue_id>')
@require_auth
def update_issue(issue_id: str):
    data = request.get_json(silent=True) or {}
    return _issue_json(_service().update(current_user(), issue_id, data))


@issues_bp.post('/<issue_id>/status')
@require_auth
def change_status(issue_id: str):
    data = request.get_json(silent=True) or {}
    if not data.get('status'):
        raise ValidationError('status required')
    return _issue_json(_service().change_status(current_user(), issue_id, data['status']))


@issues_bp.post('/<issue_id>/assign')
@require_auth
def assign_issue(issue_id: str):
    data = request.get_json(silent=True) or {}
    if not data.get('assigned_to'):
        raise ValidationError('assigned_to required')
    return _issue_json(_service().assign(current_user(), issue_id, data['assigned_to']))


@issues_bp.get('/<issue_id>/comments')
@require_auth
def list_comments(issue_id: str):
    rows = _service().comments(current_user(), issue_id)
    return list_response(rows, _comment_json, 'created_at')


@issues_bp.post('/<issue_id>/comments')
@require_auth
def add_comment(issue_id: str):
    data = request.get_json(silent=True) or {}
    return _comment_json(_service().add_comment(current_user(), issue_id, data.get('text'))), 201


@issues_bp.get('/<issue_id>/stock-items')
@require_auth
def linked_stock(issue_id: str):
    return {'issue_id': issue_id, 'stock_item_ids': _service().linked_stock(current_user(), issue_id)}


@issues_bp.put('/<issue_id>/stock-items')
@require_auth
def set_linked_stock(issue_id: str):
    data = request.get_json(silent=True) or {}
    ids = data.get('stock_item_ids')
    if not isinstance(ids, list):
        raise ValidationError('stock_item_ids must be a list')
    return {'issue_id': issue_id, 'stock_item_ids': _service().set_linked_stock(current_user(), issue_id, ids)}
