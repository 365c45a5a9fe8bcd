from __future__ import annotations
from flask import Blueprint, request

from itdesk import get_store
from itdesk.constants.permissions import Permission, STAFF_ROLES, PERMISSION_GROUPS
from itdesk.decorators.auth import require_permission, require_role, current_user, email_normalizer
from itdesk.services.policy import hydrate_user
from itdesk.services.users import UserAdmin
from itdesk.utils.listing import list_response

users_bp = Blueprint('users', __name__)


def _admin() -> UserAdmin:
    return UserAdmin(get_store(), email_normalizer=email_normalizer())


def _user_json(r: dict) -> dict:
    return hydrate_user(r).to_json()


@users_bp.get('')
@require_permission(Permission.MANAGE_USERS)
def list_users():
    return list_response(_admin().list(), _user_json, 'created_at')


@users_bp.get('/assignable')
@require_role(*STAFF_ROLES)
def assignable_users():
    return {'data': [{'id': r['id'], 'name': r['name'], 'role': r['role']} for r in _admin().assignable()]}


@users_bp.get('/permissions')
@require_permission(Permission.MANAGE_USERS)
def permission_catalog():
    return {'groups': {group: [p.value for p in perms] for group, perms in PERMISSION_GROUPS.items()}}


@users_bp.post('')
@require_permission(Permission.MANAGE_USERS)
def create_user():
    data = request.get_json(silent=True) or {}
    return _user_json(_admin().create(data, created_by=current_user().id)), 201


@users_bp.get('/<user_id>')
@require_permission(Permission.MANAGE_USERS)
def get_user(user_id: str):
    return _user_json(_admin().get(user_id))


@users_bp.patch('/<user_id>')
@require_permission(Permission.MANAGE_USERS)
def update_user(user_id: str):
    data = request.get_json(silent=True) or {}
    return _user_json(_admin().update(user_id, data, updated_by=current_user().id))
