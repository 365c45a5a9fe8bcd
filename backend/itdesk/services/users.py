"""User administration (role, permissions, descriptive fields)."""
from __future__ import annotations
import logging
from typing import Dict, List

from itdesk.constants.permissions import Permission, Role, STAFF_ROLES
from itdesk.errors import AlreadyExistsError, IntegrityViolation, NotFoundError, ValidationError
from itdesk.services.session import hash_password, normalize_email
from itdesk.utils.validation import pick, required_str

log = logging.getLogger(__name__)

PROFILE_FIELDS = ('name', 'department', 'company', 'site', 'phone_number', 'avatar')


def validate_role(value) -> str:
    try:
        return Role(value).value
    except ValueError:
        raise ValidationError(f'unknown role {value!r}')


def validate_permissions(values) -> List[str]:
    """Strict on write: every code must belong to the closed set."""
    if values is None:
        return []
    if isinstance(values, str) or not isinstance(values, (list, tuple, set)):
        raise ValidationError('permissions must be a list')
    unknown = []
    out = []
    for v in values:
        try:
            code = Permission(v).value
        except ValueError:
            unknown.append(str(v))
            continue
        if code not in out:
            out.append(code)
    if unknown:
        raise ValidationError(f"unknown permission(s): {', '.join(sorted(unknown))}")
    return sorted(out)


class UserAdmin:
    def __init__(self, store, email_normalizer=normalize_email):
        self.store = store
        self.normalize_email = email_normalizer

    def list(self) -> List[dict]:
        return self.store.select('custom_users', ordering=['name', 'id'])

    def get(self, user_id: str) -> dict:
        row = self.store.select_one('custom_users', {'id': user_id})
        if row is None:
            raise NotFoundError('user not found')
        return row

    def assignable(self) -> List[dict]:
        return self.store.select(
            'custom_users',
            filters={'role': ('in', [r.value for r in STAFF_ROLES])},
            ordering=['name', 'id'],
        )

    def create(self, data: Dict, created_by: str = None) -> dict:
        email = self.normalize_email(data.get('email'))
        if not email or '@' not in email:
            raise ValidationError('valid email required')
        name = required_str(data.get('name'), 'name')
        if not data.get('password') or not isinstance(data['password'], str):
            raise ValidationError('password required')
        row = {k: data.get(k) for k in PROFILE_FIELDS if k in data}
        row.update({
            'email': email,
            'name': name,
            'password_hash': hash_password(data['password']),
            'role': validate_role(data.get('role', Role.USER.value)),
            'permissions': validate_permissions(data.get('permissions')),
        })
        if self.store.select_one('custom_users', {'email': email}) is not None:
            raise AlreadyExistsError('an account with that email already exists')
        try:
            created = self.store.insert('custom_users', row)
        except IntegrityViolation as exc:
            raise AlreadyExistsError('an account with that email already exists') from exc
        log.info('user %s created by %s with role %s', created['id'], created_by, created['role'])
        return created

    def update(self, user_id: str, data: Dict, updated_by: str = None) -> dict:
        self.get(user_id)
        data = pick(data, PROFILE_FIELDS + ('role', 'permissions', 'password'))
        patch = {k: data[k] for k in PROFILE_FIELDS if k in data}
        if 'name' in patch:
            patch['name'] = required_str(patch['name'], 'name')
        if 'role' in data:
            patch['role'] = validate_role(data['role'])
        if 'permissions' in data:
            patch['permissions'] = validate_permissions(data['permissions'])
        if data.get('password'):
            if not isinstance(data['password'], str):
                raise ValidationError('password must be a string')
            patch['password_hash'] = hash_password(data['password'])
        if not patch:
            return self.get(user_id)
        updated = self.store.update_one('custom_users', patch, {'id': user_id})
        log.info('user %s updated by %s (%s)', user_id, updated_by, ', '.join(sorted(k for k in patch if k != 'password_hash')))
        return updated
