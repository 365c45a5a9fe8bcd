"""Authorization predicates over a hydrated user profile.

``admin`` bypasses explicit permission checks; every other role is granted
exactly the permissions stored on the user. Lists are OR-ed: holding any one
of the given permissions (or roles) is enough.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Union

from itdesk.constants.permissions import Role, Permission, parse_role, parse_permissions
from itdesk.errors import PermissionDeniedError
from itdesk.utils.timestamps import iso

RoleArg = Union[Role, str, Iterable[Union[Role, str]]]
PermissionArg = Union[Permission, str, Iterable[Union[Permission, str]]]


@dataclass(frozen=True)
class UserProfile:
    id: str
    name: str
    email: str
    role: Role
    permissions: frozenset = field(default_factory=frozenset)
    department: Optional[str] = None
    company: Optional[str] = None
    site: Optional[str] = None
    phone_number: Optional[str] = None
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_json(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role.value,
            'permissions': sorted(p.value for p in self.permissions),
            'department': self.department,
            'company': self.company,
            'site': self.site,
            'phone_number': self.phone_number,
            'avatar': self.avatar,
            'created_at': iso(self.created_at),
        }


def hydrate_user(row: dict) -> UserProfile:
    """Build a profile from a ``custom_users`` row, dropping unknown role/permission values."""
    return UserProfile(
        id=row['id'],
        name=row.get('name') or '',
        email=row['email'],
        role=parse_role(row.get('role')),
        permissions=parse_permissions(row.get('permissions')),
        department=row.get('department'),
        company=row.get('company'),
        site=row.get('site'),
        phone_number=row.get('phone_number'),
        avatar=row.get('avatar'),
        created_at=row.get('created_at'),
    )


def _as_set(value, parse):
    if isinstance(value, (str, Role, Permission)):
        value = [value]
    out = set()
    for v in value:
        try:
            out.add(parse(v))
        except ValueError:
            # unknown codes can never match
            continue
    return out


def has_role(user: Optional[UserProfile], roles: RoleArg) -> bool:
    if user is None:
        return False
    return user.role in _as_set(roles, Role)


def has_permission(user: Optional[UserProfile], permissions: PermissionArg) -> bool:
    if user is None:
        return False
    if user.role is Role.ADMIN:
        return True
    return bool(user.permissions & _as_set(permissions, Permission))


def assert_permission(user: Optional[UserProfile], *permissions) -> None:
    if not has_permission(user, permissions):
        raise PermissionDeniedError('Missing permission')


def assert_role(user: Optional[UserProfile], *roles) -> None:
    if not has_role(user, roles):
        raise PermissionDeniedError('Role not allowed')
