"""Closed role and permission sets.

Values are the exact strings stored in ``custom_users.role`` and
``custom_users.permissions``; never rename a value, add a new member instead.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, List


class Role(str, Enum):
    ADMIN = 'admin'
    EMPLOYEE = 'employee'
    USER = 'user'


class Permission(str, Enum):
    CREATE_ISSUE = 'create_issue'
    EDIT_ISSUE = 'edit_issue'
    DELETE_ISSUE = 'delete_issue'
    ASSIGN_ISSUE = 'assign_issue'
    RESOLVE_ISSUE = 'resolve_issue'
    CREATE_STOCK = 'create_stock'
    EDIT_STOCK = 'edit_stock'
    DELETE_STOCK = 'delete_stock'
    MANAGE_STOCK_TRANSACTIONS = 'manage_stock_transactions'
    CREATE_PURCHASE_REQUEST = 'create_purchase_request'
    APPROVE_PURCHASE_REQUEST = 'approve_purchase_request'
    REJECT_PURCHASE_REQUEST = 'reject_purchase_request'
    VIEW_REPORTS = 'view_reports'
    MANAGE_USERS = 'manage_users'


LEAST_PRIVILEGED_ROLE = Role.USER
STAFF_ROLES = (Role.ADMIN, Role.EMPLOYEE)

ALL_PERMISSION_CODES: List[str] = [p.value for p in Permission]

# Grouping used by the user administration screens
PERMISSION_GROUPS: Dict[str, List[Permission]] = {
    'Issues': [
        Permission.CREATE_ISSUE, Permission.EDIT_ISSUE, Permission.DELETE_ISSUE,
        Permission.ASSIGN_ISSUE, Permission.RESOLVE_ISSUE,
    ],
    'Inventory': [
        Permission.CREATE_STOCK, Permission.EDIT_STOCK, Permission.DELETE_STOCK,
        Permission.MANAGE_STOCK_TRANSACTIONS,
    ],
    'Purchase Requests': [
        Permission.CREATE_PURCHASE_REQUEST, Permission.APPROVE_PURCHASE_REQUEST,
        Permission.REJECT_PURCHASE_REQUEST,
    ],
    'Other': [Permission.VIEW_REPORTS, Permission.MANAGE_USERS],
}


def parse_role(value) -> Role:
    """Map a stored role string to ``Role``; anything unknown becomes ``user``."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return LEAST_PRIVILEGED_ROLE


def parse_permissions(values) -> frozenset:
    """Keep only known permission codes, silently dropping the rest."""
    out = set()
    for v in values or ():
        if isinstance(v, Permission):
            out.add(v)
            continue
        try:
            out.add(Permission(v))
        except ValueError:
            continue
    return frozenset(out)
