import pytest

from itdesk.constants.permissions import Permission, Role, parse_role, parse_permissions
from itdesk.errors import PermissionDeniedError
from itdesk.services.policy import UserProfile, hydrate_user, has_role, has_permission, assert_permission


def _user(role=Role.USER, perms=()):
    return UserProfile(id='u1', name='U', email='u@test.local', role=role, permissions=frozenset(perms))


@pytest.mark.parametrize('perm', list(Permission))
def test_admin_bypasses_every_permission_even_with_empty_set(perm):
    assert has_permission(_user(Role.ADMIN), perm) is True


def test_non_admin_permission_membership():
    held = {Permission.CREATE_ISSUE, Permission.VIEW_REPORTS}
    user = _user(Role.EMPLOYEE, held)
    for perm in Permission:
        assert has_permission(user, perm) == (perm in held)


def test_permission_list_uses_or_semantics():
    user = _user(Role.USER, {Permission.EDIT_STOCK})
    assert has_permission(user, [Permission.CREATE_STOCK, Permission.EDIT_STOCK])
    assert not has_permission(user, [Permission.CREATE_STOCK, Permission.DELETE_STOCK])


def test_empty_permissions_only_admin_passes():
    assert not has_permission(_user(Role.EMPLOYEE), Permission.CREATE_ISSUE)
    assert not has_permission(_user(Role.USER), 'view_reports')


def test_null_user_is_never_authorized():
    assert has_permission(None, Permission.VIEW_REPORTS) is False
    assert has_role(None, Role.ADMIN) is False


def test_string_codes_are_accepted_and_unknown_never_match():
    user = _user(Role.USER, {Permission.VIEW_REPORTS})
    assert has_permission(user, 'view_reports')
    assert not has_permission(user, 'view_everything')


def test_has_role_single_and_list():
    emp = _user(Role.EMPLOYEE)
    assert has_role(emp, Role.EMPLOYEE)
    assert has_role(emp, ['admin', 'employee'])
    assert not has_role(emp, 'admin')


def test_unknown_role_string_never_matches():
    assert not has_role(_user(Role.USER), 'superuser')
    assert not has_role(_user(Role.USER), 'use')


def test_hydrate_drops_unknown_values():
    row = {
        'id': 'x', 'name': 'X', 'email': 'x@test.local',
        'role': 'root', 'permissions': ['create_issue', 'fly', None],
    }
    user = hydrate_user(row)
    assert user.role is Role.USER
    assert user.permissions == frozenset({Permission.CREATE_ISSUE})


def test_parse_helpers():
    assert parse_role('admin') is Role.ADMIN
    assert parse_role(None) is Role.USER
    assert parse_permissions(None) == frozenset()


def test_assert_permission_raises():
    with pytest.raises(PermissionDeniedError):
        assert_permission(_user(), Permission.MANAGE_USERS)
    assert_permission(_user(Role.ADMIN), Permission.MANAGE_USERS)


def test_profile_to_json_is_sorted_and_plain():
    body = _user(Role.EMPLOYEE, {Permission.VIEW_REPORTS, Permission.CREATE_ISSUE}).to_json()
    assert body['role'] == 'employee'
    assert body['permissions'] == ['create_issue', 'view_reports']
