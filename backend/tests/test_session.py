import pytest

from itdesk.constants.permissions import Role
from itdesk.errors import (
    AlreadyExistsError, DatastoreError, InvalidCredentialsError, NotFoundError, ValidationError,
)
from itdesk.services.session import (
    MemoryIdentityStore, SessionContext, SessionState, domain_rewriting_normalizer,
    hash_password, normalize_email, parse_domain_rewrites, verify_password,
)
from tests.test_utils_seed import ensure_user


def test_initial_state_is_loading_until_started(store):
    ctx = SessionContext(store)
    assert ctx.state is SessionState.LOADING
    assert ctx.start() is None
    assert ctx.state is SessionState.UNAUTHENTICATED
    assert not ctx.is_authenticated


def test_start_resolves_durable_identifier(store):
    row = ensure_user(store, email='dur@test.local', role=Role.EMPLOYEE)
    ctx = SessionContext(store, MemoryIdentityStore(row['id']))
    user = ctx.start()
    assert user.id == row['id']
    assert ctx.state is SessionState.AUTHENTICATED


def test_start_with_stale_identifier_clears_it(store):
    identity = MemoryIdentityStore('missing-id')
    ctx = SessionContext(store, identity)
    assert ctx.start() is None
    assert identity.load() is None


def test_login_then_refresh_yields_identical_user(store):
    ensure_user(store, email='round@test.local', role=Role.EMPLOYEE, permissions=['create_issue'], password='s3cret')
    ctx = SessionContext(store)
    ctx.start()
    user = ctx.login('round@test.local', 's3cret')
    assert ctx.state is SessionState.AUTHENTICATED
    assert ctx.identity.load() == user.id
    assert ctx.refresh_profile() == user


def test_login_normalizes_email(store):
    ensure_user(store, email='case@test.local', password='pw')
    ctx = SessionContext(store)
    assert ctx.login('  CASE@Test.Local ', 'pw').email == 'case@test.local'


def test_login_unknown_email_is_not_found(store):
    ctx = SessionContext(store)
    ctx.start()
    with pytest.raises(NotFoundError):
        ctx.login('nobody@test.local', 'pw')
    assert ctx.user is None
    assert ctx.notices[-1].level == 'error'


def test_login_wrong_password_leaves_state_unchanged(store):
    ensure_user(store, email='wrong@test.local', password='right')
    ctx = SessionContext(store)
    ctx.start()
    with pytest.raises(InvalidCredentialsError):
        ctx.login('wrong@test.local', 'nope')
    assert ctx.state is SessionState.UNAUTHENTICATED
    assert ctx.identity.load() is None


def test_login_requires_both_fields(store):
    with pytest.raises(ValidationError):
        SessionContext(store).login('', '')


def test_signup_twice_fails_and_keeps_one_record(store):
    ctx = SessionContext(store)
    user = ctx.signup('a@x.com', 'pw', 'A')
    assert user.role is Role.USER
    assert user.permissions == frozenset()
    with pytest.raises(AlreadyExistsError):
        SessionContext(store).signup('A@X.com', 'pw2', 'Again')
    assert len(store.select('custom_users', filters={'email': 'a@x.com'})) == 1


def test_signup_stores_a_hash_not_the_password(store):
    SessionContext(store).signup('hash@test.local', 'plain-pw', 'H')
    row = store.select_one('custom_users', {'email': 'hash@test.local'})
    assert row['password_hash'] != 'plain-pw'
    assert verify_password(row['password_hash'], 'plain-pw')


def test_logout_always_clears(store):
    ensure_user(store, email='out@test.local')
    ctx = SessionContext(store)
    ctx.login('out@test.local', 'pw')
    ctx.logout()
    assert ctx.user is None
    assert ctx.identity.load() is None
    ctx.logout()
    assert ctx.state is SessionState.UNAUTHENTICATED


def test_refresh_picks_up_changes(store):
    row = ensure_user(store, email='promo@test.local')
    ctx = SessionContext(store)
    ctx.login('promo@test.local', 'pw')
    store.update_one('custom_users', {'role': 'employee'}, {'id': row['id']})
    assert ctx.refresh_profile().role is Role.EMPLOYEE


def test_refresh_failure_keeps_stale_profile(store, monkeypatch):
    ensure_user(store, email='stale@test.local')
    ctx = SessionContext(store)
    before = ctx.login('stale@test.local', 'pw')

    def boom(*a, **k):
        raise DatastoreError('down')
    monkeypatch.setattr(store, 'select_one', boom)
    assert ctx.refresh_profile() == before
    assert ctx.state is SessionState.AUTHENTICATED


def test_refresh_without_identifier_is_noop(store):
    ctx = SessionContext(store)
    ctx.start()
    assert ctx.refresh_profile() is None


def test_demo_account_check_never_raises(store):
    ctx = SessionContext(store)
    assert ctx.try_demo_account('admin@example.com', 'password') is None
    assert ctx.notices[-1].title == 'Demo Account Info'


def test_domain_rewrite_normalizer(store):
    normalizer = domain_rewriting_normalizer(parse_domain_rewrites('example.com=gmail.com'))
    assert normalizer(' Admin@Example.com') == 'admin@gmail.com'
    assert normalizer('a@other.org') == 'a@other.org'
    ensure_user(store, email='admin@gmail.com', role=Role.ADMIN, password='password')
    ctx = SessionContext(store, email_normalizer=normalizer)
    assert ctx.login('admin@example.com', 'password').role is Role.ADMIN


def test_parse_domain_rewrites_ignores_junk():
    assert parse_domain_rewrites('a.com=b.com, junk, =x.com') == {'a.com': 'b.com'}
    assert parse_domain_rewrites('') == {}
    assert normalize_email(None) == ''


def test_session_role_and_permission_delegate(store):
    ensure_user(store, email='deleg@test.local', role=Role.EMPLOYEE, permissions=['view_reports'])
    ctx = SessionContext(store)
    assert not ctx.has_permission('view_reports')
    ctx.login('deleg@test.local', 'pw')
    assert ctx.has_permission('view_reports')
    assert ctx.has_role(['admin', 'employee'])


def test_non_string_credentials_raise_validation(store):
    ctx = SessionContext(store)
    ctx.start()
    with pytest.raises(ValidationError):
        ctx.login(42, 'pw')
    with pytest.raises(ValidationError):
        ctx.signup('n@test.local', 'pw', 7)
    assert ctx.user is None
    assert [n.title for n in ctx.notices] == ['Login failed', 'Signup failed']


def test_verify_password_rejects_non_string():
    assert verify_password(hash_password('1234'), 1234) is False
