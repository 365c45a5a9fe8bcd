from itdesk import get_store, is_token_revoked, revoke_token, revoked_tokens
from itdesk.constants.permissions import Role
from tests.test_utils_seed import ensure_user, unique_email


def _login(client, email, password='pw'):
    return client.post('/auth/login', json={'email': email, 'password': password})


def test_login_and_me(client):
    email = unique_email('me')
    ensure_user(get_store(), email=email, role=Role.EMPLOYEE, permissions=['view_reports'])

    resp = _login(client, email)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    token = body['access_token']
    assert body['user']['role'] == 'employee'
    assert body['notices'][0]['title'] == 'Logged in successfully'

    me = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    assert me.get_json()['user'] == body['user']


def test_login_failures(client):
    email = unique_email('bad')
    ensure_user(get_store(), email=email)
    resp = _login(client, email, 'wrong')
    assert resp.status_code == 401
    assert resp.get_json()['error']['title'] == 'Invalid Credentials'
    assert _login(client, unique_email('ghost')).status_code == 404
    assert client.post('/auth/login', json={}).status_code == 400


def test_signup_then_duplicate(client):
    email = unique_email('signup')
    resp = client.post('/auth/signup', json={'email': email, 'password': 'pw', 'name': 'New'})
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['user']['role'] == 'user'
    assert body['user']['permissions'] == []
    assert body['access_token']
    dup = client.post('/auth/signup', json={'email': email.upper(), 'password': 'x', 'name': 'Again'})
    assert dup.status_code == 409
    assert len(get_store().select('custom_users', filters={'email': email})) == 1


def test_logout_revokes_token(client):
    email = unique_email('logout')
    ensure_user(get_store(), email=email)
    token = _login(client, email).get_json()['access_token']
    headers = {'Authorization': f'Bearer {token}'}
    assert client.post('/auth/logout', headers=headers).status_code == 200
    assert client.get('/auth/me', headers=headers).status_code == 401


def test_me_requires_token(client):
    assert client.get('/auth/me').status_code == 401


def test_demo_login_uses_domain_rewrite(client):
    store = get_store()
    if store.select_one('custom_users', {'email': 'john@gmail.com'}) is None:
        ensure_user(store, email='john@gmail.com', role=Role.EMPLOYEE, password='password')
    resp = client.post('/auth/demo', json={'email': 'john@example.com'})
    assert resp.status_code == 200
    assert resp.get_json()['user']['email'] == 'john@gmail.com'


def test_demo_login_missing_account_is_soft(client):
    resp = client.post('/auth/demo', json={'email': 'michael@example.com'})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['user'] is None
    assert body['notices'][-1]['title'] == 'Demo Account Info'
    assert client.post('/auth/demo', json={'email': 'x@y.z'}).status_code == 400


def test_authorize_endpoint(client, app_instance):
    resp = client.get('/auth/authorize?path=/users')
    assert resp.get_json() == {'decision': 'redirect', 'target': '/', 'reason': 'Please log in to continue.', 'next': '/users'}
    email = unique_email('guard')
    ensure_user(get_store(), email=email, role=Role.EMPLOYEE)
    token = _login(client, email).get_json()['access_token']
    body = client.get('/auth/authorize?path=/stock', headers={'Authorization': f'Bearer {token}'}).get_json()
    assert body['decision'] == 'allow'
    body = client.get('/auth/authorize?path=/users', headers={'Authorization': f'Bearer {token}'}).get_json()
    assert (body['decision'], body['target']) == ('redirect', '/dashboard')
    assert client.get('/auth/authorize').status_code == 400


def test_non_string_fields_are_rejected_not_crashing(client):
    assert client.post('/auth/login', json={'email': 5, 'password': 'pw'}).status_code == 400
    assert client.post('/auth/login', json={'email': unique_email('t'), 'password': 123}).status_code == 400
    resp = client.post('/auth/signup', json={'email': unique_email('t'), 'password': 'pw', 'name': 7})
    assert resp.status_code == 400
    assert resp.get_json()['error']['title'] == 'Bad Request'
    assert client.post('/auth/signup', json={'email': ['a@b.c'], 'password': 'pw', 'name': 'N'}).status_code == 400
    assert client.post('/auth/demo', json={'email': ['admin@example.com']}).status_code == 400


def test_blocklist_drops_expired_entries():
    revoke_token('expired-jti', exp=1000.0)
    revoke_token('live-jti', exp=5000.0)
    revoke_token('no-exp-jti')
    assert is_token_revoked('live-jti', now=2000.0) is True
    assert 'expired-jti' not in revoked_tokens
    assert is_token_revoked('expired-jti', now=2000.0) is False
    assert is_token_revoked('no-exp-jti', now=2000.0) is True
    for jti in ('live-jti', 'no-exp-jti'):
        revoked_tokens.pop(jti, None)
