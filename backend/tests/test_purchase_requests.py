from itdesk.constants.permissions import Permission, Role
from tests.test_lifecycle_helpers import seed_user_with_perms, assert_transition, create_resource_and_assert

PR = {'bon_number': 'BON-17', 'bon_signer': 'K. Haddad', 'item_name': 'Label printer', 'item_quantity': 2,
      'estimated_price': 120.5}


def test_approve_then_purchase(client, app_instance):
    _, req_h = seed_user_with_perms(app_instance, Role.USER, [Permission.CREATE_PURCHASE_REQUEST])
    _, approver_h = seed_user_with_perms(app_instance, Role.EMPLOYEE, [Permission.APPROVE_PURCHASE_REQUEST])
    pr = create_resource_and_assert(client, '/purchase-requests', PR, req_h, expected_initial_status='pending')
    assert pr['item_quantity'] == 2
    base = f"/purchase-requests/{pr['id']}"
    assert_transition(client, f'{base}/purchase', approver_h, 400)
    assert_transition(client, f'{base}/approve', req_h, 403)
    assert_transition(client, f'{base}/approve', approver_h, 200, expected_body_value='approved')
    assert_transition(client, f'{base}/reject', approver_h, 403)
    assert_transition(client, f'{base}/purchase', approver_h, 200, expected_body_value='purchased')
    assert_transition(client, f'{base}/approve', approver_h, 400)


def test_reject_is_terminal(client, app_instance):
    _, req_h = seed_user_with_perms(app_instance, Role.USER, [Permission.CREATE_PURCHASE_REQUEST])
    _, admin_h = seed_user_with_perms(app_instance, Role.ADMIN)
    pr = create_resource_and_assert(client, '/purchase-requests', PR, req_h)
    base = f"/purchase-requests/{pr['id']}"
    assert_transition(client, f'{base}/reject', admin_h, 200, expected_body_value='rejected')
    assert_transition(client, f'{base}/approve', admin_h, 400)


def test_create_requires_permission_and_fields(client, app_instance):
    _, plain_h = seed_user_with_perms(app_instance, Role.USER)
    _, req_h = seed_user_with_perms(app_instance, Role.USER, [Permission.CREATE_PURCHASE_REQUEST])
    assert client.post('/purchase-requests', json=PR, headers=plain_h).status_code == 403
    assert client.post('/purchase-requests', json={'item_name': 'x'}, headers=req_h).status_code == 400
    assert client.post('/purchase-requests', json={**PR, 'item_quantity': 0}, headers=req_h).status_code == 400


def test_visibility(client, app_instance):
    _, a_h = seed_user_with_perms(app_instance, Role.USER, [Permission.CREATE_PURCHASE_REQUEST])
    _, b_h = seed_user_with_perms(app_instance, Role.USER, [Permission.CREATE_PURCHASE_REQUEST])
    _, reviewer_h = seed_user_with_perms(app_instance, Role.EMPLOYEE, [Permission.REJECT_PURCHASE_REQUEST])
    pr = create_resource_and_assert(client, '/purchase-requests', PR, a_h)
    assert [r['id'] for r in client.get('/purchase-requests', headers=a_h).get_json()['data']] == [pr['id']]
    assert client.get('/purchase-requests', headers=b_h).get_json()['data'] == []
    assert client.get(f"/purchase-requests/{pr['id']}", headers=b_h).status_code == 403
    assert client.get(f"/purchase-requests/{pr['id']}", headers=reviewer_h).status_code == 200
    ids = [r['id'] for r in client.get('/purchase-requests?status=pending&limit=200', headers=reviewer_h).get_json()['data']]
    assert pr['id'] in ids
    assert client.get('/purchase-requests/missing', headers=reviewer_h).status_code == 404


def test_reviewer_filters_by_requester(client, app_instance):
    a, a_h = seed_user_with_perms(app_instance, Role.USER, [Permission.CREATE_PURCHASE_REQUEST])
    _, b_h = seed_user_with_perms(app_instance, Role.USER, [Permission.CREATE_PURCHASE_REQUEST])
    _, reviewer_h = seed_user_with_perms(app_instance, Role.EMPLOYEE, [Permission.APPROVE_PURCHASE_REQUEST])
    mine = create_resource_and_assert(client, '/purchase-requests', PR, a_h)
    create_resource_and_assert(client, '/purchase-requests', PR, b_h)
    rows = client.get(f"/purchase-requests?requested_by={a['id']}", headers=reviewer_h).get_json()['data']
    assert [r['id'] for r in rows] == [mine['id']]
    assert client.get('/purchase-requests?status=lost', headers=reviewer_h).status_code == 400
