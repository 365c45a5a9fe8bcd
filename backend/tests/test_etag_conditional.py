from itdesk.constants.permissions import Role
from tests.test_lifecycle_helpers import seed_user_with_perms, create_resource_and_assert


def test_etag_conditional_issues(client, app_instance):
    _, headers = seed_user_with_perms(app_instance, Role.USER)
    create_resource_and_assert(client, '/issues', {'title': 'ETag', 'description': 'd', 'type': 'network'}, headers)
    first = client.get('/issues?limit=5', headers=headers)
    assert first.status_code == 200
    etag = first.headers.get('ETag')
    assert etag
    # Conditional request
    second = client.get('/issues?limit=5', headers={**headers, 'If-None-Match': etag})
    assert second.status_code == 304
    assert second.headers.get('ETag') == etag
    # If-Modified-Since should also 304 when using Last-Modified from first response
    lm = first.headers.get('Last-Modified')
    assert lm
    third = client.get('/issues?limit=5', headers={**headers, 'If-Modified-Since': lm})
    assert third.status_code == 304


def test_etag_changes_after_write(client, app_instance):
    _, headers = seed_user_with_perms(app_instance, Role.USER)
    issue = create_resource_and_assert(client, '/issues', {'title': 'Before', 'description': 'd', 'type': 'network'}, headers)
    etag = client.get('/issues', headers=headers).headers['ETag']
    create_resource_and_assert(client, '/issues', {'title': 'After', 'description': 'd', 'type': 'network'}, headers)
    resp = client.get('/issues', headers={**headers, 'If-None-Match': etag})
    assert resp.status_code == 200
    assert issue['id'] in [i['id'] for i in resp.get_json()['data']]


def test_pagination_meta(client, app_instance):
    _, headers = seed_user_with_perms(app_instance, Role.USER)
    for n in range(3):
        create_resource_and_assert(client, '/issues', {'title': f'P{n}', 'description': 'd', 'type': 'software'}, headers)
    body = client.get('/issues?limit=2&offset=1', headers=headers).get_json()
    assert body['pagination'] == {'total': 3, 'limit': 2, 'offset': 1, 'returned': 2}
    assert client.get('/issues?limit=abc', headers=headers).status_code == 400
    assert client.get('/issues?limit=5000', headers=headers).get_json()['pagination']['limit'] == 200
