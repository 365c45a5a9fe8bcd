from datetime import datetime, timedelta, timezone

from itdesk.services.issues import IssueService
from itdesk.services.policy import hydrate_user
from tests.test_utils_seed import ensure_user


def _seed(store):
    admin = hydrate_user(ensure_user(store, role='admin'))
    t0 = datetime(2026, 2, 2, 8, tzinfo=timezone.utc)
    times = iter([t0, t0 + timedelta(hours=1), t0 + timedelta(hours=5), t0 + timedelta(hours=6)])
    svc = IssueService(store, clock=lambda: next(times))
    a = svc.create(admin, {'title': 'Printer', 'description': 'jam', 'type': 'hardware'})
    svc.create(admin, {'title': 'VPN', 'description': 'down', 'type': 'network'})
    svc.change_status(admin, a['id'], 'in-progress')
    svc.change_status(admin, a['id'], 'resolved')
    return a


def test_issue_stats(store):
    _seed(store)
    stats = store.call_procedure('get_issue_stats')[0]
    assert stats == {'total_issues': 2, 'open_issues': 1, 'resolved_issues': 1, 'avg_resolution_time': 6.0}


def test_by_status_and_type_zero_fill(store):
    _seed(store)
    by_status = {r['status']: r['count'] for r in store.call_procedure('get_issues_by_status')}
    assert by_status == {'submitted': 1, 'in-progress': 0, 'resolved': 1, 'escalated': 0}
    by_type = {r['type']: r['count'] for r in store.call_procedure('get_issues_by_type')}
    assert by_type == {'hardware': 1, 'software': 0, 'network': 1}


def test_by_month_has_twelve_buckets(store):
    _seed(store)
    months = store.call_procedure('get_issues_by_month', {'year': 2026})
    assert [m['month'] for m in months] == list(range(1, 13))
    assert months[1]['count'] == 2
    assert sum(m['count'] for m in store.call_procedure('get_issues_by_month', {'year': 2025})) == 0


def test_resolution_by_week(store):
    _seed(store)
    weeks = store.call_procedure('get_resolution_time_by_week')
    assert weeks == [{'week_number': 6, 'avg_hours': 6.0}]
