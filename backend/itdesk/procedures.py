"""Reporting procedures reachable through ``Datastore.call_procedure``.

Each procedure takes the datastore plus keyword args and returns a list of
row dicts. Enumerated groupings always emit every bucket, zero-filled.
"""
from __future__ import annotations
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from sqlalchemy import func, select

from itdesk.models.issues import Issue
from itdesk.utils.timestamps import utcnow, as_utc

PROCEDURES: Dict[str, Callable[..., List[dict]]] = {}


def procedure(name: str):
    def outer(fn):
        PROCEDURES[name] = fn
        return fn
    return outer


def _grouped_counts(store, column, buckets) -> List[dict]:
    rows = store.session.execute(select(column, func.count(Issue.id)).group_by(column)).all()
    counts = {key: int(n) for key, n in rows}
    return [(b, counts.get(b, 0)) for b in buckets]


def _resolution_hours(issue: dict) -> Optional[float]:
    if not issue.get('resolved_at') or not issue.get('created_at'):
        return None
    delta = as_utc(issue['resolved_at']) - as_utc(issue['created_at'])
    return max(delta.total_seconds(), 0) / 3600.0


@procedure('get_issue_stats')
def get_issue_stats(store) -> List[dict]:
    issues = store.select('issues', columns=['status', 'created_at', 'resolved_at'])
    resolved = [i for i in issues if i['status'] == Issue.STATUS_RESOLVED]
    hours = [h for h in (_resolution_hours(i) for i in resolved) if h is not None]
    return [{
        'total_issues': len(issues),
        'open_issues': len(issues) - len(resolved),
        'resolved_issues': len(resolved),
        'avg_resolution_time': round(sum(hours) / len(hours), 2) if hours else 0,
    }]


@procedure('get_issues_by_status')
def get_issues_by_status(store) -> List[dict]:
    return [{'status': s, 'count': n} for s, n in _grouped_counts(store, Issue.status, Issue.ALL_STATUSES)]


@procedure('get_issues_by_type')
def get_issues_by_type(store) -> List[dict]:
    return [{'type': t, 'count': n} for t, n in _grouped_counts(store, Issue.type, Issue.TYPES)]


@procedure('get_issues_by_month')
def get_issues_by_month(store, year: Optional[int] = None) -> List[dict]:
    year = year or utcnow().year
    counts = defaultdict(int)
    for row in store.select('issues', columns=['created_at']):
        created = as_utc(row['created_at'])
        if created.year == year:
            counts[created.month] += 1
    return [{'month': m, 'count': counts[m]} for m in range(1, 13)]


@procedure('get_resolution_time_by_week')
def get_resolution_time_by_week(store) -> List[dict]:
    by_week = defaultdict(list)
    resolved = store.select('issues', columns=['created_at', 'resolved_at'], filters={'status': Issue.STATUS_RESOLVED})
    for row in resolved:
        hours = _resolution_hours(row)
        if hours is None:
            continue
        by_week[as_utc(row['resolved_at']).isocalendar()[1]].append(hours)
    return [
        {'week_number': week, 'avg_hours': round(sum(h) / len(h), 2)}
        for week, h in sorted(by_week.items())
    ]
