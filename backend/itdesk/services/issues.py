"""Issue tracking: submission, visibility, lifecycle, assignment, comments."""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from itdesk.constants.permissions import Permission, Role, STAFF_ROLES
from itdesk.errors import NotFoundError, PermissionDeniedError, ValidationError, InvalidTransitionError
from itdesk.models.issues import Issue
from itdesk.services import policy
from itdesk.services.policy import UserProfile
from itdesk.utils.filters import build_filters
from itdesk.utils.fsm import TransitionValidator
from itdesk.utils.timestamps import utcnow
from itdesk.utils.validation import pick, require_fields, validate_status

log = logging.getLogger(__name__)

ISSUE_FSM = TransitionValidator({
    Issue.STATUS_SUBMITTED: {Issue.STATUS_IN_PROGRESS, Issue.STATUS_ESCALATED},
    Issue.STATUS_IN_PROGRESS: {Issue.STATUS_RESOLVED, Issue.STATUS_ESCALATED},
    Issue.STATUS_ESCALATED: {Issue.STATUS_IN_PROGRESS, Issue.STATUS_RESOLVED},
    Issue.STATUS_RESOLVED: set(),
})

EDITABLE_FIELDS = ('title', 'description', 'severity', 'type')

LIST_FILTERS = {
    'status': {'validate': lambda v: v in Issue.ALL_STATUSES},
    'type': {'validate': lambda v: v in Issue.TYPES},
    'severity': {'validate': lambda v: v in Issue.SEVERITIES},
}

# any of these lets a user look at issues they neither submitted nor own
_OVERSIGHT = (Permission.EDIT_ISSUE, Permission.ASSIGN_ISSUE, Permission.RESOLVE_ISSUE)


def _is_assignee(user: UserProfile, issue: dict) -> bool:
    return issue.get('assigned_to') is not None and issue['assigned_to'] == user.id


def _clean(data: Dict, partial: bool) -> Dict:
    fields = {k: data[k] for k in EDITABLE_FIELDS if k in data}
    if not partial:
        require_fields(fields, 'title', 'description', 'type')
        fields.setdefault('severity', 'medium')
    for key in ('title', 'description'):
        if key in fields:
            if not isinstance(fields[key], str) or not fields[key].strip():
                raise ValidationError(f'{key} required')
            fields[key] = fields[key].strip()
    if 'severity' in fields:
        validate_status(fields['severity'], Issue.SEVERITIES, 'severity')
    if 'type' in fields:
        validate_status(fields['type'], Issue.TYPES, 'type')
    return fields


class IssueService:
    def __init__(self, store, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    # ---- reads -----------------------------------------------------------
    def _load(self, issue_id: str) -> dict:
        issue = self.store.select_one('issues', {'id': issue_id})
        if issue is None:
            raise NotFoundError('issue not found')
        return issue

    def can_view(self, user: UserProfile, issue: dict) -> bool:
        return (
            user.is_admin
            or issue['submitted_by'] == user.id
            or _is_assignee(user, issue)
            or policy.has_permission(user, _OVERSIGHT)
        )

    def get(self, user: UserProfile, issue_id: str) -> dict:
        issue = self._load(issue_id)
        if not self.can_view(user, issue):
            raise PermissionDeniedError('Not allowed to view this issue')
        return issue

    def list_for(self, user: UserProfile, params: Optional[Mapping] = None,
                 ordering: Iterable[str] = ('-created_at', 'id')) -> List[dict]:
        """Admins see everything, employees what is assigned to them, users what they submitted.

        ``params`` are query-string values: ``status``, ``type``, ``severity`` and a free-text ``search``.
        """
        params = params or {}
        filters = build_filters(LIST_FILTERS, params)
        search = params.get('search')
        if user.role is Role.EMPLOYEE:
            filters['assigned_to'] = user.id
        elif user.role is not Role.ADMIN:
            filters['submitted_by'] = user.id
        rows = self.store.select('issues', filters=filters, ordering=list(ordering))
        if search:
            needle = search.strip().lower()
            rows = [r for r in rows if needle in f"{r['title']}\n{r['description']}".lower()]
        return rows

    # ---- writes ----------------------------------------------------------
    def create(self, user: UserProfile, data: Dict) -> dict:
        fields = _clean(data, partial=False)
        submitter = data.get('submitted_by') or user.id
        if submitter != user.id:
            policy.assert_permission(user, Permission.CREATE_ISSUE)
            if self.store.select_one('custom_users', {'id': submitter}) is None:
                raise NotFoundError('submitting user not found')
        now = self.clock()
        issue = self.store.insert('issues', {
            **fields,
            'submitted_by': submitter,
            'status': Issue.STATUS_SUBMITTED,
            'created_at': now,
            'updated_at': now,
        })
        log.info('issue %s submitted by %s for %s', issue['id'], user.id, submitter)
        return issue

    def update(self, user: UserProfile, issue_id: str, data: Dict) -> dict:
        issue = self._load(issue_id)
        own_open = issue['submitted_by'] == user.id and issue['status'] == Issue.STATUS_SUBMITTED
        if not (own_open or policy.has_permission(user, Permission.EDIT_ISSUE)):
            raise PermissionDeniedError('Missing permission')
        fields = _clean(pick(data, EDITABLE_FIELDS), partial=True)
        if not fields:
            return issue
        fields['updated_at'] = self.clock()
        return self.store.update_one('issues', fields, {'id': issue_id})

    def change_status(self, user: UserProfile, issue_id: str, status: str) -> dict:
        issue = self._load(issue_id)
        validate_status(status, Issue.ALL_STATUSES)
        needed = Permission.RESOLVE_ISSUE if status == Issue.STATUS_RESOLVED else Permission.EDIT_ISSUE
        if not (_is_assignee(user, issue) or policy.has_permission(user, needed)):
            raise PermissionDeniedError('Missing permission')
        ISSUE_FSM.assert_can_transition(issue['status'], status)
        now = self.clock()
        patch = {'status': status, 'updated_at': now}
        if status == Issue.STATUS_RESOLVED:
            patch['resolved_at'] = now
        updated = self.store.update_one('issues', patch, {'id': issue_id, 'status': issue['status']})
        if updated is None:
            raise InvalidTransitionError('issue status changed concurrently')
        log.info('issue %s %s -> %s by %s', issue_id, issue['status'], status, user.id)
        return updated

    def assign(self, user: UserProfile, issue_id: str, assignee_id: str) -> dict:
        policy.assert_permission(user, Permission.ASSIGN_ISSUE)
        issue = self._load(issue_id)
        if ISSUE_FSM.is_terminal(issue['status']):
            raise InvalidTransitionError('cannot assign a resolved issue')
        row = self.store.select_one('custom_users', {'id': assignee_id}) if assignee_id else None
        if row is None:
            raise NotFoundError('assignee not found')
        if not policy.has_role(policy.hydrate_user(row), STAFF_ROLES):
            raise ValidationError('issues can only be assigned to employees or admins')
        patch = {'assigned_to': assignee_id, 'updated_at': self.clock()}
        if issue['status'] == Issue.STATUS_SUBMITTED:
            patch['status'] = Issue.STATUS_IN_PROGRESS
        updated = self.store.update_one('issues', patch, {'id': issue_id})
        log.info('issue %s assigned to %s by %s', issue_id, assignee_id, user.id)
        return updated

    # ---- comments --------------------------------------------------------
    def comments(self, user: UserProfile, issue_id: str) -> List[dict]:
        self.get(user, issue_id)
        return self.store.select('issue_comments', filters={'issue_id': issue_id}, ordering=['created_at', 'id'])

    def add_comment(self, user: UserProfile, issue_id: str, text: str) -> dict:
        issue = self._load(issue_id)
        allowed = (
            issue['submitted_by'] == user.id
            or _is_assignee(user, issue)
            or policy.has_permission(user, Permission.EDIT_ISSUE)
        )
        if not allowed:
            raise PermissionDeniedError('Not allowed to comment on this issue')
        if not isinstance(text, str) or not text.strip():
            raise ValidationError('text required')
        now = self.clock()
        with self.store.transaction():
            comment = self.store.insert('issue_comments', {
                'issue_id': issue_id, 'user_id': user.id, 'text': text.strip(), 'created_at': now,
            })
            self.store.update('issues', {'updated_at': now}, {'id': issue_id})
        return comment

    # ---- linked stock ----------------------------------------------------
    def linked_stock(self, user: UserProfile, issue_id: str) -> List[str]:
        self.get(user, issue_id)
        rows = self.store.select('issue_stock_items', filters={'issue_id': issue_id}, ordering=['stock_item_id'])
        return [r['stock_item_id'] for r in rows]

    def set_linked_stock(self, user: UserProfile, issue_id: str, stock_item_ids: Iterable[str]) -> List[str]:
        issue = self._load(issue_id)
        if not (_is_assignee(user, issue) or policy.has_permission(user, Permission.EDIT_ISSUE)):
            raise PermissionDeniedError('Missing permission')
        wanted = sorted(set(stock_item_ids or ()))
        if wanted:
            found = self.store.select('stock_items', columns=['id'], filters={'id': ('in', wanted)})
            missing = set(wanted) - {r['id'] for r in found}
            if missing:
                raise NotFoundError(f"stock item(s) not found: {', '.join(sorted(missing))}")
        with self.store.transaction():
            self.store.delete('issue_stock_items', {'issue_id': issue_id})
            for item_id in wanted:
                self.store.insert('issue_stock_items', {'issue_id': issue_id, 'stock_item_id': item_id})
            self.store.update('issues', {'updated_at': self.clock()}, {'id': issue_id})
        return wanted
