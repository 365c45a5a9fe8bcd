"""Route guard: decides whether a view path may render for a user.

Rules map path patterns (``*`` matches exactly one segment) to the roles
and/or permissions required plus the fallback path to send refused users to.
The most specific matching rule wins. Paths with no rule are public.

A decision never redirects a path to itself; such a case renders instead.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from itdesk.constants.permissions import Permission, Role, STAFF_ROLES
from itdesk.services import policy
from itdesk.services.policy import UserProfile

ALLOW = 'allow'
REDIRECT = 'redirect'
PENDING = 'pending'


@dataclass(frozen=True)
class RouteRule:
    pattern: str
    permissions: Tuple[Permission, ...] = ()
    roles: Tuple[Role, ...] = ()
    fallback: str = '/dashboard'
    reason: str = "You don't have permission to view this page."

    @property
    def segments(self) -> Tuple[str, ...]:
        return _segments(self.pattern)

    def matches(self, path_segments: Sequence[str]) -> bool:
        mine = self.segments
        if len(mine) != len(path_segments):
            return False
        return all(a == '*' or a == b for a, b in zip(mine, path_segments))

    def specificity(self) -> Tuple[int, int]:
        literal = sum(1 for s in self.segments if s != '*')
        return literal, len(self.segments)

    def admits(self, user: UserProfile) -> bool:
        if self.permissions and not policy.has_permission(user, self.permissions):
            return False
        if self.roles and not policy.has_role(user, self.roles):
            return False
        return True


@dataclass(frozen=True)
class GuardDecision:
    kind: str
    target: Optional[str] = None
    reason: Optional[str] = None
    next_path: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.kind == ALLOW

    def to_json(self):
        return {'decision': self.kind, 'target': self.target, 'reason': self.reason, 'next': self.next_path}


DEFAULT_RULES: Tuple[RouteRule, ...] = (
    RouteRule('/dashboard'),
    RouteRule('/issues'),
    RouteRule('/issues/new'),
    RouteRule('/issues/*'),
    RouteRule('/purchase-requests'),
    RouteRule('/knowledge'),
    RouteRule('/stock', roles=STAFF_ROLES,
              reason="You don't have access to the stock inventory."),
    RouteRule('/stock/*', roles=STAFF_ROLES,
              reason="You don't have access to the stock inventory."),
    RouteRule('/stock/new', permissions=(Permission.CREATE_STOCK,), fallback='/stock',
              reason="You don't have permission to add stock items."),
    RouteRule('/stock/*/edit', permissions=(Permission.EDIT_STOCK,), fallback='/stock',
              reason="You don't have permission to edit stock items."),
    RouteRule('/users', permissions=(Permission.MANAGE_USERS,),
              reason="You don't have permission to manage users."),
    RouteRule('/users/*', permissions=(Permission.MANAGE_USERS,),
              reason="You don't have permission to manage users."),
    RouteRule('/users/*/edit', permissions=(Permission.MANAGE_USERS,),
              reason="You don't have permission to edit users."),
    RouteRule('/reports', permissions=(Permission.VIEW_REPORTS,),
              reason="You don't have permission to view reports."),
)


def _segments(path: str) -> Tuple[str, ...]:
    path = (path or '/').split('?', 1)[0].split('#', 1)[0]
    return tuple(s for s in path.split('/') if s)


def normalize_path(path: str) -> str:
    return '/' + '/'.join(_segments(path))


class RouteGuard:
    def __init__(self, rules: Iterable[RouteRule] = DEFAULT_RULES, login_path: str = '/',
                 home_path: str = '/dashboard'):
        self.rules = tuple(rules)
        self.login_path = normalize_path(login_path)
        self.home_path = normalize_path(home_path)

    def rule_for(self, path: str) -> Optional[RouteRule]:
        segs = _segments(path)
        candidates = [r for r in self.rules if r.matches(segs)]
        if not candidates:
            return None
        return max(candidates, key=RouteRule.specificity)

    def _redirect(self, path: str, target: str, reason: Optional[str] = None,
                  next_path: Optional[str] = None) -> GuardDecision:
        if normalize_path(target) == path:
            return GuardDecision(ALLOW)
        return GuardDecision(REDIRECT, target=normalize_path(target), reason=reason, next_path=next_path)

    def authorize(self, path: str, user: Optional[UserProfile], loading: bool = False) -> GuardDecision:
        path = normalize_path(path)
        if loading:
            return GuardDecision(PENDING)
        if path == self.login_path:
            if user is not None:
                return self._redirect(path, self.home_path)
            return GuardDecision(ALLOW)
        rule = self.rule_for(path)
        if rule is None:
            return GuardDecision(ALLOW)
        if user is None:
            return self._redirect(path, self.login_path, 'Please log in to continue.', next_path=path)
        if rule.admits(user):
            return GuardDecision(ALLOW)
        return self._redirect(path, rule.fallback, rule.reason)


def authorize(path: str, user: Optional[UserProfile], loading: bool = False, login_path: str = '/') -> GuardDecision:
    return RouteGuard(login_path=login_path).authorize(path, user, loading=loading)
