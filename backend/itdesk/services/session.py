"""Session / identity lifecycle.

A ``SessionContext`` owns the single authenticated-user slot for one caller.
It starts in ``LOADING``; ``start()`` resolves the durable identifier (the
user id kept by an ``IdentityStore``) back into a profile. login / signup move
it to ``AUTHENTICATED``, logout back to ``UNAUTHENTICATED``. A failed silent
refresh keeps the previous (possibly stale) profile.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from werkzeug.security import generate_password_hash, check_password_hash

from itdesk.constants.permissions import Role
from itdesk.errors import (
    AlreadyExistsError, InvalidCredentialsError, ItDeskError, NotFoundError, PermissionDeniedError,
    IntegrityViolation, ValidationError,
)
from itdesk.services import policy
from itdesk.services.policy import UserProfile
from itdesk.utils.validation import required_str

log = logging.getLogger(__name__)


class SessionState(str, Enum):
    LOADING = 'loading'
    UNAUTHENTICATED = 'unauthenticated'
    AUTHENTICATED = 'authenticated'


@dataclass(frozen=True)
class Notice:
    level: str
    title: str
    detail: str = ''

    def to_json(self):
        return {'level': self.level, 'title': self.title, 'detail': self.detail}


class MemoryIdentityStore:
    """Keeps the durable identifier in memory (scripts, tests)."""

    def __init__(self, user_id: Optional[str] = None):
        self.user_id = user_id

    def load(self) -> Optional[str]:
        return self.user_id

    def save(self, user_id: str) -> None:
        self.user_id = user_id

    def clear(self) -> None:
        self.user_id = None


# ---- email normalisation hooks ----------------------------------------------
def normalize_email(email: str) -> str:
    if email is None:
        return ''
    if not isinstance(email, str):
        raise ValidationError('email must be a string')
    return email.strip().lower()


def parse_domain_rewrites(raw) -> Dict[str, str]:
    """``'example.com=gmail.com, a.org=b.org'`` -> ``{'example.com': 'gmail.com', ...}``."""
    if isinstance(raw, dict):
        return {k.lower(): v.lower() for k, v in raw.items()}
    out = {}
    for part in (raw or '').split(','):
        if '=' not in part:
            continue
        src, dst = part.split('=', 1)
        if src.strip() and dst.strip():
            out[src.strip().lower()] = dst.strip().lower()
    return out


def domain_rewriting_normalizer(rewrites: Dict[str, str]) -> Callable[[str], str]:
    def normalizer(email: str) -> str:
        email = normalize_email(email)
        local, sep, domain = email.rpartition('@')
        if sep and domain in rewrites:
            return f'{local}@{rewrites[domain]}'
        return email
    return normalizer


# ---- credentials ---------------------------------------------------------------
def hash_password(raw: str) -> str:
    return generate_password_hash(raw)


def verify_password(password_hash: Optional[str], raw: str) -> bool:
    if not password_hash or not isinstance(raw, str):
        return False
    try:
        return check_password_hash(password_hash, raw)
    except ValueError:
        # unparseable stored hash (e.g. a foreign placeholder)
        return False


class SessionContext:
    def __init__(self, store, identity=None, email_normalizer: Callable[[str], str] = normalize_email,
                 notify: Optional[Callable[[Notice], None]] = None):
        self.store = store
        self.identity = identity if identity is not None else MemoryIdentityStore()
        self.normalize_email = email_normalizer
        self.notices: List[Notice] = []
        self._notify = notify
        self.user: Optional[UserProfile] = None
        self.state = SessionState.LOADING

    # ---- notifications ---------------------------------------------------
    def notify(self, level: str, title: str, detail: str = '') -> None:
        notice = Notice(level, title, detail)
        self.notices.append(notice)
        if self._notify:
            self._notify(notice)

    def _set_user(self, user: Optional[UserProfile]) -> None:
        self.user = user
        self.state = SessionState.AUTHENTICATED if user else SessionState.UNAUTHENTICATED

    # ---- lifecycle -------------------------------------------------------
    def start(self) -> Optional[UserProfile]:
        """Resolve the durable identifier into a profile (``LOADING`` -> resolved)."""
        user_id = self.identity.load()
        if not user_id:
            self._set_user(None)
            return None
        row = self.store.select_one('custom_users', {'id': user_id})
        if row is None:
            log.info('durable identifier %s no longer resolves; clearing', user_id)
            self.identity.clear()
            self._set_user(None)
            return None
        self._set_user(policy.hydrate_user(row))
        return self.user

    @property
    def is_loading(self) -> bool:
        return self.state is SessionState.LOADING

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def login(self, email: str, password: str) -> UserProfile:
        normalized = email
        try:
            normalized = self.normalize_email(email)
            if not normalized or not password:
                raise ValidationError('email & password required')
            if not isinstance(password, str):
                raise ValidationError('password must be a string')
            row = self.store.select_one('custom_users', {'email': normalized})
            if row is None:
                raise NotFoundError('no account for that email')
            if not verify_password(row.get('password_hash'), password):
                raise InvalidCredentialsError('invalid credentials')
        except ItDeskError as exc:
            log.info('login failed for %s: %s', normalized, exc.title)
            self.notify('error', 'Login failed', exc.detail)
            raise
        user = policy.hydrate_user(row)
        self.identity.save(user.id)
        self._set_user(user)
        log.info('user %s logged in', user.id)
        self.notify('success', 'Logged in successfully', 'Welcome back!')
        return user

    def signup(self, email: str, password: str, name: str) -> UserProfile:
        normalized = email
        try:
            normalized = self.normalize_email(email)
            if not normalized or '@' not in normalized:
                raise ValidationError('valid email required')
            if not password or not isinstance(password, str):
                raise ValidationError('password required')
            name = required_str(name, 'name')
            if self.store.select_one('custom_users', {'email': normalized}) is not None:
                raise AlreadyExistsError('an account with that email already exists')
            try:
                row = self.store.insert('custom_users', {
                    'email': normalized,
                    'name': name,
                    'password_hash': hash_password(password),
                    'role': Role.USER.value,
                    'permissions': [],
                })
            except IntegrityViolation as exc:
                # lost a race against a concurrent signup for the same email
                raise AlreadyExistsError('an account with that email already exists') from exc
        except ItDeskError as exc:
            log.info('signup failed for %s: %s', normalized, exc.title)
            self.notify('error', 'Signup failed', exc.detail)
            raise
        user = policy.hydrate_user(row)
        self.identity.save(user.id)
        self._set_user(user)
        log.info('user %s signed up', user.id)
        self.notify('success', 'Account created', 'You have successfully signed up.')
        return user

    def logout(self) -> None:
        user_id = self.user.id if self.user else None
        self.identity.clear()
        self._set_user(None)
        log.info('user %s logged out', user_id)
        self.notify('success', 'Logged out', 'You have been logged out successfully.')

    def refresh_profile(self) -> Optional[UserProfile]:
        """Best-effort re-read of the current profile; failures leave the old one in place."""
        user_id = self.identity.load()
        if not user_id:
            return self.user
        try:
            row = self.store.select_one('custom_users', {'id': user_id})
        except ItDeskError as exc:
            log.warning('profile refresh for %s failed: %s', user_id, exc.detail)
            return self.user
        if row is None:
            log.warning('profile refresh for %s found no record; keeping cached profile', user_id)
            return self.user
        self._set_user(policy.hydrate_user(row))
        return self.user

    def try_demo_account(self, email: str, password: str) -> Optional[UserProfile]:
        """Try a demo login; never raises."""
        try:
            return self.login(email, password)
        except ItDeskError as exc:
            log.info('demo account %s not usable: %s', email, exc.title)
            self.notify('info', 'Demo Account Info', f'Use email: {email} with password: {password} to log in.')
            return None

    # ---- authorization ---------------------------------------------------
    def has_role(self, roles) -> bool:
        return policy.has_role(self.user, roles)

    def has_permission(self, permissions) -> bool:
        return policy.has_permission(self.user, permissions)

    def require_user(self) -> UserProfile:
        if self.user is None:
            raise PermissionDeniedError('Authentication required')
        return self.user
