from functools import wraps
from typing import Optional

from flask import current_app, g
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity, create_access_token

from itdesk import get_store, revoke_token
from itdesk.errors import InvalidCredentialsError
from itdesk.services import policy
from itdesk.services.session import (
    SessionContext, normalize_email, parse_domain_rewrites, domain_rewriting_normalizer,
)


class TokenIdentityStore:
    """Durable identifier carried by the request's bearer token.

    ``save`` issues a fresh token for the caller to hand back to the client;
    ``clear`` revokes the presented one.
    """

    def __init__(self):
        self.issued_token: Optional[str] = None
        self._user_id: Optional[str] = None
        self._resolved = False

    def load(self) -> Optional[str]:
        if not self._resolved:
            verify_jwt_in_request(optional=True)
            self._user_id = get_jwt_identity()
            self._resolved = True
        return self._user_id

    def save(self, user_id: str) -> None:
        self.issued_token = create_access_token(identity=user_id)
        self._user_id = user_id
        self._resolved = True

    def clear(self) -> None:
        verify_jwt_in_request(optional=True)
        claims = get_jwt()
        if claims.get('jti'):
            revoke_token(claims['jti'], claims.get('exp'))
        self.issued_token = None
        self._user_id = None
        self._resolved = True


def email_normalizer():
    rewrites = parse_domain_rewrites(current_app.config.get('EMAIL_DOMAIN_REWRITES'))
    return domain_rewriting_normalizer(rewrites) if rewrites else normalize_email


def current_session() -> SessionContext:
    """Per-request session resumed from the bearer token (if any)."""
    ctx = g.get('itdesk_session')
    if ctx is None:
        ctx = SessionContext(get_store(), TokenIdentityStore(), email_normalizer=email_normalizer())
        ctx.start()
        g.itdesk_session = ctx
    return ctx


def current_user():
    return current_session().user


def require_auth(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        if current_session().user is None:
            raise InvalidCredentialsError('account no longer exists')
        return fn(*args, **kwargs)
    return wrapper


def require_permission(*codes):
    """Any one of ``codes`` suffices; admins always pass."""
    def outer(fn):
        @wraps(fn)
        @require_auth
        def wrapper(*args, **kwargs):
            policy.assert_permission(current_session().user, *codes)
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_role(*roles):
    def outer(fn):
        @wraps(fn)
        @require_auth
        def wrapper(*args, **kwargs):
            policy.assert_role(current_session().user, *roles)
            return fn(*args, **kwargs)
        return wrapper
    return outer
