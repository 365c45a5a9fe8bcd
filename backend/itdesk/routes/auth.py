from flask import Blueprint, request, current_app
from flask_jwt_extended import get_jwt_identity

from itdesk.constants.demo import DEMO_ACCOUNTS, DEMO_PASSWORD
from itdesk.decorators.auth import current_session, require_auth
from itdesk.errors import ValidationError
from itdesk.services.guard import RouteGuard

auth_bp = Blueprint('auth', __name__)


def _session_payload(ctx):
    return {
        'access_token': ctx.identity.issued_token,
        'user': ctx.user.to_json(),
        'notices': [n.to_json() for n in ctx.notices],
    }


@auth_bp.post('/login')
def login():
    data = request.get_json(silent=True) or {}
    ctx = current_session()
    ctx.login(data.get('email'), data.get('password'))
    return _session_payload(ctx)


@auth_bp.post('/signup')
def signup():
    data = request.get_json(silent=True) or {}
    ctx = current_session()
    ctx.signup(data.get('email'), data.get('password'), data.get('name'))
    return _session_payload(ctx), 201


@auth_bp.post('/logout')
@require_auth
def logout():
    ctx = current_session()
    ctx.logout()
    return {'status': 'logged_out', 'notices': [n.to_json() for n in ctx.notices]}


@auth_bp.get('/me')
@require_auth
def me():
    user = current_session().refresh_profile()
    return {'user': user.to_json(), 'user_id': get_jwt_identity()}


@auth_bp.get('/authorize')
def authorize():
    path = request.args.get('path')
    if not path:
        raise ValidationError('path required')
    ctx = current_session()
    guard = RouteGuard(login_path=current_app.config['LOGIN_PATH'])
    decision = guard.authorize(path, ctx.user, loading=ctx.is_loading)
    return decision.to_json()


@auth_bp.post('/demo')
def demo():
    """Log into a demo account if it exists; otherwise tell the caller how to."""
    data = request.get_json(silent=True) or {}
    email = data.get('email') or DEMO_ACCOUNTS[0]['email']
    if not isinstance(email, str) or email not in {a['email'] for a in DEMO_ACCOUNTS}:
        raise ValidationError('not a demo account')
    ctx = current_session()
    user = ctx.try_demo_account(email, DEMO_PASSWORD)
    notices = [n.to_json() for n in ctx.notices]
    if user is None:
        return {'access_token': None, 'user': None, 'notices': notices}
    return {'access_token': ctx.identity.issued_token, 'user': user.to_json(), 'notices': notices}
