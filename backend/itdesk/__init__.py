from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import os
import time

from .config.settings import DEFAULT_LIMIT, MAX_LIMIT, STOCK_DELETE_POLICIES

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()

# jti -> exp (epoch seconds) of tokens revoked through /auth/logout
revoked_tokens: Dict[str, Optional[float]] = {}


def revoke_token(jti: str, exp: Optional[float] = None) -> None:
    revoked_tokens[jti] = exp


def is_token_revoked(jti: Optional[str], now: Optional[float] = None) -> bool:
    """Blocklist lookup; entries whose token has expired anyway are dropped."""
    now = time.time() if now is None else now
    for key, exp in list(revoked_tokens.items()):
        if exp is not None and exp <= now:
            revoked_tokens.pop(key, None)
    return jti in revoked_tokens


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///itdesk.db')
    app.config['STOCK_DELETE_POLICY'] = os.getenv('STOCK_DELETE_POLICY', 'preserve')
    app.config['EMAIL_DOMAIN_REWRITES'] = os.getenv('EMAIL_DOMAIN_REWRITES', '')
    app.config['LOW_STOCK_THRESHOLD'] = int(os.getenv('LOW_STOCK_THRESHOLD', '3'))
    app.config['LOGIN_PATH'] = os.getenv('LOGIN_PATH', '/')
    app.config['DEFAULT_LIMIT'] = int(os.getenv('DEFAULT_LIMIT', str(DEFAULT_LIMIT)))
    app.config['MAX_LIMIT'] = int(os.getenv('MAX_LIMIT', str(MAX_LIMIT)))

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    if app.config['STOCK_DELETE_POLICY'] not in STOCK_DELETE_POLICIES:
        raise ValueError('STOCK_DELETE_POLICY must be preserve or cascade')

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    @jwt.token_in_blocklist_loader
    def token_revoked(jwt_header, jwt_payload):
        return is_token_revoked(jwt_payload.get('jti'))

    from .routes.auth import auth_bp
    from .routes.issues import issues_bp
    from .routes.stock import stock_bp
    from .routes.purchase_requests import pr_bp
    from .routes.users import users_bp
    from .routes.reports import rpt_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(issues_bp, url_prefix='/issues')
    app.register_blueprint(stock_bp, url_prefix='/stock')
    app.register_blueprint(pr_bp, url_prefix='/purchase-requests')
    app.register_blueprint(users_bp, url_prefix='/users')
    app.register_blueprint(rpt_bp, url_prefix='/reports')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.teardown_appcontext
    def remove_session(exc):
        SessionLocal.remove()

    from .errors import ItDeskError

    @app.errorhandler(ItDeskError)
    def handle_domain_error(e):  # type: ignore
        if e.status >= 500:
            app.logger.error('%s: %s', e.title, e.detail)
        else:
            app.logger.info('%s: %s', e.title, e.detail)
        return e.to_payload(), e.status

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            return payload, e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    return app


def get_db():
    return SessionLocal()


def get_store():
    from .datastore import Datastore
    return Datastore(get_db())
