from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _build_engine(db_url: str):
    if db_url.endswith(':memory:'):
        # One shared in-memory SQLite database for every session and thread
        return create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(db_url, echo=False, future=True)


def error_body(status: int, title: str, detail: Optional[str]):
    return {'error': {'status': status, 'title': title, 'detail': detail}}, status


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    from .config.settings import load_settings
    app.config.update(load_settings())
    if config:
        # tests and callers override environment-derived values
        app.config.update(config)

    db_engine = _build_engine(app.config['DATABASE_URL'])
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.auth import auth_bp
    from .routes.service_requests import sr_bp
    from .routes.job_orders import jo_bp
    from .routes.purchase_orders import po_bp
    from .routes.receiving_reports import rr_bp
    from .routes.notifications import notif_bp
    from .routes.analytics import analytics_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(sr_bp, url_prefix='/service-requests')
    app.register_blueprint(jo_bp, url_prefix='/job-orders')
    app.register_blueprint(po_bp, url_prefix='/purchase-orders')
    app.register_blueprint(rr_bp, url_prefix='/receiving-reports')
    app.register_blueprint(notif_bp, url_prefix='/notifications')
    app.register_blueprint(analytics_bp, url_prefix='/analytics')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Token problems use the same error shape as everything else, always 401
    @jwt.unauthorized_loader
    def missing_token(reason):
        return error_body(401, 'Unauthorized', reason)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return error_body(401, 'Unauthorized', reason)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return error_body(401, 'Unauthorized', 'Token has expired')

    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            if e.code >= 500:
                app.logger.error('%s %s: %s', e.code, e.name, e.description)
            return error_body(e.code, e.name, e.description)
        app.logger.exception('Unhandled exception')
        return error_body(500, 'Internal Server Error', 'Unexpected error')

    return app


def get_db():
    return SessionLocal()
