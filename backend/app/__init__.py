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


def _error_body(status: int, title: str, detail: str):
    return {'error': {'status': status, 'title': title, 'detail': detail}}, status


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    from .config.settings import load_settings
    from .services.errors import InvalidOperation, NotFound
    from .services.registry import DEFAULT_REGISTRY, EXTENSION_KEY, load_registry_file

    app = Flask(__name__)
    app.config.update(load_settings())

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    # Permission structure is loaded once; a malformed file stops startup (RegistryError)
    structure_file = app.config.get('PERMISSION_STRUCTURE_FILE')
    app.extensions[EXTENSION_KEY] = load_registry_file(structure_file) if structure_file else DEFAULT_REGISTRY

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

    from .routes.iam import iam_bp
    from .routes.managers import managers_bp
    from .routes.settings import settings_bp
    app.register_blueprint(iam_bp, url_prefix='/iam')
    app.register_blueprint(managers_bp, url_prefix='/managers')
    app.register_blueprint(settings_bp, url_prefix='/settings')

    @app.route('/healthz')
    def health():
        return {'status': 'ok', 'permission_structure_version': app.extensions[EXTENSION_KEY].version}

    @app.errorhandler(NotFound)
    def handle_not_found(e):  # type: ignore
        return _error_body(404, 'Not Found', e.description)

    @app.errorhandler(InvalidOperation)
    def handle_invalid_operation(e):  # type: ignore
        return _error_body(400, 'Bad Request', e.description)

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_body(e.code, e.name, e.description)
        app.logger.exception('Unhandled exception')
        return _error_body(500, 'Internal Server Error', 'Unexpected error')

    return app


def get_db():
    return SessionLocal()
