# backend/stockroom/__init__.py
from flask import Flask, g, jsonify, request
from sqlalchemy import event
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import StockroomError
from .extensions import db, migrate, engine_options, enable_sqlite_foreign_keys, IDENTITY_PROVIDER_KEY


def create_app(config_overrides: dict | None = None, identity_provider=None) -> Flask:
    """
    Application factory.

    config_overrides is applied before extensions are initialized (the
    database engine is created from it). identity_provider replaces the
    local session-token provider.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options(app.config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            event.listen(db.engine, "connect", enable_sqlite_foreign_keys)

    if identity_provider is None:
        from .services.session_service import LocalSessionProvider
        identity_provider = LocalSessionProvider(lambda: db.session)
    app.extensions[IDENTITY_PROVIDER_KEY] = identity_provider

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.movements import movements_bp
    from .routes.users import users_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(movements_bp)
    app.register_blueprint(users_bp)

    register_error_handlers(app)

    from .services.concurrency import STATEMENT_TIMEOUT_KEY

    @app.before_request
    def reset_request_state():
        # An outer app context (CLI, tests) outlives requests; so would g
        g.pop("identity", None)
        db.session.info[STATEMENT_TIMEOUT_KEY] = app.config["STORE_STATEMENT_TIMEOUT_MS"]

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config["ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    """Render errors as {"error": message}; internals stay in the log."""

    @app.errorhandler(StockroomError)
    def handle_stockroom_error(exc: StockroomError):
        if exc.status_code >= 500:
            app.logger.error("%s on %s %s", type(exc).__name__, request.method, request.path, exc_info=exc)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500
