# Overview: Flask extension instances for database and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy.engine import make_url

db = SQLAlchemy()
migrate = Migrate()


def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ships with foreign keys off; turn them on per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def engine_options(config) -> dict:
    """
    SQLALCHEMY_ENGINE_OPTIONS with the store deadline applied.

    On PostgreSQL every pooled connection starts with
    statement_timeout = STORE_STATEMENT_TIMEOUT_MS, so reads outside
    atomic() (identity resolution, listings) are bounded too. Other
    backends get the configured options unchanged.
    """
    options = dict(config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    timeout_ms = config.get("STORE_STATEMENT_TIMEOUT_MS")
    uri = config.get("SQLALCHEMY_DATABASE_URI")
    if not timeout_ms or not uri or make_url(uri).get_backend_name() != "postgresql":
        return options

    connect_args = dict(options.get("connect_args") or {})
    libpq_options = connect_args.get("options", "")
    connect_args["options"] = f"{libpq_options} -c statement_timeout={int(timeout_ms)}".strip()
    options["connect_args"] = connect_args
    return options


# app.extensions slot holding the IdentityProvider used by require_auth
IDENTITY_PROVIDER_KEY = "stockroom.identity_provider"
