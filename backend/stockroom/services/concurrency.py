# Overview: Transaction boundary and row locking shared by the mutation engines.

"""
Every multi-step mutation runs inside atomic(session):

- commit on success, rollback on every failure path;
- driver errors are translated into the error taxonomy (ConflictError for
  lost races, InternalError for store faults);
- nothing is retried here; the caller decides.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, InternalError, StockroomError

logger = logging.getLogger(__name__)

# Session.info key holding the per-transaction deadline in milliseconds
STATEMENT_TIMEOUT_KEY = "statement_timeout_ms"

# serialization_failure, deadlock_detected, lock_not_available
CONFLICT_SQLSTATES = {"40001", "40P01", "55P03"}
QUERY_CANCELED_SQLSTATE = "57014"


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Product.version_id covers the SQLite case.
    """
    return query.with_for_update()


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = getattr(exc, "orig", None)
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def translate_db_error(exc: SQLAlchemyError) -> StockroomError:
    """Map a SQLAlchemy/driver failure onto the service error taxonomy."""
    if isinstance(exc, StaleDataError):
        return ConflictError("Record was modified concurrently; retry the request")

    if isinstance(exc, IntegrityError):
        return ConflictError("Record conflicts with existing data")

    if isinstance(exc, DBAPIError):
        code = _sqlstate(exc)
        if code in CONFLICT_SQLSTATES:
            return ConflictError("Record is locked by a concurrent update; retry the request")
        if code == QUERY_CANCELED_SQLSTATE:
            return InternalError("Store deadline exceeded")
        if isinstance(exc, OperationalError) and "database is locked" in str(exc.orig):
            return ConflictError("Record is locked by a concurrent update; retry the request")

    return InternalError("Store unavailable")


def _apply_statement_timeout(session: Session, timeout_ms: int | None) -> None:
    if not timeout_ms:
        return
    if session.get_bind().dialect.name != "postgresql":
        return
    # SET LOCAL takes no bind parameters; the value is an int we own
    session.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))


@contextmanager
def atomic(session: Session, *, timeout_ms: int | None = None) -> Iterator[Session]:
    """
    Run the enclosed block as one transaction.

    timeout_ms defaults to session.info[STATEMENT_TIMEOUT_KEY]; on PostgreSQL
    any statement running past it is cancelled and the transaction is rolled
    back, leaving state as if the request never happened.
    """
    if timeout_ms is None:
        timeout_ms = session.info.get(STATEMENT_TIMEOUT_KEY)

    try:
        _apply_statement_timeout(session, timeout_ms)
        yield session
        session.commit()
    except StockroomError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        error = translate_db_error(exc)
        logger.warning(
            "Transaction rolled back after %s (%s)",
            type(exc).__name__,
            type(error).__name__,
        )
        raise error from exc
    except Exception:
        session.rollback()
        raise
