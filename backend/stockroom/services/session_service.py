# Overview: Local identity provider; opaque session tokens stored as SHA-256 hashes.

"""
Session Token Management

Tokens are cryptographically secure, hashed in the database and
time-limited. LocalSessionProvider exposes them through the
IdentityProvider contract so the rest of the service never reads the
sessions table directly.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 7-day absolute timeout (SESSION_TTL)
- Revocation deletes the row
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta
from typing import Callable

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..models import LoginSession, User
from .concurrency import atomic
from .identity_provider import IdentityProviderError, ProviderSession
from stockroom.time_utils import utcnow, as_utc_naive


SESSION_TTL = timedelta(days=7)


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    session: Session,
    user_id: int,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[LoginSession, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    token = generate_token()
    now = utcnow()

    with atomic(session):
        if session.get(User, user_id) is None:
            raise NotFoundError("User not found")

        record = LoginSession(
            user_id=user_id,
            token_hash=hash_token(token),
            expires_at=now + SESSION_TTL,
            user_agent=user_agent[:255] if user_agent else None,
            ip_address=ip_address,
        )
        session.add(record)
        session.flush()

    return record, token


def revoke_session(session: Session, token: str) -> bool:
    """Revoke a session token. Returns False if it was not found."""
    with atomic(session):
        result = session.execute(
            delete(LoginSession).where(LoginSession.token_hash == hash_token(token))
        )
    return result.rowcount > 0


def cleanup_expired_sessions(session: Session) -> int:
    """Delete expired sessions. Returns count of sessions deleted."""
    with atomic(session):
        result = session.execute(
            delete(LoginSession).where(LoginSession.expires_at < utcnow())
        )
    return result.rowcount


class LocalSessionProvider:
    """
    IdentityProvider backed by the sessions/users tables.

    session_getter returns the SQLAlchemy session to read from (the
    request-scoped db.session in the app).
    """

    def __init__(self, session_getter: Callable[[], Session]):
        self._session_getter = session_getter

    def validate_credential(self, credential: str) -> ProviderSession | None:
        if not credential:
            return None

        session = self._session_getter()
        try:
            row = (
                session.query(LoginSession, User)
                .join(User, User.id == LoginSession.user_id)
                .filter(LoginSession.token_hash == hash_token(credential))
                .first()
            )
        except SQLAlchemyError as exc:
            session.rollback()
            raise IdentityProviderError("Session store unavailable") from exc

        if row is None:
            return None

        login_session, user = row
        expires_at = as_utc_naive(login_session.expires_at)
        if expires_at <= utcnow():
            return None

        return ProviderSession(
            session_id=login_session.id,
            subject_id=user.id,
            subject_name=user.name,
            subject_email=user.email,
            expires_at=expires_at,
        )
