# Overview: Session Resolver; merges provider authentication with the local role.

"""
Identity resolution (authoritative)

- Every request is resolved from scratch: provider session + Role Store read.
  Nothing is cached across requests, so role changes apply immediately.
- An Identity always carries exactly one role; no Role Store row means "user".
- Fail closed: if the provider errors or times out the caller is
  unauthenticated. A failure never yields a default or previous identity.
- Provider objects are read, never mutated; Identity is a new frozen value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InternalError
from . import role_store
from .identity_provider import IdentityProvider
from stockroom.time_utils import utcnow, as_utc_naive, to_utc_z

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionMetadata:
    session_id: int | str
    expires_at: datetime

    def to_dict(self) -> dict:
        return {"id": self.session_id, "expires_at": to_utc_z(self.expires_at)}


@dataclass(frozen=True)
class Identity:
    id: int
    name: str
    email: str
    role: str
    session: SessionMetadata

    @property
    def is_admin(self) -> bool:
        return self.role == role_store.ADMIN_ROLE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
        }


def resolve(session: Session, provider: IdentityProvider, credential: str | None) -> Identity | None:
    """
    Resolve a request credential into an Identity.

    Returns None when the caller is unauthenticated: no credential, an
    unknown or expired session, or a provider failure.

    Raises InternalError when the Role Store itself cannot be read.
    """
    if not credential:
        return None

    try:
        provider_session = provider.validate_credential(credential)
    except Exception:
        # Any provider failure leaves the caller unauthenticated
        logger.exception("Identity provider failed; treating request as unauthenticated")
        return None

    if provider_session is None:
        return None

    expires_at = as_utc_naive(provider_session.expires_at)
    if expires_at <= utcnow():
        return None

    try:
        role = role_store.get_role(session, provider_session.subject_id)
    except SQLAlchemyError as exc:
        session.rollback()
        raise InternalError("Role store unavailable") from exc

    return Identity(
        id=provider_session.subject_id,
        name=provider_session.subject_name,
        email=provider_session.subject_email,
        role=role,
        session=SessionMetadata(
            session_id=provider_session.session_id,
            expires_at=expires_at,
        ),
    )
