# Overview: Role Store; locally owned authorization role per user.

from __future__ import annotations

from sqlalchemy.orm import Session

from ..errors import NotFoundError, ValidationError
from ..models import User, UserRole
from .concurrency import atomic, lock_for_update

DEFAULT_ROLE = "user"
ADMIN_ROLE = "admin"
ROLES = (DEFAULT_ROLE, ADMIN_ROLE)


def normalize_role(role) -> str:
    if not isinstance(role, str) or role.strip().lower() not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    return role.strip().lower()


def get_role(session: Session, user_id: int) -> str:
    """
    Current role of user_id, read from the store on every call.

    A missing row is the default-privilege case, not an error.
    """
    row = session.query(UserRole.role).filter(UserRole.user_id == user_id).first()
    if row is None or not row.role:
        return DEFAULT_ROLE
    return row.role


def set_role(session: Session, *, user_id: int, role: str) -> dict:
    """Create or replace the role row of an existing user."""
    role = normalize_role(role)

    with atomic(session):
        user = lock_for_update(session.query(User).filter(User.id == user_id)).one_or_none()
        if user is None:
            raise NotFoundError("User not found")

        record = session.get(UserRole, user_id)
        if record is None:
            session.add(UserRole(user_id=user_id, role=role))
        else:
            record.role = role
        session.flush()

    return {"user_id": user_id, "role": role}
