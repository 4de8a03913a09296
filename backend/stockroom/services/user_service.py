# Overview: User account reads and profile updates.

from __future__ import annotations

from sqlalchemy.orm import Session

from ..errors import ConflictError, NotFoundError
from ..models import User
from ..validation import ModelValidationPolicy, enforce_rules_user
from . import role_store
from .concurrency import atomic, lock_for_update

USER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "email"}),
    required_on_create=frozenset({"name", "email"}),
)


def get_user(session: Session, user_id: int) -> dict:
    user = session.query(User).filter(User.id == user_id).one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    data = user.to_dict()
    data["role"] = role_store.get_role(session, user.id)
    return data


def update_user(session: Session, *, user_id: int, patch: dict) -> dict:
    """
    Replace name and email of a user.

    Email uniqueness is checked here and enforced again by the unique
    constraint; either path ends in ConflictError.
    """
    patch = dict(patch)
    enforce_rules_user(patch)

    with atomic(session):
        user = lock_for_update(session.query(User).filter(User.id == user_id)).one_or_none()
        if user is None:
            raise NotFoundError("User not found")

        clash = (
            session.query(User.id)
            .filter(User.email == patch["email"], User.id != user_id)
            .first()
        )
        if clash:
            raise ConflictError("Email already in use")

        user.name = patch["name"]
        user.email = patch["email"]
        session.flush()
        result = get_user(session, user_id)

    return result
