# Overview: Email/password credentials for the local identity provider.

"""
Credential accounts

Passwords are hashed with bcrypt and stored on the accounts table, apart
from the user record. Sessions are issued separately (see session_service).

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS)
- Minimum 8 characters required
- Emails are trimmed and lower-cased before lookup and storage
"""

import bcrypt
from sqlalchemy.orm import Session

from ..errors import ConflictError, ValidationError
from ..models import Account, User, UserRole
from ..validation import normalize_email
from . import role_store
from .concurrency import atomic

BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 8
CREDENTIAL_PROVIDER = "credential"


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """Hash password using bcrypt. Password is validated for strength before hashing."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash is a failed
    match, not an error.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def register_user(
    session: Session,
    *,
    name: str,
    email: str,
    password: str,
    role: str | None = None,
) -> User:
    """
    Create a user with a credential account.

    role is written to the Role Store only when given; otherwise the user
    has the default role.

    Raises:
        ValidationError: blank name, invalid email, weak password, unknown role
        ConflictError: email already registered
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")
    email = normalize_email(email)
    if role is not None:
        role = role_store.normalize_role(role)

    password_hash = hash_password(password)

    with atomic(session):
        if session.query(User.id).filter(User.email == email).first():
            raise ConflictError("Email already in use")

        user = User(name=name.strip(), email=email, email_verified=False)
        session.add(user)
        session.flush()  # ensure user.id exists before dependent rows

        session.add(Account(
            user_id=user.id,
            provider_id=CREDENTIAL_PROVIDER,
            password_hash=password_hash,
        ))
        if role is not None:
            session.add(UserRole(user_id=user.id, role=role))
        session.flush()

    return user


def authenticate(session: Session, *, email: str, password: str) -> User | None:
    """
    Check email/password credentials.

    Returns User if credentials valid, None otherwise.
    """
    try:
        email = normalize_email(email)
    except ValidationError:
        return None
    if not isinstance(password, str):
        return None

    row = (
        session.query(User, Account.password_hash)
        .join(Account, Account.user_id == User.id)
        .filter(User.email == email, Account.provider_id == CREDENTIAL_PROVIDER)
        .first()
    )
    if row is None or not row.password_hash:
        return None

    user, password_hash = row
    if verify_password(password, password_hash):
        return user
    return None
