# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, g, current_app

from .errors import AuthenticationError, PermissionDeniedError
from .extensions import db, IDENTITY_PROVIDER_KEY
from .services import identity_service


def get_identity_provider():
    return current_app.extensions[IDENTITY_PROVIDER_KEY]


def read_credential() -> str | None:
    """Bearer token first, then the session cookie."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get(current_app.config["SESSION_COOKIE_NAME"]) or None


def current_identity():
    """
    Identity of the caller, resolved once per request.

    g only lives for the request, so nothing leaks into the next one.
    """
    if "identity" not in g:
        g.identity = identity_service.resolve(
            db.session,
            get_identity_provider(),
            read_credential(),
        )
    return g.identity


def require_auth(f):
    """
    Require a resolved identity.

    Sets g.identity (stockroom.services.identity_service.Identity).
    Raises AuthenticationError (401) when the credential is missing,
    invalid or expired, or the identity provider could not be reached.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_identity() is None:
            raise AuthenticationError()
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """
    Require the caller's role to be one of roles. Use after @require_auth.

    Raises PermissionDeniedError (403) naming the accepted roles.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            identity = current_identity()
            if identity is None:
                raise AuthenticationError()

            if identity.role not in roles:
                current_app.logger.warning(
                    "Role denied: user_id=%s role=%s path=%s required=%s",
                    identity.id, identity.role, request.path, ",".join(roles),
                )
                raise PermissionDeniedError(required_roles=roles)

            return f(*args, **kwargs)

        return decorated_function
    return decorator
