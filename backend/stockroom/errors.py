# Overview: Error taxonomy shared by services and the HTTP layer.

"""
Every service failure is raised as a StockroomError subclass.

The HTTP layer renders them as {"error": message} with the class status_code.
Messages are safe to show to clients; driver details stay in the logs.
"""

from __future__ import annotations


class StockroomError(Exception):
    """Base class. Unclassified failures surface as 500."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(StockroomError, ValueError):
    """400-level input problem."""

    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(StockroomError):
    """No session, or the session could not be validated."""

    status_code = 401
    default_message = "Authentication required"


class PermissionDeniedError(StockroomError):
    """Authenticated, but the role does not allow the operation."""

    status_code = 403
    default_message = "Permission denied"

    def __init__(self, message: str | None = None, required_roles=()):
        super().__init__(message)
        self.required_roles = list(required_roles)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.required_roles:
            data["required_roles"] = self.required_roles
        return data


class NotFoundError(StockroomError):
    status_code = 404
    default_message = "Not found"


class ConflictError(StockroomError):
    """
    409-level conflict: duplicate unique value, or a concurrent mutation
    detected by the store. Callers may retry the whole request.
    """

    status_code = 409
    default_message = "Conflicting update, retry the request"


class InternalError(StockroomError):
    """Store or provider unavailable."""

    status_code = 500
    default_message = "Internal server error"
