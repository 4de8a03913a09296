import pytest

from stockroom.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
    StockroomError,
    ValidationError,
)


@pytest.mark.parametrize("error_class,status_code", [
    (ValidationError, 400),
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InternalError, 500),
])
def test_status_codes(error_class, status_code):
    error = error_class()
    assert isinstance(error, StockroomError)
    assert error.status_code == status_code
    assert error.to_dict() == {"error": error_class.default_message}


def test_permission_denied_names_required_roles():
    error = PermissionDeniedError(required_roles=("admin",))
    assert error.to_dict() == {"error": "Permission denied", "required_roles": ["admin"]}


def test_custom_message():
    assert NotFoundError("Product not found").to_dict() == {"error": "Product not found"}
