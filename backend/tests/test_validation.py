import pytest

from stockroom.errors import ValidationError
from stockroom.models import Product
from stockroom.services.stock_service import PRODUCT_POLICY
from stockroom.validation import (
    MAX_QUANTITY,
    coerce_integer,
    enforce_rules_product,
    normalize_email,
    validate_payload,
)


@pytest.mark.parametrize("value,expected", [(5, 5), ("  42 ", 42), ("-3", -3), (0, 0)])
def test_coerce_integer_accepts_plain_integers(value, expected):
    assert coerce_integer("quantity", value) == expected


@pytest.mark.parametrize("value", [True, 1.0, "1e5", "12.5", "", "abc", None, [1]])
def test_coerce_integer_rejects(value):
    with pytest.raises(ValidationError):
        coerce_integer("quantity", value)


def test_enforce_rules_product_bounds():
    enforce_rules_product({"quantity": 0})
    enforce_rules_product({"quantity": MAX_QUANTITY})
    with pytest.raises(ValidationError):
        enforce_rules_product({"quantity": -1})
    with pytest.raises(ValidationError):
        enforce_rules_product({"quantity": MAX_QUANTITY + 1})


def test_validate_payload_create_requires_name():
    with pytest.raises(ValidationError, match="Missing required fields: name"):
        validate_payload(model=Product, payload={"quantity": 1}, policy=PRODUCT_POLICY, partial=False)


def test_validate_payload_trims_and_coerces():
    patch = validate_payload(
        model=Product,
        payload={"name": "  Bolt ", "quantity": "7"},
        policy=PRODUCT_POLICY,
        partial=False,
    )
    assert patch == {"name": "Bolt", "quantity": 7}


@pytest.mark.parametrize("payload", [
    {"name": ""},
    {"name": None},
    {"name": "x" * 256},
    {"version_id": 3},
    {"quantity": None},
])
def test_validate_payload_rejects(payload):
    with pytest.raises(ValidationError):
        validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)


def test_validate_payload_rejects_non_object():
    with pytest.raises(ValidationError):
        validate_payload(model=Product, payload=["name"], policy=PRODUCT_POLICY, partial=True)


@pytest.mark.parametrize("value,expected", [
    ("User@Example.COM", "user@example.com"),
    ("  a@b.io ", "a@b.io"),
])
def test_normalize_email(value, expected):
    assert normalize_email(value) == expected


@pytest.mark.parametrize("value", ["no-at-sign", "a@nodot", "@example.com", "a b@example.com", 42])
def test_normalize_email_rejects(value):
    with pytest.raises(ValidationError):
        normalize_email(value)
