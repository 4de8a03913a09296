from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


# Largest value a 32-bit INTEGER column holds
MAX_QUANTITY = 2_147_483_647

_PLAIN_INTEGER = re.compile(r"-?\d+")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a client may write, and which a create must carry.

    writable_fields is the security boundary: anything else in a payload
    is rejected, not ignored.
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = field(default_factory=frozenset)


def coerce_integer(key: str, value: Any) -> int:
    """
    Strict integer parsing for stock arithmetic.

    Accepts ints and strings of plain digits with an optional leading
    minus. Booleans, floats, decimals ("12.5") and scientific notation
    ("1e5") are rejected.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if isinstance(value, str) and _PLAIN_INTEGER.fullmatch(value.strip()):
        return int(value.strip())
    raise ValidationError(f"{key} must be an integer")


def _clean_text(col, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"{col.key} must be a string")
    text = str(value).strip()

    if text == "" and not col.nullable:
        raise ValidationError(f"{col.key} cannot be blank")
    length = getattr(col.type, "length", None)
    if length and len(text) > length:
        raise ValidationError(f"{col.key} exceeds max length {length}")
    return text


def _clean_value(col, value: Any):
    if value is None:
        if not col.nullable:
            raise ValidationError(f"{col.key} cannot be null")
        return None
    if isinstance(col.type, Integer):
        return coerce_integer(col.key, value)
    if isinstance(col.type, (String, Text)):
        return _clean_text(col, value)
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a JSON body into a patch of column values.

    Each key must be in policy.writable_fields and be a mapped column of
    model; values are coerced by column type (Integer strictly, String
    and Text trimmed and length-checked) and NULL is allowed only on
    nullable columns.

    partial=False: create semantics, policy.required_on_create must be present
    partial=True: update semantics, only the given keys are checked
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create.difference(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    for key in payload:
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        if key not in columns:
            raise ValidationError(f"Unknown field: {key}")

    return {key: _clean_value(columns[key], raw) for key, raw in payload.items()}


def enforce_rules_product(patch: dict) -> None:
    """
    Stock rules the column metadata cannot express.

    Negative stock is rejected outright: there is no backorder state.
    """
    if "quantity" not in patch:
        return
    quantity = patch["quantity"]
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")


def normalize_email(value: Any) -> str:
    """Emails are compared and stored trimmed and lower-cased."""
    if not isinstance(value, str):
        raise ValidationError("email must be a string")
    email = value.strip().lower()
    local, sep, domain = email.partition("@")
    if not sep or not local or "." not in domain or " " in email:
        raise ValidationError("email is not a valid address")
    return email


def enforce_rules_user(patch: dict) -> None:
    """Both fields are required on every update, not only on create."""
    if not patch.get("name") or not patch.get("email"):
        raise ValidationError("name and email are required")
    patch["email"] = normalize_email(patch["email"])
