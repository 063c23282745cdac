from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ConflictError, ValidationError
from .time_utils import coerce_datetime

__all__ = [
    "ConflictError",
    "ValidationError",
    "MAX_MONEY",
    "ModelValidationPolicy",
    "validate_payload",
    "coerce_money",
    "coerce_quantity",
    "enforce_rules_product",
    "enforce_non_negative_money",
]


# Numeric(12, 2) holds up to 9,999,999,999.99
MAX_MONEY = Decimal("9999999999.99")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_money(value: Any, field: str) -> Decimal:
    """
    Convert JSON input to Decimal.

    Accepts ints, floats and numeric strings; floats go through str() so 0.1
    stays 0.1. Booleans, NaN and infinities are rejected.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def coerce_quantity(value: Any, field: str = "quantity") -> int:
    """Strict positive integer for order line quantities."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            raise ValidationError(f"{field} must be an integer")
        value = int(stripped)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value <= 0:
        raise ValidationError(f"{field} must be > 0")
    return value


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Numeric is checked before Integer; money columns are Numeric(12, 2)
    if isinstance(coltype, Numeric):
        return coerce_money(value, col.key)

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        try:
            dt = coerce_datetime(value)
        except ValueError:
            raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
        if dt is None:
            raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
        return dt

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_non_negative_money(patch: dict, *fields: str) -> None:
    for field in fields:
        value = patch.get(field)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{field} must be >= 0")
        if value > MAX_MONEY:
            raise ValidationError(f"{field} cannot exceed {MAX_MONEY}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    enforce_non_negative_money(patch, "last_purchase_price", "selling_price")

    if "stock" in patch and patch["stock"] is not None:
        if patch["stock"] < 0:
            raise ValidationError("stock must be >= 0")
