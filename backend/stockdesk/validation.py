from __future__ import annotations
from decimal import Decimal, InvalidOperation

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Integer, Numeric, String, Text


# Maximum price: 9,999,999.99
# This prevents database overflow issues and nonsensical prices
MAX_PRICE = Decimal("9999999.99")
MONEY_SCALE = 2


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """Business rule conflict (e.g., duplicate SKU)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: JSON key -> model attribute that clients may set (security boundary)
    - required_on_create: JSON keys required for POST
    """
    writable_fields: dict[str, str]
    required_on_create: frozenset[str] = field(default_factory=frozenset)


def coerce_int(value: Any, name: str) -> int:
    """
    Accept ints and plain digit strings only.

    Booleans, floats, "2.0" and "1e3" are refused so a quantity is never
    silently truncated.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be an integer")

    text = value.strip()
    digits = text[1:] if text[:1] in "+-" else text
    if not (digits.isascii() and digits.isdigit()):
        raise ValidationError(f"{name} must be a plain integer")
    return int(text)


def coerce_money(value: Any, name: str, scale: int = MONEY_SCALE) -> Decimal:
    """
    Coerce a JSON number/string to Decimal without rounding.

    Values with more fractional digits than the column can hold are rejected
    rather than silently rounded.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{name} must be a number")
    else:
        raise ValidationError(f"{name} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{name} must be a finite number")
    if amount.as_tuple().exponent < -scale:
        raise ValidationError(f"{name} must have at most {scale} decimal places")
    if amount < 0:
        raise ValidationError(f"{name} must be >= 0")
    if amount > MAX_PRICE:
        raise ValidationError(f"{name} cannot exceed {MAX_PRICE:,}")
    return amount


def _coerce_value(col, name: str, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Numeric must be checked before Integer; money is always Numeric
    if isinstance(coltype, Numeric) and not isinstance(coltype, Integer):
        return coerce_money(value, name, scale=coltype.scale or MONEY_SCALE)

    if isinstance(coltype, Integer):
        return coerce_int(value, name)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{name} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model,
    payload: Any,
    policy: ModelValidationPolicy,
    partial: bool,
    ignore_unknown: bool = False,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length, Numeric scale)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by model attribute.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    ignore_unknown=True: drop keys outside the allowlist instead of rejecting them
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = {c.key: c for c in model.__mapper__.columns}

    patch: dict = {}
    for key, raw in payload.items():
        attr = policy.writable_fields.get(key)
        if attr is None:
            if ignore_unknown:
                continue
            raise ValidationError(f"Field not allowed: {key}")

        col = cols[attr]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[attr] = None
            continue

        val = _coerce_value(col, key, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{key} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{key} exceeds max length {col.type.length}")

        patch[attr] = val

    return patch


def enforce_rules_variant(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    stock = patch.get("current_stock")
    if stock is not None and stock < 0:
        raise ValidationError("currentStock must be >= 0")

    threshold = patch.get("low_stock_threshold")
    if threshold is not None and threshold < 1:
        raise ValidationError("lowStockThreshold must be >= 1")


def parse_page_args(page: Any, limit: Any, *, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Normalize page/limit query params (1-indexed page, capped limit)."""
    try:
        page = int(page) if page not in (None, "") else 1
        limit = int(limit) if limit not in (None, "") else default_limit
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    return max(page, 1), min(max(limit, 1), max_limit)
