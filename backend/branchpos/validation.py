from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


# Maximum money amount: 9,999,999,999.99 (fits Numeric(12, 2))
MAX_AMOUNT = Decimal("9999999999.99")
CENTS = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


class NotFoundError(LookupError):
    """404-level missing entity."""


def require_json(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def require_fields(payload: dict, *fields: str) -> None:
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_int(value: Any, field: str, *, min_value: int | None = None) -> int:
    """
    Strict integer coercion.

    Rejects floats, booleans, decimals in strings and scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if min_value is not None and result < min_value:
        raise ValidationError(f"{field} must be >= {min_value}")
    return result


def parse_optional_int(value: Any, field: str) -> int | None:
    if value in (None, ""):
        return None
    return parse_int(value, field)


def parse_optional_bool(value: Any, field: str, default: bool | None = None) -> bool | None:
    """Parse a "true"/"false" query flag; anything else is rejected."""
    if value in (None, ""):
        return default
    flag = str(value).strip().lower()
    if flag not in ("true", "false"):
        raise ValidationError(f"{field} must be true or false")
    return flag == "true"


def parse_money(value: Any, field: str, *, allow_negative: bool = False) -> Decimal:
    """
    Coerce a JSON number or numeric string into a 2-place Decimal.

    Floats go through str() first so 0.1 stays 0.1. Values are rounded
    half-up to cents.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")

    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)

    if not allow_negative and amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    return amount


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def money_str(amount: Decimal | None) -> str | None:
    """Serialize a money amount as a 2-place string ("250.00")."""
    if amount is None:
        return None
    return f"{Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP):f}"


def parse_choice(value: Any, field: str, choices) -> str:
    if not isinstance(value, str) or value.strip().upper() not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(choices))}")
    return value.strip().upper()


def clean_str(value: Any, field: str, *, max_length: int, required: bool = False) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    text = str(value).strip()
    if not text:
        if required:
            raise ValidationError(f"{field} cannot be blank")
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text
