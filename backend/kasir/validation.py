from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import ValidationError


# Largest amount accepted for any money field (minor units)
MAX_AMOUNT = 999_999_999_999

DISCOUNT_TYPES = ("nominal", "percent")


def coerce_int(key: str, value: Any) -> int:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings (optional leading minus); rejects
    bools, floats, decimals, and scientific notation.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def require_int(data: dict, key: str, *, minimum: int | None = None, maximum: int = MAX_AMOUNT) -> int:
    if data.get(key) is None:
        raise ValidationError(f"{key} required")
    value = coerce_int(key, data[key])
    if minimum is not None and value < minimum:
        raise ValidationError(f"{key} must be at least {minimum}")
    if value > maximum:
        raise ValidationError(f"{key} must be at most {maximum}")
    return value


def optional_int(data: dict, key: str, *, minimum: int | None = None) -> int | None:
    if data.get(key) is None or data.get(key) == "":
        return None
    return require_int(data, key, minimum=minimum)


def optional_str(data: dict, key: str, *, max_length: int | None = None) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{key} must be at most {max_length} characters")
    return value or None


def optional_bool(data: dict, key: str) -> bool:
    value = data.get(key)
    if isinstance(value, bool):
        return value
    # fallback: truthiness
    return bool(value)


def choice(data: dict, key: str, allowed, *, default: str | None = None) -> str:
    value = data.get(key)
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"{key} required")
        return default
    value = str(value).strip().lower()
    if value not in allowed:
        raise ValidationError(f"{key} must be one of {list(allowed)}")
    return value


@dataclass(frozen=True)
class CheckoutRequest:
    """
    Parsed checkout body.

    discount, tax, grand_total and change are what the register computed;
    they are optional and only cross-checked against the server's numbers.
    """
    customer_id: int | None
    discount_type: str
    discount_value: int
    tax_type: str
    tax_value: int
    cash: int | None
    payment_gateway: str | None = None
    discount: int | None = None
    tax: int | None = None
    grand_total: int | None = None
    change: int | None = None


def parse_checkout_request(data: dict) -> CheckoutRequest:
    gateway = data.get("payment_gateway")
    if gateway is not None:
        gateway = str(gateway).strip().lower() or None

    return CheckoutRequest(
        customer_id=optional_int(data, "customer_id", minimum=1),
        discount_type=choice(data, "discount_type", DISCOUNT_TYPES, default="nominal"),
        discount_value=optional_int(data, "discount_value", minimum=0) or 0,
        tax_type=choice(data, "tax_type", DISCOUNT_TYPES, default="percent"),
        tax_value=optional_int(data, "tax_value", minimum=0) or 0,
        cash=optional_int(data, "cash", minimum=0),
        payment_gateway=gateway,
        discount=optional_int(data, "discount", minimum=0),
        tax=optional_int(data, "tax", minimum=0),
        grand_total=optional_int(data, "grand_total", minimum=0),
        change=optional_int(data, "change", minimum=0),
    )
