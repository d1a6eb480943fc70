from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..core.exceptions import InvalidAmount, ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field_name}. Must be one of: {allowed}")


def to_money(value: Any, field_name: str) -> Decimal:
    """Convert user input to a 2-place Decimal."""
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, AttributeError):
            raise InvalidAmount(f"{field_name} must be a number")
    if not amount.is_finite():
        raise InvalidAmount(f"{field_name} must be a number")
    return amount.quantize(Decimal("0.01"))


def optional_money(value: Any, field_name: str) -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_money(value, field_name)
