"""Request payload validation helpers.

Each helper returns the cleaned value (so it can be used inline) or raises
``ValidationError``.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, Optional

from itdesk.errors import ValidationError


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    if new_status not in allowed:
        raise ValidationError(f'{field_name} invalid')
    return new_status


def require_fields(data: Dict[str, Any], *names: str) -> None:
    missing = [n for n in names if data.get(n) in (None, '')]
    if missing:
        raise ValidationError(f"missing required field(s): {', '.join(missing)}")


def required_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field_name} required')
    return value.strip()


def positive_int(value: Any, field_name: str, allow_zero: bool = False) -> int:
    # bools are ints in Python; reject them explicitly
    if isinstance(value, bool):
        raise ValidationError(f'{field_name} must be an integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field_name} must be an integer')
    if isinstance(value, float) and value != number:
        raise ValidationError(f'{field_name} must be an integer')
    if number < 0 or (number == 0 and not allow_zero):
        raise ValidationError(f"{field_name} must be {'>= 0' if allow_zero else '> 0'}")
    return number


def optional_float(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == '':
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field_name} must be a number')
    if number < 0:
        raise ValidationError(f'{field_name} must be >= 0')
    return number


def pick(data: Dict[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    """Keep only the keys in ``allowed``; reject unknown keys."""
    allowed = set(allowed)
    unknown = sorted(k for k in data if k not in allowed)
    if unknown:
        raise ValidationError(f"unknown field(s): {', '.join(unknown)}")
    return dict(data)


__all__ = ['validate_status', 'require_fields', 'required_str', 'positive_int', 'optional_float', 'pick']
