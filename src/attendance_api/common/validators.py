from __future__ import annotations

from typing import Any, Mapping, Optional

from ..core.exceptions import ValidationError


def optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    """Read a JSON field that must be a string when present."""
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value
