"""
Request validation utilities.
"""

from typing import Any, Dict, Iterable, List

from ..core.exceptions import ValidationFailed


def is_blank(value: Any) -> bool:
    """Missing, empty string, or empty collection."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple)):
        return not value
    return False


def missing_fields(data: Dict[str, Any], required: Iterable[str]) -> List[str]:
    return [name for name in required if is_blank((data or {}).get(name))]


def require_fields(data: Dict[str, Any], required: Iterable[str], message: str = "Missing required fields") -> None:
    """Raise ValidationFailed listing every blank required field."""
    missing = missing_fields(data, required)
    if missing:
        raise ValidationFailed(missing, message)


def coerce_limit(value: Any, default: int = 50, maximum: int = 200) -> int:
    """Clamp a pagination limit from a query string."""
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(limit, maximum))
