"""Value coercion helpers for event data."""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def to_text(value: Any) -> str:
    """Render an event-data value the way it appears in JSON text.

    Booleans and None use their JSON spelling ("true", "false", "null"),
    Decimals are written without exponent notation, everything else uses
    ``str``.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a value as a finite decimal number.

    Args:
        value: Scalar value from event data or a condition

    Returns:
        Decimal, or None if the value is not numeric
    """
    if value is None or isinstance(value, (bool, Mapping, list, tuple)):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def is_number(value: Any) -> bool:
    """Return True for int/float/Decimal values (bool excluded)."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def flatten_mapping(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys.

    Only leaf values are returned: ``{"a": {"b": 1}}`` becomes ``{"a.b": 1}``.
    """
    flat: dict[str, Any] = {}
    for key, value in data.items():
        path = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(flatten_mapping(value, prefix=f"{path}."))
        else:
            flat[path] = value
    return flat


def resolve_path(data: Optional[Mapping[str, Any]], path: Optional[str]) -> Any:
    """Walk a dotted path (``a.b.c``) through nested mappings.

    Returns None if any segment is missing or an intermediate value is not
    a mapping.
    """
    if path is None or data is None:
        return None
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current
