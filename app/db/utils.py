"""Utility functions for the document store layer."""

import re
import uuid
from datetime import UTC, datetime

RFC3339_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?P<fraction>\.\d+)?(Z|[+-]\d{2}:\d{2})$",
    re.IGNORECASE,
)

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_LEGACY_OCTAL_PATTERN = re.compile(r"^[+-]?0[0-9_]")


def new_guid() -> str:
    """Generate a new document identifier."""
    return str(uuid.uuid4())


def format_rfc3339(value: datetime) -> str:
    """Format a datetime as an RFC 3339 UTC string with second precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def now_rfc3339() -> str:
    """Return the current UTC time as an RFC 3339 string."""
    return format_rfc3339(datetime.now(UTC))


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp.

    Args:
        value: Timestamp string such as ``2023-01-01T10:00:00Z``

    Returns:
        Timezone aware datetime

    Raises:
        ValueError: If the value is not a valid RFC 3339 timestamp

    """
    match = RFC3339_PATTERN.match(value)
    if not match:
        raise ValueError(f"invalid RFC3339 timestamp: {value}")
    fraction = match.group("fraction")
    if fraction and len(fraction) > 7:
        value = value.replace(fraction, fraction[:7], 1)
    return datetime.fromisoformat(value.upper())


def parse_bool(value: str) -> bool:
    """Parse the boolean spellings accepted in query strings."""
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean value: {value}")


def _parse_int(value: str) -> int:
    # a bare leading zero marks an octal literal
    if _LEGACY_OCTAL_PATTERN.match(value):
        return int(value, 8)
    return int(value, 0)


def string_to_value(value: str) -> int | float | bool | str:
    """
    Coerce a raw query value into the most specific scalar.

    Integers are tried first, then floats, then booleans. Anything else stays a
    string.
    """
    if not value or value != value.strip():
        return value
    try:
        number = _parse_int(value)
    except ValueError:
        pass
    else:
        if _INT64_MIN <= number <= _INT64_MAX:
            return number
    try:
        return float(value)
    except ValueError:
        pass
    try:
        return parse_bool(value)
    except ValueError:
        return value


def to_string(value: object) -> str:
    """Render a stored scalar the way it is reported in aggregation results."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return format_rfc3339(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def split_ignore_escaped(value: str, separator: str, escape: str) -> list[str]:
    """Split ``value`` on ``separator`` unless it is preceded by ``escape``."""
    parts: list[str] = []
    current: list[str] = []
    previous = ""
    for char in value:
        if char == separator and previous != escape:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
        previous = char
    parts.append("".join(current))
    return parts


def flatten(document: dict[str, object], prefix: str = "") -> dict[str, object]:
    """
    Flatten nested mappings into dotted keys.

    Lists and empty mappings are kept as leaf values, ``None`` values are
    dropped.
    """
    flat: dict[str, object] = {}
    for key, value in document.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict) and value:
            flat.update(flatten(value, path))
        elif value is not None:
            flat[path] = value
    return flat
