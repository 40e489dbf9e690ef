"""Alias-tolerant typed accessors.

Producer versions rename properties freely (``PendingCount``,
``pendingCount``, ``PendingUpdatesCount`` ...). Every lookup therefore takes an
ordered alias list and keeps the first value that coerces to the wanted type.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Mapping, Optional, TypeVar

T = TypeVar("T")

_TRUE_WORDS = {"true", "1", "yes", "y", "on"}
_FALSE_WORDS = {"false", "0", "no", "n", "off"}

MISSING = object()


def find_key(obj: Any, key: str) -> Any:
    """Value under ``key``: exact match first, then case-insensitive."""
    if not isinstance(obj, Mapping):
        return MISSING
    if key in obj:
        return obj[key]
    lowered = key.lower()
    for k, v in obj.items():
        if isinstance(k, str) and k.lower() == lowered:
            return v
    return MISSING


def get_value(obj: Any, *aliases: str) -> Any:
    """First alias present in ``obj`` (any type), or None."""
    for alias in aliases:
        value = find_key(obj, alias)
        if value is not MISSING:
            return value
    return None


def first_coercible(obj: Any, aliases, coerce: Callable[[Any], Optional[T]]) -> Optional[T]:
    if isinstance(aliases, str):
        aliases = (aliases,)
    for alias in aliases:
        value = find_key(obj, alias)
        if value is MISSING or value is None:
            continue
        converted = coerce(value)
        if converted is not None:
            return converted
    return None


# ---- coercions ----

def coerce_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            v = float(value)
        elif isinstance(value, str):
            v = float(value.strip().replace(",", "."))
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return v if math.isfinite(v) else None


def coerce_int(value: Any) -> Optional[int]:
    v = coerce_float(value)
    if v is not None and isinstance(value, int) and not isinstance(value, bool):
        return value
    return int(v) if v is not None else None


def coerce_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value in (0, 1):
            return bool(value)
        return None
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def coerce_string(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return None


def try_int(obj: Any, *aliases: str) -> Optional[int]:
    return first_coercible(obj, aliases, coerce_int)


def try_float(obj: Any, *aliases: str) -> Optional[float]:
    return first_coercible(obj, aliases, coerce_float)


def try_bool(obj: Any, *aliases: str) -> Optional[bool]:
    return first_coercible(obj, aliases, coerce_bool)


def try_string(obj: Any, *aliases: str) -> Optional[str]:
    return first_coercible(obj, aliases, coerce_string)


def try_mapping(obj: Any, *aliases: str) -> Optional[Mapping]:
    return first_coercible(obj, aliases, lambda v: v if isinstance(v, Mapping) else None)


def try_list(obj: Any, *aliases: str) -> Optional[list]:
    return first_coercible(obj, aliases, lambda v: v if isinstance(v, list) else None)
