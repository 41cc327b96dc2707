"""
Defensive accessors for raw marketplace payloads.

Raw orders arrive as deserialized JSON where any level may be missing, null,
or typed inconsistently (TikTok sends money as strings, Pancake sends ids as
either ints or strings). Every accessor here returns the documented default
instead of raising.
"""

import math
import re
from decimal import Decimal, InvalidOperation
from functools import reduce
from typing import Any, Dict, List, Optional


def safe_get(data: Any, *keys: Any) -> Any:
    """
    Safely walk nested dict/list values.

    Args:
        data: Root object, usually the raw order dict
        *keys: Dict keys or list indexes to follow in order

    Returns:
        The value at the path, or None if any level is missing
    """

    def accessor(obj, key):
        if obj is None:
            return None
        if isinstance(obj, dict):
            return obj.get(key)
        if isinstance(obj, list) and isinstance(key, int) and -len(obj) <= key < len(obj):
            return obj[key]
        return None

    return reduce(accessor, keys, data)


def first_present(*values: Any) -> Any:
    """Return the first value that is neither None nor an empty string."""
    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def to_str(value: Any, default: str = "") -> str:
    """Convert a raw scalar to a trimmed string, defaulting on None."""
    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text if text else default


def to_float(value: Any, default: float = 0.0) -> float:
    """
    Convert a raw number or numeric string to float.

    Args:
        value: Raw value (int, float, Decimal, or string such as "125000.00")
        default: Value returned when conversion is impossible

    Returns:
        float: Parsed value, or the default for unparsable, NaN and infinite input
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        if isinstance(value, (int, float)):
            parsed = float(value)
        else:
            parsed = float(Decimal(str(value).strip().replace(",", "")))
    except (InvalidOperation, ValueError, OverflowError):
        return default
    return parsed if math.isfinite(parsed) else default


def to_int(value: Any, default: int = 0) -> int:
    """Convert a raw value to int, truncating decimals; defaults on failure."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    parsed = to_float(value, default=None)
    if parsed is None:
        return default
    return int(parsed)


def to_bool(value: Any, default: bool = False) -> bool:
    """Interpret booleans, 0/1 and common string spellings."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in ("true", "1", "yes", "y"):
        return True
    if text in ("false", "0", "no", "n", ""):
        return False
    return default


def as_list(value: Any) -> List[Any]:
    """Return value if it is a list, otherwise an empty list."""
    return value if isinstance(value, list) else []


def as_dict(value: Any) -> Dict[str, Any]:
    """Return value if it is a dict, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def digits_only(value: Optional[str]) -> str:
    """Strip everything except digits, e.g. '+84 901-234-567' -> '84901234567'."""
    if not value:
        return ""
    return re.sub(r"\D", "", str(value))


def is_meaningful_id(value: Any) -> bool:
    """True for identifiers that are present and not the literal string 'null'."""
    text = to_str(value)
    return bool(text) and text.lower() not in ("null", "none", "0")
