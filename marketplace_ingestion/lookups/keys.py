"""
Deterministic surrogate keys.

Keys must be identical across processes and runs so that re-importing the
same order upserts the same rows. Python's built-in hash() is salted per
process, so keys are derived from an MD5 digest instead.
"""

import hashlib
from typing import Any

# 60 bits keeps every key positive inside a PostgreSQL BIGINT.
_KEY_HEX_DIGITS = 15


def _normalize_part(part: Any) -> str:
    if part is None:
        return ""
    return str(part).strip().lower()


def stable_key(*parts: Any) -> int:
    """
    Build a positive 60-bit integer key from the given parts.

    Parts are trimmed and lower-cased, so "Hà Nội" and " hà nội " share a
    key. Accents are preserved.

    Args:
        *parts: Values that identify the row

    Returns:
        int: Deterministic key
    """
    joined = "|".join(_normalize_part(part) for part in parts)
    digest = hashlib.md5(joined.encode("utf-8")).hexdigest()
    return int(digest[:_KEY_HEX_DIGITS], 16)


def customer_key(customer_id: str) -> int:
    return stable_key("customer", customer_id)


def geography_key(province: str, district: str, ward: str = "") -> int:
    return stable_key("geography", province, district, ward)


def payment_key(method: str, provider: str, category: str) -> int:
    return stable_key("payment", method, provider, category)


def shipping_key(provider_id: str, service_type: str) -> int:
    return stable_key("shipping", provider_id, service_type)


def status_key(platform: str, platform_status_code: str, standard_status_code: int) -> int:
    """Key of one (platform status, canonical status) pair in the Status master table."""
    return stable_key("status", platform, platform_status_code, standard_status_code)


def history_key(order_id: str) -> int:
    return stable_key("history", order_id)


def line_item_key(order_id: str, line_item_id: Any) -> int:
    return stable_key("line_item", order_id, line_item_id)
