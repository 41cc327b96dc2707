"""
Timestamp parsing and calendar helpers.

All marketplaces in scope sell in Vietnam, so every timestamp is normalized
to naive local time at a fixed UTC+7 offset before it reaches an entity.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from marketplace_ingestion.utils.logging_utils import log_warning

VN_TZ = timezone(timedelta(hours=7), name="UTC+07:00")

# Tried in this order; the first format that parses wins.
_STRING_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%d",
)

# Epoch values above this are milliseconds rather than seconds.
_EPOCH_MILLIS_THRESHOLD = 100_000_000_000

SEASONS = {
    3: "SPRING", 4: "SPRING", 5: "SPRING",
    6: "SUMMER", 7: "SUMMER", 8: "SUMMER",
    9: "AUTUMN", 10: "AUTUMN", 11: "AUTUMN",
}
SHOPPING_SEASON_MONTHS = frozenset({11, 12, 1})
PEAK_HOURS = frozenset(range(10, 15)) | frozenset(range(18, 23))


def from_epoch(value: Any) -> Optional[datetime]:
    """
    Convert epoch seconds (or milliseconds) to naive UTC+7 local time.

    Args:
        value: Epoch number or numeric string; 0 and negatives mean "not set"

    Returns:
        Optional[datetime]: Local naive datetime, or None if not set or invalid
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if seconds <= 0:
        return None
    if seconds > _EPOCH_MILLIS_THRESHOLD:
        seconds = seconds / 1000
    try:
        return datetime.fromtimestamp(seconds, tz=VN_TZ).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError):
        return None


def _to_local(parsed: datetime, assume_utc: bool) -> datetime:
    if parsed.tzinfo is not None:
        return parsed.astimezone(VN_TZ).replace(tzinfo=None)
    if assume_utc:
        return parsed.replace(tzinfo=timezone.utc).astimezone(VN_TZ).replace(tzinfo=None)
    return parsed


def parse_timestamp(value: Any, assume_utc: bool = False) -> Optional[datetime]:
    """
    Parse a platform timestamp into naive UTC+7 local time.

    Accepts epoch numbers, numeric strings, datetime objects and the
    ISO-8601-like string formats the marketplaces emit. Never raises: a value
    that matches no candidate is logged once and yields None.

    Args:
        value: Raw timestamp value
        assume_utc: Treat naive strings as UTC (Pancake sends UTC without a suffix)

    Returns:
        Optional[datetime]: Parsed local datetime or None
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _to_local(value, assume_utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return from_epoch(value)

    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return from_epoch(text)

    for fmt in _STRING_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if fmt.endswith("Z"):
            parsed = parsed.replace(tzinfo=timezone.utc)
        return _to_local(parsed, assume_utc)

    # Offsets such as +07:00 or fractional seconds of any length
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        log_warning("Timestamp Parsing", f"Unparsable timestamp {text!r}")
        return None
    return _to_local(parsed, assume_utc)


def date_key(moment: Optional[datetime]) -> int:
    """Return the yyyymmdd integer key for a datetime, 0 when absent."""
    if moment is None:
        return 0
    return moment.year * 10000 + moment.month * 100 + moment.day


def quarter_of(moment: datetime) -> int:
    return (moment.month - 1) // 3 + 1


def season_name(month: int) -> str:
    return SEASONS.get(month, "WINTER")


def is_shopping_season(month: int) -> bool:
    return month in SHOPPING_SEASON_MONTHS


def is_peak_hour(hour: int) -> bool:
    """Lunch (10-14h) and evening (18-22h) ordering peaks."""
    return hour in PEAK_HOURS


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> int:
    """Whole hours from start to end, 0 when either side is missing or reversed."""
    if start is None or end is None or end < start:
        return 0
    return int((end - start).total_seconds() // 3600)


def days_between(start: Optional[datetime], end: Optional[datetime]) -> int:
    """Whole days from start to end, 0 when either side is missing or reversed."""
    if start is None or end is None or end < start:
        return 0
    return (end - start).days
