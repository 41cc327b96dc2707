"""
Province classification for shipping destinations.

Province strings are free text ("TP. Hồ Chí Minh", "Thành phố Hà Nội"),
so matching is a case-insensitive substring test on NFC-normalized text.
Accents are never stripped: the APIs send Vietnamese script, sometimes in
decomposed form.
"""

import unicodedata
from dataclasses import dataclass
from typing import Optional, Tuple

UNKNOWN_PROVINCE = "Unknown"
COUNTRY_CODE = "VN"
COUNTRY_NAME = "Vietnam"

METROPOLITAN_CITIES: Tuple[str, ...] = ("Hà Nội", "Hồ Chí Minh")
URBAN_CITIES: Tuple[str, ...] = ("Hà Nội", "Hồ Chí Minh", "Đà Nẵng", "Hải Phòng", "Cần Thơ")

TIER_DELIVERY_DAYS = {"TIER_1": 1, "TIER_2": 2, "TIER_3": 3}
TIER_SHIPPING_ZONES = {"TIER_1": "ZONE_1", "TIER_2": "ZONE_2", "TIER_3": "ZONE_3"}
TIER_DELIVERY_COMPLEXITY = {"TIER_1": "LOW", "TIER_2": "MEDIUM", "TIER_3": "HIGH"}


def _fold(text: str) -> str:
    return unicodedata.normalize("NFC", text).casefold()


def _matches_any(province: Optional[str], cities: Tuple[str, ...]) -> bool:
    if not province:
        return False
    folded = _fold(province)
    return any(_fold(city) in folded for city in cities)


def clean_province(province: Optional[str]) -> str:
    """Trimmed province name, 'Unknown' when empty."""
    if province is None:
        return UNKNOWN_PROVINCE
    cleaned = unicodedata.normalize("NFC", str(province)).strip()
    return cleaned if cleaned else UNKNOWN_PROVINCE


def is_urban(province: Optional[str]) -> bool:
    return _matches_any(province, URBAN_CITIES)


def is_metropolitan(province: Optional[str]) -> bool:
    return _matches_any(province, METROPOLITAN_CITIES)


def economic_tier(province: Optional[str]) -> str:
    if is_metropolitan(province):
        return "TIER_1"
    if is_urban(province):
        return "TIER_2"
    return "TIER_3"


@dataclass(frozen=True)
class ProvinceProfile:
    """Everything the geography and shipping entities derive from a province."""

    province_name: str
    is_urban: bool
    is_metropolitan: bool
    economic_tier: str
    shipping_zone: str
    standard_delivery_days: int
    delivery_complexity: str
    express_delivery_available: bool


def classify_province(province: Optional[str]) -> ProvinceProfile:
    """
    Classify a free-text province into tier, zone and delivery SLA.

    Args:
        province: Province name as sent by the marketplace

    Returns:
        ProvinceProfile: Classification; unknown provinces land in TIER_3
    """
    tier = economic_tier(province)
    return ProvinceProfile(
        province_name=clean_province(province),
        is_urban=is_urban(province),
        is_metropolitan=is_metropolitan(province),
        economic_tier=tier,
        shipping_zone=TIER_SHIPPING_ZONES[tier],
        standard_delivery_days=TIER_DELIVERY_DAYS[tier],
        delivery_complexity=TIER_DELIVERY_COMPLEXITY[tier],
        express_delivery_available=tier != "TIER_3",
    )
