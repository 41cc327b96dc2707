"""
Carrier (partner) status and sub-status reference tables.

Pancake exposes the carrier's own tracking vocabulary; Shopee and TikTok
expose logistics sub-states per package. Both end up in small reference
tables that OrderStatus rows point to.
"""

from types import MappingProxyType
from typing import Any, Mapping, NamedTuple, Optional, Tuple

from marketplace_ingestion.lookups.status_codes import StandardStatus
from marketplace_ingestion.utils.values import to_str


class PartnerStatusInfo(NamedTuple):
    id: int
    name: str
    stage: str
    is_returned: bool


UNKNOWN_PARTNER_STATUS = PartnerStatusInfo(0, "Unknown", "Unknown", False)

PARTNER_STATUSES: Mapping[str, PartnerStatusInfo] = MappingProxyType({
    "pending": PartnerStatusInfo(1, "Pending", "Processing", False),
    "picking_up": PartnerStatusInfo(2, "Picking up", "Picking", False),
    "picked_up": PartnerStatusInfo(3, "Picked up", "Picked", False),
    "on_delivery": PartnerStatusInfo(4, "On delivery", "Shipping", False),
    "delivered": PartnerStatusInfo(5, "Delivered", "Completed", False),
    "undeliverable": PartnerStatusInfo(6, "Undeliverable", "Failed", False),
    "returning": PartnerStatusInfo(7, "Returning", "Return", True),
    "returned": PartnerStatusInfo(8, "Returned", "Return", True),
    "cancelled": PartnerStatusInfo(9, "Cancelled", "Cancelled", False),
})

# Carrier states proving the parcel left the seller
PICKED_UP_PARTNER_STATUSES = frozenset({
    "picked_up", "on_delivery", "delivered", "undeliverable", "returning", "returned",
})

CARRIER_STATUS_OVERRIDES: Mapping[str, StandardStatus] = MappingProxyType({
    "returning": StandardStatus.RETURNING,
    "returned": StandardStatus.RETURNED,
})


def partner_status_info(raw_status: Any) -> PartnerStatusInfo:
    """Reference row for a raw carrier status, UNKNOWN_PARTNER_STATUS when unmapped."""
    return PARTNER_STATUSES.get(to_str(raw_status).lower(), UNKNOWN_PARTNER_STATUS)


def carrier_status(raw_status: Any) -> Optional[StandardStatus]:
    return CARRIER_STATUS_OVERRIDES.get(to_str(raw_status).lower())


def sub_status_reference(raw_value: Any) -> Optional[Tuple[str, str]]:
    """
    Build the (sub_status_id, sub_status_name) pair for a raw sub-state.

    Args:
        raw_value: e.g. 'LOGISTICS_PICKUP_DONE' or a Pancake integer sub status

    Returns:
        Optional[Tuple[str, str]]: Reference pair, or None when there is no sub-state
    """
    sub_id = to_str(raw_value)
    if not sub_id:
        return None
    if sub_id.lstrip("-").isdigit():
        return sub_id, f"Sub status {sub_id}"
    return sub_id.upper(), sub_id.replace("_", " ").title()
