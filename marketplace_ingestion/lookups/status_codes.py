"""
Canonical order status codes and the per-platform vocabularies that feed them.

Classification is recomputed from the latest snapshot on every pass, in
three tiers:

1. Refund/return signals (already resolved to a canonical code by the
   platform-specific helpers below) win outright.
2. A cancelled order whose goods were already picked up is RETURNED,
   otherwise CANCELED.
3. The regular lifecycle table of the platform. Unknown values become NEW.
"""

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from marketplace_ingestion.platforms import Platform
from marketplace_ingestion.utils.logging_utils import log_warning
from marketplace_ingestion.utils.values import as_dict, to_int, to_str


class StandardStatus(IntEnum):
    """The single canonical status table shared by every platform."""

    NEW = 1
    CONFIRMED = 2
    PACKAGING = 3
    SHIPPED = 4
    DELIVERED = 5
    COMPLETED = 6
    RETURNING = 7
    RETURNED = 8
    CANCELED = 9
    REFUNDED = 10
    RETURN_AND_REFUNDED = 11
    REPLACEMENT = 12

    @property
    def category(self) -> str:
        return STATUS_CATEGORIES[self]


S = StandardStatus

STATUS_CATEGORIES: Mapping[StandardStatus, str] = MappingProxyType({
    S.NEW: "PROCESSING",
    S.CONFIRMED: "PROCESSING",
    S.PACKAGING: "PROCESSING",
    S.SHIPPED: "FULFILLMENT",
    S.DELIVERED: "COMPLETED",
    S.COMPLETED: "COMPLETED",
    S.RETURNING: "RETURN",
    S.RETURNED: "RETURN",
    S.CANCELED: "CANCELLED",
    S.REFUNDED: "REFUND",
    S.RETURN_AND_REFUNDED: "REFUND",
    S.REPLACEMENT: "REFUND",
})

DELIVERED_STATUSES = frozenset({S.DELIVERED, S.COMPLETED})
RETURNED_STATUSES = frozenset({S.RETURNING, S.RETURNED, S.RETURN_AND_REFUNDED})
REFUNDED_STATUSES = frozenset({S.REFUNDED, S.RETURN_AND_REFUNDED})

# Pancake integer statuses
FACEBOOK_STATUSES: Mapping[Any, StandardStatus] = MappingProxyType({
    0: S.NEW,
    1: S.CONFIRMED,
    2: S.PACKAGING,
    3: S.SHIPPED,
    4: S.DELIVERED,
    -1: S.CANCELED,
})

SHOPEE_STATUSES: Mapping[Any, StandardStatus] = MappingProxyType({
    "UNPAID": S.NEW,
    "INVOICE_PENDING": S.NEW,
    "READY_TO_SHIP": S.PACKAGING,
    "PROCESSED": S.PACKAGING,
    "RETRY_SHIP": S.PACKAGING,
    "SHIPPED": S.SHIPPED,
    "TO_CONFIRM_RECEIVE": S.DELIVERED,
    "COMPLETED": S.COMPLETED,
    "TO_RETURN": S.RETURNING,
    "IN_CANCEL": S.CANCELED,
    "CANCELLED": S.CANCELED,
})

TIKTOK_STATUSES: Mapping[Any, StandardStatus] = MappingProxyType({
    "UNPAID": S.NEW,
    "ON_HOLD": S.CONFIRMED,
    "AWAITING_SHIPMENT": S.PACKAGING,
    "PARTIALLY_SHIPPING": S.PACKAGING,
    "AWAITING_COLLECTION": S.PACKAGING,
    "IN_TRANSIT": S.SHIPPED,
    "DELIVERED": S.DELIVERED,
    "COMPLETED": S.COMPLETED,
    "CANCELLED": S.CANCELED,
})

PLATFORM_VOCABULARIES: Mapping[Platform, Mapping[Any, StandardStatus]] = MappingProxyType({
    Platform.FACEBOOK: FACEBOOK_STATUSES,
    Platform.SHOPEE: SHOPEE_STATUSES,
    Platform.TIKTOK: TIKTOK_STATUSES,
})

# TikTok-style return_refund blocks (also embedded in Pancake orders)
RETURN_TYPE_STATUSES: Mapping[str, StandardStatus] = MappingProxyType({
    "REFUND_ONLY": S.REFUNDED,
    "RETURN_AND_REFUND": S.RETURN_AND_REFUNDED,
    "REPLACEMENT": S.REPLACEMENT,
})
RETURN_COMPLETED_STATUSES = frozenset({
    "RETURN_OR_REFUND_REQUEST_COMPLETE",
    "REPLACEMENT_REQUEST_COMPLETE",
    "COMPLETED",
})
RETURN_IGNORED_STATUSES = frozenset({
    "RETURN_OR_REFUND_REQUEST_REJECT",
    "REFUND_OR_RETURN_REQUEST_REJECT",
    "RETURN_OR_REFUND_REQUEST_CANCEL",
    "REJECTED",
    "CANCELLED",
})

# Shopee order_return.return_solution
SHOPEE_RETURN_SOLUTIONS: Mapping[int, StandardStatus] = MappingProxyType({
    0: S.RETURN_AND_REFUNDED,
    1: S.REFUNDED,
})
SHOPEE_RETURN_COMPLETED = frozenset({"COMPLETED", "ACCEPTED", "REFUND_PAID"})
SHOPEE_RETURN_IGNORED = frozenset({"CANCELLED", "CLOSED"})

_warned_unmapped = set()


@dataclass(frozen=True)
class StatusClassification:
    """Outcome of classify_status: the canonical code plus the raw code it came from."""

    status: StandardStatus
    platform_status_code: str
    platform_status_name: str

    @property
    def is_delivered(self) -> bool:
        return self.status in DELIVERED_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return self.status == S.CANCELED

    @property
    def is_returned(self) -> bool:
        return self.status in RETURNED_STATUSES

    @property
    def is_refunded(self) -> bool:
        return self.status in REFUNDED_STATUSES

    @property
    def is_replacement(self) -> bool:
        return self.status == S.REPLACEMENT


def _vocabulary_key(platform: Platform, raw_status: Any) -> Any:
    if platform == Platform.FACEBOOK:
        return to_int(raw_status, default=None)
    return to_str(raw_status).upper() or None


def map_lifecycle_status(platform: Platform, raw_status: Any) -> StandardStatus:
    """
    Look up the regular lifecycle status in the platform's vocabulary.

    Args:
        platform: Platform whose vocabulary applies
        raw_status: Raw status value from the payload

    Returns:
        StandardStatus: Mapped status, NEW for missing or unknown values
    """
    key = _vocabulary_key(platform, raw_status)
    status = PLATFORM_VOCABULARIES[platform].get(key)
    if status is None:
        marker = (platform, key)
        if key is not None and marker not in _warned_unmapped:
            _warned_unmapped.add(marker)
            log_warning(
                f"{platform.display_name} Status Mapping",
                f"Unmapped status {raw_status!r}, defaulting to NEW",
            )
        return S.NEW
    return status


def classify_status(
    platform: Platform,
    raw_status: Any,
    refund_status: Optional[StandardStatus] = None,
    picked_up: bool = False,
    carrier_status: Optional[StandardStatus] = None,
) -> StatusClassification:
    """
    Classify an order snapshot into one canonical status.

    Args:
        platform: Platform the order came from
        raw_status: Raw platform status value
        refund_status: Canonical code resolved from refund/return signals, if any
        picked_up: Whether a pickup/fulfillment event already happened
        carrier_status: Canonical code implied by carrier tracking (Pancake only)

    Returns:
        StatusClassification: Canonical status with the raw code it was derived from
    """
    code = to_str(raw_status) or "UNKNOWN"
    lifecycle = map_lifecycle_status(platform, raw_status)

    if refund_status is not None:
        status = refund_status
    elif lifecycle == S.CANCELED:
        status = S.RETURNED if picked_up else S.CANCELED
    elif carrier_status is not None:
        status = carrier_status
    else:
        status = lifecycle

    return StatusClassification(
        status=status,
        platform_status_code=code,
        platform_status_name=lifecycle.name,
    )


def refund_status_from_return_refund(block: Any) -> Optional[StandardStatus]:
    """
    Resolve a TikTok-style return_refund block.

    Args:
        block: Dict with return_type and return_status, or None

    Returns:
        Optional[StandardStatus]: Refund-family code, RETURNING for a return
        still in progress, or None when the block carries no usable signal
    """
    block = as_dict(block)
    return_type = to_str(block.get("return_type")).upper()
    return_status = to_str(block.get("return_status")).upper()
    mapped = RETURN_TYPE_STATUSES.get(return_type)
    if mapped is None or return_status in RETURN_IGNORED_STATUSES:
        return None
    if return_status in RETURN_COMPLETED_STATUSES:
        return mapped
    if mapped == S.RETURN_AND_REFUNDED and return_status:
        return S.RETURNING
    return None


def refund_status_from_shopee_return(block: Any) -> Optional[StandardStatus]:
    """Resolve a Shopee order_return block the same way."""
    block = as_dict(block)
    if not block:
        return None
    status = to_str(block.get("status")).upper()
    mapped = SHOPEE_RETURN_SOLUTIONS.get(to_int(block.get("return_solution"), default=-1))
    if mapped is None or status in SHOPEE_RETURN_IGNORED:
        return None
    if status in SHOPEE_RETURN_COMPLETED:
        return mapped
    if mapped == S.RETURN_AND_REFUNDED and status:
        return S.RETURNING
    return None
