"""
Behavioral metadata for each canonical status, used to build OrderStatusDetail rows.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

from marketplace_ingestion.lookups.status_codes import StandardStatus

S = StandardStatus


@dataclass(frozen=True)
class StatusBehavior:
    is_active: bool
    is_completed: bool
    revenue_recognized: bool
    refundable: bool
    cancellable: bool
    trackable: bool
    next_statuses: Tuple[StandardStatus, ...]
    auto_transition_hours: int
    requires_manual_action: bool
    color: str
    icon: str
    description: str
    average_duration_hours: float
    success_rate: float = 95.0

    @property
    def next_possible_statuses(self) -> str:
        """Comma-joined canonical codes, e.g. '2,9'."""
        return ",".join(str(int(status)) for status in self.next_statuses)


STATUS_BEHAVIOR: Mapping[StandardStatus, StatusBehavior] = MappingProxyType({
    S.NEW: StatusBehavior(
        True, False, False, False, True, False, (S.CONFIRMED, S.CANCELED), 24, False,
        "#orange", "clock", "Your order is being processed", 2.0,
    ),
    S.CONFIRMED: StatusBehavior(
        True, False, False, False, True, False, (S.PACKAGING, S.CANCELED), 24, False,
        "#blue", "check-circle", "Your order has been confirmed", 4.0,
    ),
    S.PACKAGING: StatusBehavior(
        True, False, False, False, True, False, (S.SHIPPED, S.CANCELED), 48, False,
        "#blue", "box", "Your order is being packed", 12.0,
    ),
    S.SHIPPED: StatusBehavior(
        True, False, False, False, False, True, (S.DELIVERED, S.RETURNING), 0, False,
        "#purple", "truck", "Your order is on the way", 24.0,
    ),
    S.DELIVERED: StatusBehavior(
        False, True, True, True, False, True, (S.COMPLETED, S.RETURNING), 72, False,
        "#green", "package", "Your order has been delivered", 0.0,
    ),
    S.COMPLETED: StatusBehavior(
        False, True, True, False, False, False, (), 0, False,
        "#green", "star", "Your order is complete", 0.0, 100.0,
    ),
    S.RETURNING: StatusBehavior(
        True, False, False, True, False, True, (S.RETURNED, S.RETURN_AND_REFUNDED), 0, True,
        "#yellow", "rotate-ccw", "Your return is on its way back", 48.0,
    ),
    S.RETURNED: StatusBehavior(
        False, True, False, True, False, False, (S.RETURN_AND_REFUNDED,), 0, True,
        "#gray", "corner-up-left", "Your order has been returned", 0.0,
    ),
    S.CANCELED: StatusBehavior(
        False, True, False, False, False, False, (), 0, False,
        "#red", "x-circle", "Your order has been cancelled", 0.0, 100.0,
    ),
    S.REFUNDED: StatusBehavior(
        False, True, False, False, False, False, (), 0, False,
        "#red", "dollar-sign", "Your payment has been refunded", 0.0, 100.0,
    ),
    S.RETURN_AND_REFUNDED: StatusBehavior(
        False, True, False, False, False, False, (), 0, False,
        "#red", "refresh-ccw", "Your return was received and refunded", 0.0, 100.0,
    ),
    S.REPLACEMENT: StatusBehavior(
        True, False, True, False, False, True, (S.SHIPPED,), 0, True,
        "#purple", "repeat", "A replacement is being prepared", 48.0,
    ),
})
