"""
Shared normalization contract for every marketplace.

A platform adapter turns one raw order dict into a CanonicalEntitySet. The
orchestration of the steps, the status/date/geography entities and the
financial formulas live here; subclasses only know where their platform
keeps each field.
"""

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from marketplace_ingestion.lookups import geography as geo
from marketplace_ingestion.lookups.keys import (
    customer_key,
    geography_key,
    history_key,
    status_key,
)
from marketplace_ingestion.lookups.partner_status import (
    UNKNOWN_PARTNER_STATUS,
    PartnerStatusInfo,
)
from marketplace_ingestion.lookups.status_codes import StatusClassification
from marketplace_ingestion.lookups.status_details import STATUS_BEHAVIOR
from marketplace_ingestion.models.entities import (
    CanonicalEntitySet,
    Customer,
    GeographyInfo,
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusDetail,
    PartnerStatus,
    PaymentInfo,
    ProcessingDateInfo,
    Product,
    ShippingInfo,
    Status,
    SubStatus,
)
from marketplace_ingestion.platforms import Platform
from marketplace_ingestion.utils import dates
from marketplace_ingestion.utils.values import (
    as_dict,
    digits_only,
    first_present,
    is_meaningful_id,
    safe_get,
    to_bool,
    to_float,
    to_int,
    to_str,
)

GUEST_PREFIX = "GUEST_"
BULK_ORDER_QUANTITY = 10
ORGANIC_COD_THRESHOLD = 50_000


@dataclass
class OrderContext:
    """
    Pre-parsed view of one raw order, shared by all normalize_* steps.

    Attributes:
        raw: The untouched raw order
        body: The platform's order-detail dict (Pancake `data`, Shopee/TikTok `order_detail`)
        order_id: Resolved order identifier
        created_at: Order creation time in UTC+7, or None
        updated_at: Last change time in UTC+7, or None
    """

    raw: Dict[str, Any]
    body: Dict[str, Any]
    order_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    extras: Dict[str, Any] = field(default_factory=dict)


class OrderAdapter:
    """
    Base class for platform normalizers.

    Subclasses set `platform` and implement the normalize_* hooks. `normalize`
    is the only public entry point and never performs I/O.
    """

    platform: Platform

    def normalize(self, raw_order: Dict[str, Any]) -> Optional[CanonicalEntitySet]:
        """
        Normalize one raw order.

        Args:
            raw_order: Deserialized order payload from the platform API

        Returns:
            Optional[CanonicalEntitySet]: Entities for the order, or None when the
            order lacks the fields required to identify it
        """
        if not isinstance(raw_order, dict):
            return None
        ctx = self.build_context(raw_order)
        if ctx is None or not ctx.order_id:
            return None

        classification = self.normalize_status(ctx)
        customer = self.normalize_customer(ctx)
        items, products = self.normalize_items(ctx)
        order = self.normalize_order(ctx, customer, items, classification)
        partner = self.partner_status(ctx)
        sub_status = self.sub_status(ctx)

        statuses, order_statuses, details = build_status_entities(
            self.platform, ctx, classification, partner, sub_status
        )

        return CanonicalEntitySet(
            customer=customer,
            order=order,
            order_items=items,
            products=products,
            geography=self.normalize_geography(ctx),
            payment=self.normalize_payment(ctx),
            shipping=self.normalize_shipping(ctx),
            processing_date=build_processing_date(ctx.order_id, ctx.created_at),
            order_statuses=order_statuses,
            statuses=statuses,
            status_details=details,
            partner_statuses=[
                PartnerStatus(
                    id=partner.id,
                    partner_status_name=partner.name,
                    stage=partner.stage,
                    is_returned=partner.is_returned,
                )
            ],
            sub_statuses=[SubStatus(id=sub_status[0], sub_status_name=sub_status[1])] if sub_status else [],
        )

    # Hooks

    def build_context(self, raw_order: Dict[str, Any]) -> Optional[OrderContext]:
        raise NotImplementedError

    def normalize_status(self, ctx: OrderContext) -> StatusClassification:
        raise NotImplementedError

    def normalize_customer(self, ctx: OrderContext) -> Customer:
        raise NotImplementedError

    def normalize_items(self, ctx: OrderContext) -> Tuple[List[OrderItem], List[Product]]:
        raise NotImplementedError

    def normalize_order(
        self,
        ctx: OrderContext,
        customer: Customer,
        items: List[OrderItem],
        classification: StatusClassification,
    ) -> Order:
        raise NotImplementedError

    def normalize_geography(self, ctx: OrderContext) -> GeographyInfo:
        raise NotImplementedError

    def normalize_payment(self, ctx: OrderContext) -> PaymentInfo:
        raise NotImplementedError

    def normalize_shipping(self, ctx: OrderContext) -> ShippingInfo:
        raise NotImplementedError

    def partner_status(self, ctx: OrderContext) -> PartnerStatusInfo:
        """Carrier status reference for the order; unknown unless the platform reports one."""
        return UNKNOWN_PARTNER_STATUS

    def sub_status(self, ctx: OrderContext) -> Optional[Tuple[str, str]]:
        return None

    # Shared helpers for subclasses

    def synthesize_customer_id(self, user_id: Any, phone: Any, order_id: str) -> str:
        """
        Resolve the customer identifier.

        Priority: explicit platform user id, then the phone number reduced to
        digits and prefixed with the platform tag, then GUEST_<orderId>.
        """
        if is_meaningful_id(user_id):
            return to_str(user_id)
        phone_digits = digits_only(to_str(phone))
        if phone_digits:
            return f"{self.platform.tag}_{phone_digits}"
        return f"{GUEST_PREFIX}{order_id}"

    def internal_uuid(self, order_id: str) -> str:
        """Name-based UUID, stable for a (platform, order) pair."""
        return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{self.platform.value}:{order_id}"))

    def guest_customer(self, customer_id: str, name: str = "", phone: Any = None) -> Customer:
        return Customer(
            customer_id=customer_id,
            customer_key=customer_key(customer_id),
            platform_customer_id="GUEST",
            phone_hash=hash_contact(phone),
            customer_segment="GUEST",
            customer_tier="GUEST",
            acquisition_channel=self.platform.value,
            preferred_platform=self.platform.value,
            customer_name=name,
        )

    def envelope_customer(self, ctx: OrderContext) -> Dict[str, Any]:
        """Pancake `customer` block wrapped around a marketplace order, {} when absent."""
        return as_dict(first_present(ctx.raw.get("customer"), safe_get(ctx.raw, "data", "customer")))

    def lifetime_fields(self, ctx: OrderContext, order_net_revenue: float) -> Dict[str, Any]:
        """
        Customer lifetime aggregates as Customer keyword arguments.

        These columns are refreshed on every upsert, so they come from the
        envelope customer's running totals when it reports them. Only an order
        without them falls back to its own values.

        Args:
            ctx: Order being normalized
            order_net_revenue: Net revenue of this order

        Returns:
            Dict of first/last order dates, totals, AOV, recency and loyalty fields
        """
        envelope = self.envelope_customer(ctx)
        if envelope.get("order_count") is not None:
            first_order = dates.parse_timestamp(envelope.get("inserted_at"), assume_utc=True)
            last_order = dates.parse_timestamp(envelope.get("last_order_at"), assume_utc=True)
            total_orders = to_int(envelope.get("order_count"))
            total_spent = to_float(envelope.get("purchased_amount"))
        else:
            first_order = last_order = ctx.created_at
            total_orders = 1
            total_spent = order_net_revenue
        return {
            "first_order_date": first_order,
            "last_order_date": last_order,
            "total_orders": total_orders,
            "total_spent": total_spent,
            "average_order_value": average(total_spent, total_orders),
            "days_since_first_order": dates.days_between(first_order, ctx.created_at),
            "days_since_last_order": dates.days_between(last_order, ctx.created_at),
            "loyalty_points": to_int(envelope.get("reward_point")),
            "referral_count": to_int(envelope.get("count_referrals")),
            "is_referrer": to_bool(envelope.get("is_referrer")),
        }


def synthesize_sku(seller_sku: Any, line_item_id: Any, prefix: str = "SKU_") -> str:
    """Explicit seller SKU, else <prefix><lineItemId>."""
    sku = to_str(seller_sku)
    if sku:
        return sku
    return f"{prefix}{to_str(line_item_id)}"


def hash_contact(value: Any) -> str:
    """SHA-256 of a phone/email reduced to a canonical form, '' when absent."""
    text = to_str(value).lower()
    if not text:
        return ""
    if "@" not in text:
        text = digits_only(text)
        if not text:
            return ""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def gross_revenue(net_revenue: float, discount: float) -> float:
    return net_revenue + discount


def cod_amount(net_revenue: float, is_cod: bool) -> float:
    return net_revenue if is_cod else 0.0


def shipping_cost_ratio(shipping_fee: float, net_revenue: float) -> float:
    """Shipping fee as a percentage of net revenue, 0 when revenue is 0."""
    if net_revenue == 0:
        return 0.0
    return shipping_fee / net_revenue * 100


def split_ad_revenue(net_revenue: float, ad_id: Any) -> Tuple[float, float]:
    """(ad_revenue, organic_revenue) by presence of an ad attribution id."""
    if is_meaningful_id(ad_id):
        return net_revenue, 0.0
    return 0.0, net_revenue


def price_range(price: float) -> str:
    if price < 100_000:
        return "UNDER_100K"
    if price < 500_000:
        return "100K_500K"
    if price < 1_000_000:
        return "500K_1M"
    return "OVER_1M"


def order_source(is_livestream: Any, ad_id: Any, cod: Any = None) -> str:
    """Livestream, Ads, Organic (COD above 50k) or UNKNOWN."""
    if to_bool(is_livestream):
        return "Livestream"
    if is_meaningful_id(ad_id):
        return "Ads"
    if to_float(cod) > ORGANIC_COD_THRESHOLD:
        return "Organic"
    return "UNKNOWN"


def fulfillment_hours(
    created_at: Optional[datetime],
    shipped_at: Optional[datetime],
    delivered_at: Optional[datetime],
) -> Tuple[int, int, int]:
    """(order_to_ship, ship_to_delivery, total_fulfillment) in whole hours."""
    return (
        dates.hours_between(created_at, shipped_at),
        dates.hours_between(shipped_at, delivered_at),
        dates.hours_between(created_at, delivered_at),
    )


def to_code(name: Any, default: str = "") -> str:
    """'Cash on Delivery' -> 'CASH_ON_DELIVERY'."""
    text = to_str(name).upper()
    return "_".join(text.split()) if text else default


def average(total: float, count: int) -> float:
    return total / count if count > 0 else 0.0


def rate(part: int, whole: int) -> float:
    """Percentage part/whole, 0 when whole is 0."""
    return part / whole * 100 if whole > 0 else 0.0


def build_geography(
    order_id: str,
    province: Any,
    district: Any = "",
    ward: Any = "",
) -> GeographyInfo:
    """GeographyInfo for a shipping destination, classified from its province."""
    profile = geo.classify_province(to_str(province))
    district_name = to_str(district)
    ward_name = to_str(ward)
    return GeographyInfo(
        order_id=order_id,
        geography_key=geography_key(profile.province_name, district_name, ward_name),
        country_code=geo.COUNTRY_CODE,
        country_name=geo.COUNTRY_NAME,
        province_name=profile.province_name,
        province_type="CITY" if profile.is_urban else "PROVINCE",
        district_name=district_name,
        ward_name=ward_name,
        is_urban=profile.is_urban,
        is_metropolitan=profile.is_metropolitan,
        economic_tier=profile.economic_tier,
        population_density="HIGH" if profile.is_metropolitan else ("MEDIUM" if profile.is_urban else "LOW"),
        shipping_zone=profile.shipping_zone,
        delivery_complexity=profile.delivery_complexity,
        standard_delivery_days=profile.standard_delivery_days,
        express_delivery_available=profile.express_delivery_available,
    )


def build_processing_date(order_id: str, moment: Optional[datetime]) -> ProcessingDateInfo:
    """
    Calendar decomposition of the order date.

    Args:
        order_id: Order the row belongs to
        moment: Order creation time (UTC+7); None yields a row of zeros

    Returns:
        ProcessingDateInfo: Day/week/quarter/fiscal/season breakdown
    """
    if moment is None:
        return ProcessingDateInfo(order_id=order_id, is_business_day=False)

    quarter = dates.quarter_of(moment)
    weekday = moment.isoweekday()
    is_weekend = weekday >= 6
    return ProcessingDateInfo(
        order_id=order_id,
        date_key=dates.date_key(moment),
        full_date=moment,
        day_of_week=weekday,
        day_of_week_name=moment.strftime("%A").upper(),
        day_of_month=moment.day,
        day_of_year=moment.timetuple().tm_yday,
        week_of_year=moment.isocalendar()[1],
        month_of_year=moment.month,
        month_name=moment.strftime("%B").upper(),
        quarter_of_year=quarter,
        quarter_name=f"Q{quarter}",
        year=moment.year,
        is_weekend=is_weekend,
        is_business_day=not is_weekend,
        fiscal_year=moment.year,
        fiscal_quarter=quarter,
        is_shopping_season=dates.is_shopping_season(moment.month),
        season_name=dates.season_name(moment.month),
        is_peak_hour=dates.is_peak_hour(moment.hour),
        hour_of_day=moment.hour,
    )


def build_status_entities(
    platform: Platform,
    ctx: OrderContext,
    classification: StatusClassification,
    partner: PartnerStatusInfo,
    sub_status: Optional[Tuple[str, str]],
) -> Tuple[List[Status], List[OrderStatus], List[OrderStatusDetail]]:
    """
    Build the Status master row, the OrderStatus snapshot and its detail row.

    All three share one status_key derived from (platform, raw status code,
    canonical code), so the same observation always lands on the same rows.
    """
    canonical = classification.status
    key = status_key(platform.value, classification.platform_status_code, int(canonical))
    behavior = STATUS_BEHAVIOR[canonical]
    changed_at = ctx.updated_at or ctx.created_at

    status = Status(
        status_key=key,
        platform=platform.value,
        platform_status_code=classification.platform_status_code,
        platform_status_name=classification.platform_status_name,
        standard_status_code=int(canonical),
        standard_status_name=canonical.name,
        status_category=canonical.category,
    )
    snapshot = OrderStatus(
        status_key=key,
        order_id=ctx.order_id,
        sub_status_id=sub_status[0] if sub_status else "",
        partner_status_id=partner.id,
        transition_date_key=dates.date_key(changed_at),
        transition_timestamp=changed_at,
        duration_in_previous_status_hours=dates.hours_between(ctx.created_at, changed_at),
        transition_reason="ORDER_CREATED" if changed_at == ctx.created_at else "STATUS_SYNC",
        transition_trigger="SYSTEM",
        changed_by=f"{platform.value}_API",
        history_key=history_key(ctx.order_id),
    )
    detail = OrderStatusDetail(
        status_key=key,
        order_id=ctx.order_id,
        is_active_order=behavior.is_active,
        is_completed_order=behavior.is_completed,
        is_revenue_recognized=behavior.revenue_recognized,
        is_refundable=behavior.refundable,
        is_cancellable=behavior.cancellable,
        is_trackable=behavior.trackable,
        next_possible_statuses=behavior.next_possible_statuses,
        auto_transition_hours=behavior.auto_transition_hours,
        requires_manual_action=behavior.requires_manual_action,
        status_color=behavior.color,
        status_icon=behavior.icon,
        customer_description=behavior.description,
        average_duration_hours=behavior.average_duration_hours,
        success_rate=behavior.success_rate,
    )
    return [status], [snapshot], [detail]
