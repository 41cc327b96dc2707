"""
Canonical entities produced by every platform normalizer.

Field order matches the column order of the target tables, and every field
spells out its default: empty string, zero, or False. Timestamps are the
only fields that may stay None (stored as NULL).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class Customer:
    customer_id: str = ""
    customer_key: int = 0
    platform_customer_id: str = ""
    phone_hash: str = ""
    email_hash: str = ""
    gender: str = ""
    age_group: str = ""
    customer_segment: str = ""
    customer_tier: str = ""
    acquisition_channel: str = ""
    first_order_date: Optional[datetime] = None
    last_order_date: Optional[datetime] = None
    total_orders: int = 0
    total_spent: float = 0.0
    average_order_value: float = 0.0
    total_items_purchased: int = 0
    days_since_first_order: int = 0
    days_since_last_order: int = 0
    purchase_frequency_days: float = 0.0
    return_rate: float = 0.0
    cancellation_rate: float = 0.0
    cod_preference_rate: float = 0.0
    favorite_category: str = ""
    favorite_brand: str = ""
    preferred_payment_method: str = ""
    preferred_platform: str = ""
    primary_shipping_province: str = ""
    ships_to_multiple_provinces: bool = False
    loyalty_points: int = 0
    referral_count: int = 0
    is_referrer: bool = False
    customer_name: str = ""


@dataclass
class Order:
    order_id: str = ""
    customer_id: str = ""
    shop_id: str = ""
    internal_uuid: str = ""
    platform: str = ""
    order_count: int = 1
    item_quantity: int = 0
    total_items_in_order: int = 0
    gross_revenue: float = 0.0
    net_revenue: float = 0.0
    shipping_fee: float = 0.0
    tax_amount: float = 0.0
    discount_amount: float = 0.0
    cod_amount: float = 0.0
    platform_fee: float = 0.0
    seller_discount: float = 0.0
    platform_discount: float = 0.0
    original_price: float = 0.0
    estimated_shipping_fee: float = 0.0
    actual_shipping_fee: float = 0.0
    shipping_weight_gram: int = 0
    days_to_ship: int = 0
    is_delivered: bool = False
    is_cancelled: bool = False
    is_returned: bool = False
    is_cod: bool = False
    is_new_customer: bool = False
    is_repeat_customer: bool = False
    is_bulk_order: bool = False
    is_promotional_order: bool = False
    is_same_day_delivery: bool = False
    order_to_ship_hours: int = 0
    ship_to_delivery_hours: int = 0
    total_fulfillment_hours: int = 0
    customer_order_sequence: int = 0
    customer_lifetime_orders: int = 0
    customer_lifetime_value: float = 0.0
    days_since_last_order: int = 0
    promotion_impact: float = 0.0
    ad_revenue: float = 0.0
    organic_revenue: float = 0.0
    aov: float = 0.0
    shipping_cost_ratio: float = 0.0
    created_at: Optional[datetime] = None
    seller_id: str = ""
    seller_name: str = ""
    seller_email: str = ""
    latest_status: int = 0
    is_refunded: bool = False
    refund_amount: float = 0.0
    refund_date: str = ""
    is_exchanged: bool = False
    cancel_reason: str = ""
    order_source: str = ""


@dataclass
class OrderItem:
    order_id: str = ""
    sku: str = ""
    platform_product_id: str = ""
    quantity: int = 0
    unit_price: float = 0.0
    total_price: float = 0.0
    item_discount: float = 0.0
    promotion_type: str = ""
    promotion_code: str = ""
    item_status: str = ""
    item_sequence: int = 1
    op_id: int = 0


@dataclass
class Product:
    sku: str = ""
    platform_product_id: str = ""
    product_id: str = ""
    variation_id: str = ""
    barcode: str = ""
    product_name: str = ""
    product_description: str = ""
    brand: str = ""
    model: str = ""
    category_level_1: str = ""
    category_level_2: str = ""
    category_level_3: str = ""
    category_path: str = ""
    color: str = ""
    size: str = ""
    material: str = ""
    weight_gram: int = 0
    dimensions: str = ""
    cost_price: float = 0.0
    retail_price: float = 0.0
    original_price: float = 0.0
    price_range: str = ""
    is_active: bool = True
    is_featured: bool = False
    is_seasonal: bool = False
    is_new_arrival: bool = False
    is_best_seller: bool = False
    primary_image_url: str = ""
    image_count: int = 0
    seo_title: str = ""
    seo_keywords: str = ""
    sku_group: str = ""


@dataclass
class GeographyInfo:
    order_id: str = ""
    geography_key: int = 0
    country_code: str = ""
    country_name: str = ""
    region_code: str = ""
    region_name: str = ""
    province_code: str = ""
    province_name: str = ""
    province_type: str = ""
    district_code: str = ""
    district_name: str = ""
    district_type: str = ""
    ward_code: str = ""
    ward_name: str = ""
    ward_type: str = ""
    is_urban: bool = False
    is_metropolitan: bool = False
    is_coastal: bool = False
    is_border: bool = False
    economic_tier: str = ""
    population_density: str = ""
    income_level: str = ""
    shipping_zone: str = ""
    delivery_complexity: str = ""
    standard_delivery_days: int = 0
    express_delivery_available: bool = False
    latitude: float = 0.0
    longitude: float = 0.0


@dataclass
class PaymentInfo:
    order_id: str = ""
    payment_key: int = 0
    payment_method: str = ""
    payment_category: str = ""
    payment_provider: str = ""
    is_cod: bool = False
    is_prepaid: bool = False
    is_installment: bool = False
    installment_months: int = 0
    supports_refund: bool = False
    supports_partial_refund: bool = False
    refund_processing_days: int = 0
    risk_level: str = ""
    requires_verification: bool = False
    fraud_score: float = 0.0
    transaction_fee_rate: float = 0.0
    processing_fee: float = 0.0
    payment_processing_time_minutes: int = 0
    settlement_days: int = 0


@dataclass
class ShippingInfo:
    order_id: str = ""
    shipping_key: int = 0
    provider_id: str = ""
    provider_name: str = ""
    provider_type: str = ""
    provider_tier: str = ""
    service_type: str = ""
    service_tier: str = ""
    delivery_commitment: str = ""
    shipping_method: str = ""
    pickup_type: str = ""
    delivery_type: str = ""
    base_fee: float = 0.0
    weight_based_fee: float = 0.0
    distance_based_fee: float = 0.0
    cod_fee: float = 0.0
    insurance_fee: float = 0.0
    supports_cod: bool = False
    supports_insurance: bool = False
    supports_fragile: bool = False
    supports_refrigerated: bool = False
    provides_tracking: bool = False
    provides_sms_updates: bool = False
    average_delivery_days: float = 0.0
    on_time_delivery_rate: float = 0.0
    success_delivery_rate: float = 0.0
    damage_rate: float = 0.0
    coverage_provinces: str = ""
    coverage_nationwide: bool = False
    coverage_international: bool = False


@dataclass
class ProcessingDateInfo:
    order_id: str = ""
    date_key: int = 0
    full_date: Optional[datetime] = None
    day_of_week: int = 0
    day_of_week_name: str = ""
    day_of_month: int = 0
    day_of_year: int = 0
    week_of_year: int = 0
    month_of_year: int = 0
    month_name: str = ""
    quarter_of_year: int = 0
    quarter_name: str = ""
    year: int = 0
    is_weekend: bool = False
    is_holiday: bool = False
    holiday_name: str = ""
    is_business_day: bool = True
    fiscal_year: int = 0
    fiscal_quarter: int = 0
    is_shopping_season: bool = False
    season_name: str = ""
    is_peak_hour: bool = False
    hour_of_day: int = 0


@dataclass
class Status:
    status_key: int = 0
    platform: str = ""
    platform_status_code: str = ""
    platform_status_name: str = ""
    standard_status_code: int = 0
    standard_status_name: str = ""
    status_category: str = ""


@dataclass
class OrderStatus:
    status_key: int = 0
    order_id: str = ""
    sub_status_id: str = ""
    partner_status_id: int = 0
    transition_date_key: int = 0
    transition_timestamp: Optional[datetime] = None
    duration_in_previous_status_hours: int = 0
    transition_reason: str = ""
    transition_trigger: str = ""
    changed_by: str = ""
    is_on_time_transition: bool = True
    is_expected_transition: bool = True
    history_key: int = 0


@dataclass
class OrderStatusDetail:
    status_key: int = 0
    order_id: str = ""
    is_active_order: bool = True
    is_completed_order: bool = False
    is_revenue_recognized: bool = False
    is_refundable: bool = False
    is_cancellable: bool = True
    is_trackable: bool = False
    next_possible_statuses: str = ""
    auto_transition_hours: int = 0
    requires_manual_action: bool = False
    status_color: str = ""
    status_icon: str = ""
    customer_visible: bool = True
    customer_description: str = ""
    average_duration_hours: float = 0.0
    success_rate: float = 100.0


@dataclass
class PartnerStatus:
    id: int = 0
    partner_status_name: str = ""
    stage: str = ""
    is_returned: bool = False


@dataclass
class SubStatus:
    id: str = ""
    sub_status_name: str = ""


# Entity types in foreign-key-safe write order
ENTITY_TYPES = (
    "customer",
    "product",
    "status",
    "partner_status",
    "sub_status",
    "order",
    "geography",
    "payment",
    "shipping",
    "processing_date",
    "order_item",
    "order_status",
    "order_status_detail",
)


@dataclass
class CanonicalEntitySet:
    """Everything one raw order normalizes into."""

    customer: Optional[Customer] = None
    order: Optional[Order] = None
    order_items: List[OrderItem] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    geography: Optional[GeographyInfo] = None
    payment: Optional[PaymentInfo] = None
    shipping: Optional[ShippingInfo] = None
    processing_date: Optional[ProcessingDateInfo] = None
    order_statuses: List[OrderStatus] = field(default_factory=list)
    statuses: List[Status] = field(default_factory=list)
    status_details: List[OrderStatusDetail] = field(default_factory=list)
    partner_statuses: List[PartnerStatus] = field(default_factory=list)
    sub_statuses: List[SubStatus] = field(default_factory=list)

    @property
    def order_id(self) -> str:
        return self.order.order_id if self.order else ""

    def entities_by_type(self) -> Dict[str, List[Any]]:
        """
        Flatten the set into lists keyed by entity type.

        Returns:
            Dict mapping every name in ENTITY_TYPES to its (possibly empty) list
        """

        def single(entity):
            return [entity] if entity is not None else []

        return {
            "customer": single(self.customer),
            "product": list(self.products),
            "status": list(self.statuses),
            "partner_status": list(self.partner_statuses),
            "sub_status": list(self.sub_statuses),
            "order": single(self.order),
            "geography": single(self.geography),
            "payment": single(self.payment),
            "shipping": single(self.shipping),
            "processing_date": single(self.processing_date),
            "order_item": list(self.order_items),
            "order_status": list(self.order_statuses),
            "order_status_detail": list(self.status_details),
        }
