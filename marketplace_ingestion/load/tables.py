"""
Target table definitions for every canonical entity type.

Column lists come straight from the entity dataclasses, so the dataclass
field order is the table's column order. Each spec names the conflict key
and the refreshable columns overwritten when a key already exists; all
other columns are write-once.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Tuple, Type

from marketplace_ingestion.models.entities import (
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


@dataclass(frozen=True)
class TableSpec:
    """
    Shape of one target table.

    Attributes:
        entity_type: Name used to group entities (see ENTITY_TYPES)
        table_name: Target table
        entity_cls: Dataclass whose fields are the table columns
        key_columns: Natural or composite key
        refreshable_columns: Columns overwritten on conflict
        pre_delete: Replace by chunked delete + insert instead of ON CONFLICT
    """

    entity_type: str
    table_name: str
    entity_cls: Type
    key_columns: Tuple[str, ...]
    refreshable_columns: Tuple[str, ...] = ()
    pre_delete: bool = False

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(self.entity_cls))

    @property
    def is_composite(self) -> bool:
        return len(self.key_columns) > 1

    def key_of(self, entity: Any) -> Any:
        """Key value of an entity: a scalar for single-column keys, a tuple otherwise."""
        if not self.is_composite:
            return getattr(entity, self.key_columns[0])
        return tuple(getattr(entity, column) for column in self.key_columns)

    def row_of(self, entity: Any) -> Tuple[Any, ...]:
        return tuple(getattr(entity, column) for column in self.columns)


TABLES: Dict[str, TableSpec] = {
    spec.entity_type: spec
    for spec in (
        TableSpec(
            "customer", "tbl_customer", Customer, ("customer_id",),
            ("platform_customer_id", "last_order_date", "total_orders", "total_spent", "preferred_platform"),
        ),
        TableSpec(
            "product", "tbl_product", Product, ("sku", "platform_product_id"),
            ("product_name", "retail_price", "original_price", "is_active", "primary_image_url", "image_count"),
        ),
        TableSpec(
            "status", "tbl_status", Status, ("status_key",),
            ("platform_status_name", "standard_status_code", "standard_status_name", "status_category"),
        ),
        TableSpec(
            "partner_status", "tbl_partner_status", PartnerStatus, ("id",),
            ("partner_status_name", "stage", "is_returned"),
        ),
        TableSpec(
            "sub_status", "tbl_substatus", SubStatus, ("id",),
            ("sub_status_name",),
        ),
        TableSpec(
            "order", "tbl_order", Order, ("order_id",),
            (
                "shop_id", "item_quantity", "gross_revenue", "net_revenue", "shipping_fee",
                "is_delivered", "is_cancelled", "is_returned", "seller_id", "seller_name",
                "seller_email", "latest_status", "is_refunded", "refund_amount", "refund_date",
                "is_exchanged", "cancel_reason", "order_source",
            ),
        ),
        TableSpec(
            "geography", "tbl_geography_info", GeographyInfo, ("order_id",),
            (
                "province_name", "district_name", "ward_name", "shipping_zone",
                "delivery_complexity", "standard_delivery_days", "express_delivery_available",
            ),
        ),
        TableSpec(
            "payment", "tbl_payment_info", PaymentInfo, ("order_id",),
            (
                "payment_method", "payment_category", "payment_provider", "is_cod",
                "is_prepaid", "processing_fee", "fraud_score",
            ),
        ),
        TableSpec(
            "shipping", "tbl_shipping_info", ShippingInfo, ("order_id",),
            ("provider_name", "service_type", "delivery_commitment", "shipping_method", "base_fee", "provides_tracking"),
        ),
        TableSpec(
            "processing_date", "tbl_processing_date_info", ProcessingDateInfo, ("order_id",),
            (
                "full_date", "day_of_week", "day_of_week_name", "is_weekend",
                "is_holiday", "is_business_day", "is_shopping_season",
            ),
        ),
        TableSpec(
            "order_item", "tbl_order_item", OrderItem, ("order_id", "sku", "platform_product_id"),
            ("quantity", "total_price"),
        ),
        TableSpec(
            "order_status", "tbl_order_status", OrderStatus,
            ("status_key", "order_id", "sub_status_id", "partner_status_id"),
            pre_delete=True,
        ),
        TableSpec(
            "order_status_detail", "tbl_order_status_detail", OrderStatusDetail,
            ("status_key", "order_id"),
            pre_delete=True,
        ),
    )
}


def get_table(entity_type: str) -> TableSpec:
    try:
        return TABLES[entity_type]
    except KeyError:
        raise ValueError(f"Unsupported entity type: {entity_type}")
