"""
TikTok Shop order normalizer.

The marketplace payload sits under `tiktok_data.order_detail` (required) with
an optional `tiktok_data.return_refund`. TikTok sends money as decimal strings
and one line item per purchased unit, so line items are folded by SKU.
"""

from typing import Any, Dict, List, Optional, Tuple

from marketplace_ingestion.lookups.keys import customer_key, line_item_key, payment_key, shipping_key
from marketplace_ingestion.lookups.partner_status import sub_status_reference
from marketplace_ingestion.lookups.status_codes import (
    StatusClassification,
    classify_status,
    refund_status_from_return_refund,
)
from marketplace_ingestion.models.entities import (
    Customer,
    GeographyInfo,
    Order,
    OrderItem,
    PaymentInfo,
    Product,
    ShippingInfo,
)
from marketplace_ingestion.normalize.base import (
    BULK_ORDER_QUANTITY,
    GUEST_PREFIX,
    OrderAdapter,
    OrderContext,
    build_geography,
    cod_amount,
    fulfillment_hours,
    gross_revenue,
    hash_contact,
    order_source,
    price_range,
    shipping_cost_ratio,
    split_ad_revenue,
    synthesize_sku,
    to_code,
)
from marketplace_ingestion.platforms import Platform
from marketplace_ingestion.utils.dates import from_epoch, parse_timestamp
from marketplace_ingestion.utils.values import (
    as_dict,
    as_list,
    first_present,
    safe_get,
    to_bool,
    to_float,
    to_str,
)

# district_info.address_level values for Vietnam addresses
PROVINCE_LEVEL = "L1"
DISTRICT_LEVEL = "L2"
WARD_LEVEL = "L3"


class TikTokNormalizer(OrderAdapter):
    platform = Platform.TIKTOK

    def build_context(self, raw_order: Dict[str, Any]) -> Optional[OrderContext]:
        detail = safe_get(raw_order, "tiktok_data", "order_detail")
        if not isinstance(detail, dict):
            return None
        order_id = to_str(first_present(detail.get("id"), raw_order.get("order_id")))
        if not order_id:
            return None
        created_at = from_epoch(detail.get("create_time")) or parse_timestamp(
            raw_order.get("inserted_at"), assume_utc=True
        )
        return_refund = first_present(
            safe_get(raw_order, "tiktok_data", "return_refund"), raw_order.get("return_refund")
        )
        return OrderContext(
            raw=raw_order,
            body=detail,
            order_id=order_id,
            created_at=created_at,
            updated_at=from_epoch(detail.get("update_time")),
            extras={"return_refund": as_dict(return_refund)},
        )

    def _payment(self, ctx: OrderContext) -> Dict[str, Any]:
        return as_dict(ctx.body.get("payment"))

    def _line_items(self, ctx: OrderContext) -> List[Dict[str, Any]]:
        return [line for line in as_list(ctx.body.get("line_items")) if isinstance(line, dict)]

    def _is_cod(self, ctx: OrderContext) -> bool:
        return to_bool(ctx.body.get("is_cod"))

    def _address_levels(self, ctx: OrderContext) -> Dict[str, str]:
        levels = {}
        for entry in as_list(safe_get(ctx.body, "recipient_address", "district_info")):
            level = to_str(safe_get(entry, "address_level")).upper()
            if level and level not in levels:
                levels[level] = to_str(safe_get(entry, "address_name"))
        return levels

    def _discount(self, ctx: OrderContext) -> float:
        payment = self._payment(ctx)
        return to_float(payment.get("seller_discount")) + to_float(payment.get("platform_discount"))

    def _net_revenue(self, ctx: OrderContext) -> float:
        total = self._payment(ctx).get("total_amount")
        if total is not None:
            return to_float(total)
        return sum(to_float(line.get("sale_price")) for line in self._line_items(ctx))

    # Hooks

    def normalize_status(self, ctx: OrderContext) -> StatusClassification:
        picked_up = from_epoch(ctx.body.get("collection_time")) is not None
        return classify_status(
            self.platform,
            ctx.body.get("status"),
            refund_status=refund_status_from_return_refund(ctx.extras["return_refund"]),
            picked_up=picked_up,
        )

    def normalize_customer(self, ctx: OrderContext) -> Customer:
        address = as_dict(ctx.body.get("recipient_address"))
        phone = address.get("phone_number")
        customer_id = self.synthesize_customer_id(ctx.body.get("user_id"), phone, ctx.order_id)
        name = to_str(address.get("name"))
        if customer_id.startswith(GUEST_PREFIX):
            return self.guest_customer(customer_id, name=name, phone=phone)

        net = self._net_revenue(ctx)
        return Customer(
            customer_id=customer_id,
            customer_key=customer_key(customer_id),
            platform_customer_id=to_str(ctx.body.get("user_id"), default=customer_id),
            phone_hash=hash_contact(phone),
            email_hash=hash_contact(ctx.body.get("buyer_email")),
            customer_segment=self.platform.value,
            customer_tier="STANDARD",
            acquisition_channel=self.platform.value,
            **self.lifetime_fields(ctx, net),
            total_items_purchased=len(self._line_items(ctx)),
            cod_preference_rate=100.0 if self._is_cod(ctx) else 0.0,
            preferred_payment_method=to_code(ctx.body.get("payment_method_name"), default="ONLINE"),
            preferred_platform=self.platform.value,
            primary_shipping_province=self._address_levels(ctx).get(PROVINCE_LEVEL, ""),
            customer_name=name,
        )

    def normalize_items(self, ctx: OrderContext) -> Tuple[List[OrderItem], List[Product]]:
        items: Dict[Tuple[str, str], OrderItem] = {}
        products: Dict[Tuple[str, str], Product] = {}
        for line in self._line_items(ctx):
            sku = synthesize_sku(line.get("seller_sku"), line.get("sku_id"), prefix="TIKTOK_")
            platform_product_id = f"TT_{to_str(first_present(line.get('product_id'), line.get('sku_id')))}"
            key = (sku, platform_product_id)
            price = to_float(line.get("sale_price"))
            original = to_float(first_present(line.get("original_price"), line.get("sale_price")))
            discount = to_float(line.get("seller_discount")) + to_float(line.get("platform_discount"))

            item = items.get(key)
            if item is None:
                items[key] = OrderItem(
                    order_id=ctx.order_id,
                    sku=sku,
                    platform_product_id=platform_product_id,
                    quantity=1,
                    unit_price=price,
                    total_price=price,
                    item_discount=discount,
                    item_status=to_str(line.get("display_status")),
                    item_sequence=len(items) + 1,
                    op_id=line_item_key(ctx.order_id, line.get("id")),
                )
            else:
                item.quantity += 1
                item.total_price += price
                item.item_discount += discount

            if key not in products:
                image_url = to_str(safe_get(line, "sku_image"))
                products[key] = Product(
                    sku=sku,
                    platform_product_id=platform_product_id,
                    product_id=to_str(line.get("product_id")),
                    variation_id=to_str(line.get("sku_id")),
                    product_name=to_str(line.get("product_name"), default=f"Product {to_str(line.get('product_id'))}"),
                    model=to_str(line.get("sku_name")),
                    retail_price=price,
                    original_price=original,
                    price_range=price_range(price),
                    primary_image_url=image_url,
                    image_count=1 if image_url else 0,
                    sku_group=to_str(line.get("product_id")),
                )
        return list(items.values()), list(products.values())

    def normalize_order(
        self,
        ctx: OrderContext,
        customer: Customer,
        items: List[OrderItem],
        classification: StatusClassification,
    ) -> Order:
        detail = ctx.body
        payment = self._payment(ctx)
        net = self._net_revenue(ctx)
        discount = self._discount(ctx)
        shipping_fee = to_float(payment.get("shipping_fee"))
        is_cod = self._is_cod(ctx)
        ad_id = ctx.raw.get("ads_source")
        ad_revenue, organic_revenue = split_ad_revenue(net, ad_id)
        return_refund = ctx.extras["return_refund"]
        shipped_at = from_epoch(first_present(detail.get("collection_time"), detail.get("rts_time")))
        delivered_at = from_epoch(detail.get("delivery_time"))
        to_ship, to_deliver, total_hours = fulfillment_hours(ctx.created_at, shipped_at, delivered_at)
        quantity = sum(item.quantity for item in items)

        return Order(
            order_id=ctx.order_id,
            customer_id=customer.customer_id,
            shop_id=to_str(ctx.raw.get("shop_id")),
            internal_uuid=self.internal_uuid(ctx.order_id),
            platform=self.platform.value,
            item_quantity=quantity,
            total_items_in_order=len(items),
            gross_revenue=gross_revenue(net, discount),
            net_revenue=net,
            shipping_fee=shipping_fee,
            tax_amount=to_float(payment.get("tax")),
            discount_amount=discount,
            cod_amount=cod_amount(net, is_cod),
            seller_discount=to_float(payment.get("seller_discount")),
            platform_discount=to_float(payment.get("platform_discount")),
            original_price=to_float(payment.get("original_total_product_price"), default=gross_revenue(net, discount)),
            estimated_shipping_fee=to_float(payment.get("original_shipping_fee")),
            actual_shipping_fee=shipping_fee,
            is_delivered=classification.is_delivered,
            is_cancelled=classification.is_cancelled,
            is_returned=classification.is_returned,
            is_cod=is_cod,
            is_new_customer=True,
            is_bulk_order=quantity >= BULK_ORDER_QUANTITY,
            is_promotional_order=discount > 0,
            is_same_day_delivery=bool(
                delivered_at and ctx.created_at and delivered_at.date() == ctx.created_at.date()
            ),
            order_to_ship_hours=to_ship,
            ship_to_delivery_hours=to_deliver,
            total_fulfillment_hours=total_hours,
            customer_order_sequence=1,
            customer_lifetime_orders=customer.total_orders,
            customer_lifetime_value=customer.total_spent,
            promotion_impact=discount,
            ad_revenue=ad_revenue,
            organic_revenue=organic_revenue,
            aov=net,
            shipping_cost_ratio=shipping_cost_ratio(shipping_fee, net),
            created_at=ctx.created_at,
            seller_id=to_str(ctx.raw.get("assigned_user_id"), default="UNKNOWN"),
            seller_name=to_str(ctx.raw.get("shop_id"), default="UNKNOWN"),
            seller_email="UNKNOWN",
            latest_status=int(classification.status),
            is_refunded=classification.is_refunded,
            refund_amount=to_float(first_present(
                safe_get(return_refund, "refund_amount", "refund_total"), return_refund.get("refund_total")
            )) if classification.is_refunded else 0.0,
            refund_date=self._refund_date(return_refund) if classification.is_refunded else "",
            is_exchanged=classification.is_replacement or to_bool(detail.get("is_replacement_order")),
            cancel_reason=to_str(detail.get("cancel_reason")) if classification.is_cancelled else "",
            order_source=order_source(ctx.raw.get("is_livestream"), ad_id, net if is_cod else 0),
        )

    def normalize_geography(self, ctx: OrderContext) -> GeographyInfo:
        levels = self._address_levels(ctx)
        return build_geography(
            ctx.order_id,
            levels.get(PROVINCE_LEVEL),
            levels.get(DISTRICT_LEVEL),
            levels.get(WARD_LEVEL),
        )

    def normalize_payment(self, ctx: OrderContext) -> PaymentInfo:
        is_cod = self._is_cod(ctx)
        if is_cod:
            method, provider, category = "COD", "CASH", "CASH_ON_DELIVERY"
        else:
            method = to_code(ctx.body.get("payment_method_name"), default="ONLINE")
            provider, category = "TIKTOK_PAY", "DIGITAL_PAYMENT"
        return PaymentInfo(
            order_id=ctx.order_id,
            payment_key=payment_key(method, provider, category),
            payment_method=method,
            payment_category=category,
            payment_provider=provider,
            is_cod=is_cod,
            is_prepaid=not is_cod,
            supports_refund=True,
            supports_partial_refund=True,
            refund_processing_days=7,
            risk_level="LOW",
            settlement_days=1,
        )

    def normalize_shipping(self, ctx: OrderContext) -> ShippingInfo:
        detail = ctx.body
        provider_name = to_str(detail.get("shipping_provider"), default="TikTok Marketplace")
        provider_id = to_str(detail.get("shipping_provider_id"), default="TIKTOK")
        service_type = to_code(detail.get("delivery_option_name"), default="STANDARD")
        return ShippingInfo(
            order_id=ctx.order_id,
            shipping_key=shipping_key(provider_id, service_type),
            provider_id=provider_id,
            provider_name=provider_name,
            provider_type="MARKETPLACE",
            provider_tier="STANDARD",
            service_type=service_type,
            service_tier="STANDARD",
            delivery_commitment=to_str(detail.get("delivery_option_name")),
            shipping_method=to_str(detail.get("shipping_type"), default="STANDARD"),
            pickup_type=to_str(detail.get("fulfillment_type")),
            delivery_type=to_str(detail.get("delivery_type")),
            base_fee=to_float(self._payment(ctx).get("shipping_fee")),
            supports_cod=True,
            provides_tracking=bool(to_str(detail.get("tracking_number"))),
            coverage_provinces=build_geography(ctx.order_id, self._address_levels(ctx).get(PROVINCE_LEVEL)).province_name,
            coverage_nationwide=True,
        )

    def sub_status(self, ctx: OrderContext) -> Optional[Tuple[str, str]]:
        return sub_status_reference(safe_get(ctx.body, "line_items", 0, "display_status"))

    @staticmethod
    def _refund_date(return_refund: Dict[str, Any]) -> str:
        moment = from_epoch(return_refund.get("update_time"))
        return moment.isoformat() if moment else ""
