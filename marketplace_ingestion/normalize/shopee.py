"""
Shopee order normalizer.

Shopee orders carry the marketplace payload under `shopee_data.order_detail`
(required) and an optional `shopee_data.order_return`. Timestamps are epoch
seconds; money is integer VND.
"""

from typing import Any, Dict, List, Optional, Tuple

from marketplace_ingestion.lookups.keys import customer_key, line_item_key, payment_key, shipping_key
from marketplace_ingestion.lookups.partner_status import sub_status_reference
from marketplace_ingestion.lookups.status_codes import (
    StatusClassification,
    classify_status,
    refund_status_from_shopee_return,
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
    to_int,
    to_str,
)

COD_PAYMENT_METHODS = frozenset({"COD", "CASH_ON_DELIVERY"})
DEFAULT_CARRIER = "Shopee Logistics"


class ShopeeNormalizer(OrderAdapter):
    platform = Platform.SHOPEE

    def build_context(self, raw_order: Dict[str, Any]) -> Optional[OrderContext]:
        detail = safe_get(raw_order, "shopee_data", "order_detail")
        if not isinstance(detail, dict):
            return None
        order_id = to_str(first_present(detail.get("order_sn"), raw_order.get("order_id")))
        if not order_id:
            return None
        created_at = from_epoch(detail.get("create_time")) or parse_timestamp(
            raw_order.get("inserted_at"), assume_utc=True
        )
        return OrderContext(
            raw=raw_order,
            body=detail,
            order_id=order_id,
            created_at=created_at,
            updated_at=from_epoch(detail.get("update_time")),
            extras={"order_return": as_dict(safe_get(raw_order, "shopee_data", "order_return"))},
        )

    def _items(self, ctx: OrderContext) -> List[Dict[str, Any]]:
        return [item for item in as_list(ctx.body.get("item_list")) if isinstance(item, dict)]

    def _is_cod(self, ctx: OrderContext) -> bool:
        if to_bool(ctx.body.get("cod")):
            return True
        return to_code(ctx.body.get("payment_method"), default="ONLINE") in COD_PAYMENT_METHODS

    @staticmethod
    def _quantity(item: Dict[str, Any]) -> int:
        return to_int(item.get("model_quantity_purchased"))

    @staticmethod
    def _sale_price(item: Dict[str, Any]) -> float:
        return to_float(first_present(item.get("model_discounted_price"), item.get("model_original_price")))

    def _net_revenue(self, ctx: OrderContext) -> float:
        net = ctx.raw.get("total_price_after_sub_discount")
        if net is not None:
            return to_float(net)
        items = self._items(ctx)
        if items:
            return sum(self._sale_price(item) * self._quantity(item) for item in items)
        return to_float(ctx.body.get("total_amount")) - self._shipping_fee(ctx)

    def _discount(self, ctx: OrderContext) -> float:
        discount = 0.0
        for item in self._items(ctx):
            original = to_float(item.get("model_original_price"))
            discount += max(original - self._sale_price(item), 0.0) * self._quantity(item)
        return discount

    def _shipping_fee(self, ctx: OrderContext) -> float:
        return to_float(first_present(ctx.body.get("actual_shipping_fee"), ctx.body.get("estimated_shipping_fee")))

    # Hooks

    def normalize_status(self, ctx: OrderContext) -> StatusClassification:
        return classify_status(
            self.platform,
            ctx.body.get("order_status"),
            refund_status=refund_status_from_shopee_return(ctx.extras["order_return"]),
            picked_up=to_int(ctx.body.get("pickup_done_time")) > 0,
        )

    def normalize_customer(self, ctx: OrderContext) -> Customer:
        address = as_dict(ctx.body.get("recipient_address"))
        phone = address.get("phone")
        customer_id = self.synthesize_customer_id(ctx.body.get("buyer_user_id"), phone, ctx.order_id)
        name = to_str(first_present(ctx.body.get("buyer_username"), address.get("name")))
        if customer_id.startswith(GUEST_PREFIX):
            return self.guest_customer(customer_id, name=name, phone=phone)

        net = self._net_revenue(ctx)
        return Customer(
            customer_id=customer_id,
            customer_key=customer_key(customer_id),
            platform_customer_id=to_str(ctx.body.get("buyer_user_id"), default=customer_id),
            phone_hash=hash_contact(phone),
            customer_segment=self.platform.value,
            customer_tier="STANDARD",
            acquisition_channel=self.platform.value,
            **self.lifetime_fields(ctx, net),
            total_items_purchased=sum(self._quantity(item) for item in self._items(ctx)),
            cod_preference_rate=100.0 if self._is_cod(ctx) else 0.0,
            preferred_payment_method=to_code(ctx.body.get("payment_method"), default="ONLINE"),
            preferred_platform=self.platform.value,
            primary_shipping_province=to_str(address.get("state")),
            customer_name=name,
        )

    def normalize_items(self, ctx: OrderContext) -> Tuple[List[OrderItem], List[Product]]:
        items, products = [], []
        for sequence, item in enumerate(self._items(ctx), start=1):
            item_id = to_str(item.get("item_id"))
            sku = synthesize_sku(first_present(item.get("model_sku"), item.get("item_sku")), item_id, prefix="SHOPEE_")
            platform_product_id = f"SP_{item_id}"
            quantity = self._quantity(item)
            price = self._sale_price(item)
            original = to_float(first_present(item.get("model_original_price"), price))
            image_url = to_str(safe_get(item, "image_info", "image_url"))

            items.append(OrderItem(
                order_id=ctx.order_id,
                sku=sku,
                platform_product_id=platform_product_id,
                quantity=quantity,
                unit_price=price,
                total_price=price * quantity,
                item_discount=max(original - price, 0.0) * quantity,
                promotion_type=to_str(item.get("promotion_type")),
                promotion_code=to_str(item.get("promotion_id")),
                item_sequence=sequence,
                op_id=line_item_key(ctx.order_id, first_present(item.get("order_item_id"), item_id)),
            ))
            products.append(Product(
                sku=sku,
                platform_product_id=platform_product_id,
                product_id=item_id,
                variation_id=to_str(item.get("model_id")),
                product_name=to_str(item.get("item_name"), default=f"Product {item_id}"),
                model=to_str(item.get("model_name")),
                # Shopee reports item weight in kilograms
                weight_gram=int(to_float(item.get("weight")) * 1000),
                retail_price=price,
                original_price=original,
                price_range=price_range(price),
                primary_image_url=image_url,
                image_count=1 if image_url else 0,
                sku_group=to_str(item.get("item_sku")),
            ))
        return items, products

    def normalize_order(
        self,
        ctx: OrderContext,
        customer: Customer,
        items: List[OrderItem],
        classification: StatusClassification,
    ) -> Order:
        detail = ctx.body
        net = self._net_revenue(ctx)
        discount = self._discount(ctx)
        shipping_fee = self._shipping_fee(ctx)
        is_cod = self._is_cod(ctx)
        ad_id = ctx.raw.get("ads_source")
        ad_revenue, organic_revenue = split_ad_revenue(net, ad_id)
        order_return = ctx.extras["order_return"]
        picked_up_at = from_epoch(detail.get("pickup_done_time"))
        to_ship, to_deliver, total_hours = fulfillment_hours(ctx.created_at, picked_up_at, None)
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
            discount_amount=discount,
            cod_amount=cod_amount(net, is_cod),
            seller_discount=discount,
            original_price=gross_revenue(net, discount),
            estimated_shipping_fee=to_float(detail.get("estimated_shipping_fee")),
            actual_shipping_fee=to_float(detail.get("actual_shipping_fee")),
            shipping_weight_gram=to_int(detail.get("order_chargeable_weight_gram")),
            days_to_ship=to_int(detail.get("days_to_ship")),
            is_delivered=classification.is_delivered,
            is_cancelled=classification.is_cancelled,
            is_returned=classification.is_returned,
            is_cod=is_cod,
            is_new_customer=True,
            is_bulk_order=quantity >= BULK_ORDER_QUANTITY,
            is_promotional_order=discount > 0,
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
            refund_amount=to_float(order_return.get("refund_amount")) if classification.is_refunded else 0.0,
            refund_date=self._refund_date(order_return) if classification.is_refunded else "",
            is_exchanged=classification.is_replacement,
            cancel_reason=to_str(first_present(detail.get("cancel_reason"), detail.get("buyer_cancel_reason")))
            if classification.is_cancelled else "",
            order_source=order_source(ctx.raw.get("is_livestream"), ad_id, net if is_cod else 0),
        )

    def normalize_geography(self, ctx: OrderContext) -> GeographyInfo:
        address = as_dict(ctx.body.get("recipient_address"))
        return build_geography(
            ctx.order_id,
            address.get("state"),
            first_present(address.get("city"), address.get("district")),
            address.get("town"),
        )

    def normalize_payment(self, ctx: OrderContext) -> PaymentInfo:
        is_cod = self._is_cod(ctx)
        if is_cod:
            method, provider, category = "COD", "CASH", "CASH_ON_DELIVERY"
        else:
            method, provider, category = to_code(ctx.body.get("payment_method"), default="ONLINE"), "SHOPEE_PAY", "ONLINE_PAYMENT"
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
            payment_processing_time_minutes=0 if is_cod else 5,
            settlement_days=1,
        )

    def normalize_shipping(self, ctx: OrderContext) -> ShippingInfo:
        detail = ctx.body
        carrier = to_str(
            first_present(detail.get("shipping_carrier"), detail.get("checkout_shipping_carrier")),
            default=DEFAULT_CARRIER,
        )
        provider_id = to_code(carrier)
        service_type = "STANDARD"
        province = as_dict(detail.get("recipient_address")).get("state")
        return ShippingInfo(
            order_id=ctx.order_id,
            shipping_key=shipping_key(provider_id, service_type),
            provider_id=provider_id,
            provider_name=carrier,
            provider_type="MARKETPLACE",
            provider_tier="STANDARD",
            service_type=service_type,
            service_tier="STANDARD",
            delivery_commitment=f"{to_int(detail.get('days_to_ship'))} days to ship",
            shipping_method="STANDARD",
            pickup_type="PICKUP",
            delivery_type="HOME_DELIVERY",
            base_fee=self._shipping_fee(ctx),
            supports_cod=True,
            provides_tracking=bool(as_list(detail.get("package_list"))),
            coverage_provinces=build_geography(ctx.order_id, province).province_name,
            coverage_nationwide=True,
        )

    def sub_status(self, ctx: OrderContext) -> Optional[Tuple[str, str]]:
        return sub_status_reference(safe_get(ctx.body, "package_list", 0, "logistics_status"))

    @staticmethod
    def _refund_date(order_return: Dict[str, Any]) -> str:
        moment = from_epoch(order_return.get("update_time"))
        return moment.isoformat() if moment else ""
