"""
Facebook (Pancake POS) order normalizer.

Pancake orders arrive either flat or with the order body wrapped in `data`.
Money fields are integers in VND; timestamps are UTC strings without a suffix.
"""

from typing import Any, Dict, List, Optional, Tuple

from marketplace_ingestion.lookups.keys import customer_key, line_item_key, payment_key, shipping_key
from marketplace_ingestion.lookups.partner_status import (
    PICKED_UP_PARTNER_STATUSES,
    PartnerStatusInfo,
    carrier_status,
    partner_status_info,
    sub_status_reference,
)
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
    OrderAdapter,
    OrderContext,
    average,
    build_geography,
    cod_amount,
    gross_revenue,
    hash_contact,
    order_source,
    price_range,
    shipping_cost_ratio,
    split_ad_revenue,
    synthesize_sku,
)
from marketplace_ingestion.platforms import Platform
from marketplace_ingestion.utils.dates import days_between, parse_timestamp
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

EXCHANGE_TAG = "GH1P"
PLATFORM_FEE_FIELDS = ("tax", "payment_fee", "service_fee", "seller_transaction_fee")


class FacebookNormalizer(OrderAdapter):
    platform = Platform.FACEBOOK

    def build_context(self, raw_order: Dict[str, Any]) -> Optional[OrderContext]:
        body = raw_order.get("data") if isinstance(raw_order.get("data"), dict) else raw_order
        order_id = to_str(first_present(body.get("id"), raw_order.get("order_id"), raw_order.get("orderId")))
        if not order_id:
            return None
        created_at = parse_timestamp(
            first_present(raw_order.get("inserted_at"), body.get("inserted_at")), assume_utc=True
        )
        updated_at = parse_timestamp(body.get("updated_at"), assume_utc=True)
        return OrderContext(
            raw=raw_order,
            body=body,
            order_id=order_id,
            created_at=created_at,
            updated_at=updated_at,
        )

    # Field access across the flat and wrapped shapes

    def _field(self, ctx: OrderContext, *names: str) -> Any:
        return first_present(*(source.get(name) for name in names for source in (ctx.body, ctx.raw)))

    def _items(self, ctx: OrderContext) -> List[Dict[str, Any]]:
        return [item for item in as_list(self._field(ctx, "items")) if isinstance(item, dict)]

    def _return_refund(self, ctx: OrderContext) -> Dict[str, Any]:
        return as_dict(first_present(
            ctx.body.get("return_refund"),
            safe_get(ctx.raw, "tiktok_data", "return_refund"),
        ))

    def _latest_tracking(self, ctx: OrderContext) -> Dict[str, Any]:
        histories = [entry for entry in as_list(ctx.body.get("tracking_histories")) if isinstance(entry, dict)]
        if not histories:
            return {}
        dated = [(parse_timestamp(entry.get("update_at")), entry) for entry in histories]
        if all(moment is not None for moment, _ in dated):
            return max(dated, key=lambda pair: pair[0])[1]
        return histories[0]

    def _tags(self, ctx: OrderContext) -> List[str]:
        return [to_str(safe_get(tag, "name")) for tag in as_list(self._field(ctx, "tags"))]

    def _is_cod(self, ctx: OrderContext) -> bool:
        return to_float(self._field(ctx, "cod")) > 0

    @staticmethod
    def _unit_price(item: Dict[str, Any]) -> float:
        return to_float(first_present(item.get("price"), safe_get(item, "variation_info", "retail_price")))

    def _net_revenue(self, ctx: OrderContext) -> float:
        net = self._field(ctx, "total_price_after_sub_discount")
        if net is not None:
            return to_float(net)
        return sum(self._unit_price(item) * to_int(item.get("quantity")) for item in self._items(ctx))

    # Hooks

    def normalize_status(self, ctx: OrderContext) -> StatusClassification:
        picked_up = any(
            to_str(safe_get(entry, "partner_status")).lower() in PICKED_UP_PARTNER_STATUSES
            for entry in as_list(ctx.body.get("tracking_histories"))
        )
        return classify_status(
            self.platform,
            self._field(ctx, "status"),
            refund_status=refund_status_from_return_refund(self._return_refund(ctx)),
            picked_up=picked_up,
            carrier_status=carrier_status(self._latest_tracking(ctx).get("partner_status")),
        )

    def normalize_customer(self, ctx: OrderContext) -> Customer:
        customer = as_dict(self._field(ctx, "customer"))
        phones = as_list(customer.get("phone_numbers"))
        phone = first_present(phones[0] if phones else None, ctx.body.get("bill_phone_number"))
        customer_id = self.synthesize_customer_id(
            first_present(customer.get("customer_id"), customer.get("id")), phone, ctx.order_id
        )
        if not customer:
            return self.guest_customer(customer_id, phone=phone)

        emails = as_list(customer.get("emails"))
        first_order = parse_timestamp(customer.get("inserted_at"), assume_utc=True)
        last_order = parse_timestamp(customer.get("last_order_at"), assume_utc=True)
        total_orders = to_int(customer.get("order_count"))
        total_spent = to_float(customer.get("purchased_amount"))
        return Customer(
            customer_id=customer_id,
            customer_key=customer_key(customer_id),
            platform_customer_id=customer_id,
            phone_hash=hash_contact(phone),
            email_hash=hash_contact(emails[0] if emails else None),
            gender=to_str(customer.get("gender")),
            customer_segment=self.platform.value,
            customer_tier="STANDARD",
            acquisition_channel=self.platform.value,
            first_order_date=first_order,
            last_order_date=last_order,
            total_orders=total_orders,
            total_spent=total_spent,
            average_order_value=average(total_spent, total_orders),
            total_items_purchased=sum(to_int(item.get("quantity")) for item in self._items(ctx)),
            days_since_first_order=days_between(first_order, ctx.created_at),
            days_since_last_order=days_between(last_order, ctx.created_at),
            preferred_payment_method="COD" if self._is_cod(ctx) else "ONLINE",
            preferred_platform=self.platform.value,
            primary_shipping_province=to_str(safe_get(ctx.body, "shipping_address", "province_name")),
            loyalty_points=to_int(customer.get("reward_point")),
            referral_count=to_int(customer.get("count_referrals")),
            is_referrer=to_bool(customer.get("is_referrer")),
            customer_name=to_str(customer.get("name")),
        )

    def normalize_items(self, ctx: OrderContext) -> Tuple[List[OrderItem], List[Product]]:
        items, products = [], []
        for sequence, item in enumerate(self._items(ctx), start=1):
            variation = as_dict(item.get("variation_info"))
            line_id = to_str(item.get("id"))
            sku = synthesize_sku(variation.get("display_id"), line_id)
            platform_product_id = f"FB_{line_id}"
            quantity = to_int(item.get("quantity"))
            price = self._unit_price(item)
            images = [to_str(url) for url in as_list(variation.get("images")) if to_str(url)]
            fields = {to_str(f.get("name")): to_str(f.get("value")) for f in as_list(variation.get("fields")) if isinstance(f, dict)}

            items.append(OrderItem(
                order_id=ctx.order_id,
                sku=sku,
                platform_product_id=platform_product_id,
                quantity=quantity,
                unit_price=price,
                total_price=price * quantity,
                item_discount=to_float(item.get("total_discount")),
                item_sequence=sequence,
                op_id=line_item_key(ctx.order_id, line_id),
            ))
            products.append(Product(
                sku=sku,
                platform_product_id=platform_product_id,
                product_id=to_str(first_present(item.get("product_id"), variation.get("product_id"))),
                variation_id=to_str(first_present(item.get("variation_id"), variation.get("id"))),
                barcode=to_str(variation.get("barcode")),
                product_name=to_str(variation.get("name"), default=f"Product {line_id}"),
                color=fields.get("Màu", ""),
                size=fields.get("Size", ""),
                weight_gram=to_int(variation.get("weight")),
                retail_price=price,
                original_price=price,
                price_range=price_range(price),
                primary_image_url=images[0] if images else "",
                image_count=len(images),
                sku_group=to_str(variation.get("product_display_id")),
            ))
        return items, products

    def normalize_order(
        self,
        ctx: OrderContext,
        customer: Customer,
        items: List[OrderItem],
        classification: StatusClassification,
    ) -> Order:
        net = self._net_revenue(ctx)
        discount = to_float(self._field(ctx, "total_discount", "discount"))
        shipping_fee = to_float(self._field(ctx, "shipping_fee", "shippingFee"))
        is_cod = self._is_cod(ctx)
        ad_revenue, organic_revenue = split_ad_revenue(net, self._field(ctx, "ad_id"))
        refund = self._return_refund(ctx)
        seller = as_dict(ctx.body.get("assigning_seller"))
        quantity = sum(item.quantity for item in items)
        tags = self._tags(ctx)

        return Order(
            order_id=ctx.order_id,
            customer_id=customer.customer_id,
            shop_id=to_str(first_present(safe_get(ctx.body, "page", "name"), ctx.body.get("page_id"))),
            internal_uuid=self.internal_uuid(ctx.order_id),
            platform=self.platform.value,
            item_quantity=quantity,
            total_items_in_order=len(items),
            gross_revenue=gross_revenue(net, discount),
            net_revenue=net,
            shipping_fee=shipping_fee,
            tax_amount=to_float(self._field(ctx, "tax")),
            discount_amount=discount,
            cod_amount=cod_amount(net, is_cod),
            platform_fee=self._platform_fee(ctx),
            platform_discount=discount,
            original_price=net,
            estimated_shipping_fee=shipping_fee,
            actual_shipping_fee=shipping_fee,
            is_delivered=classification.is_delivered,
            is_cancelled=classification.is_cancelled,
            is_returned=classification.is_returned,
            is_cod=is_cod,
            is_new_customer=customer.total_orders <= 1,
            is_repeat_customer=customer.total_orders > 1,
            is_bulk_order=quantity >= BULK_ORDER_QUANTITY,
            is_promotional_order=discount > 0,
            customer_lifetime_orders=customer.total_orders,
            customer_lifetime_value=customer.total_spent,
            days_since_last_order=customer.days_since_last_order,
            promotion_impact=discount,
            ad_revenue=ad_revenue,
            organic_revenue=organic_revenue,
            aov=net,
            shipping_cost_ratio=shipping_cost_ratio(shipping_fee, net),
            created_at=ctx.created_at,
            seller_id=to_str(seller.get("id"), default="UNKNOWN"),
            seller_name=to_str(seller.get("name"), default="UNKNOWN"),
            seller_email=to_str(seller.get("email"), default="UNKNOWN"),
            latest_status=int(classification.status),
            is_refunded=classification.is_refunded,
            refund_amount=to_float(safe_get(refund, "refund_amount", "refund_total")),
            refund_date=self._refund_date(refund),
            is_exchanged=classification.is_replacement or any(EXCHANGE_TAG in tag for tag in tags),
            cancel_reason=to_str(ctx.body.get("returned_reason")) if classification.is_cancelled else "",
            order_source=order_source(
                self._field(ctx, "is_livestream"), self._field(ctx, "ad_id"), self._field(ctx, "cod")
            ),
        )

    def normalize_geography(self, ctx: OrderContext) -> GeographyInfo:
        address = as_dict(ctx.body.get("shipping_address"))
        return build_geography(
            ctx.order_id,
            address.get("province_name"),
            address.get("district_name"),
            address.get("commune_name"),
        )

    def normalize_payment(self, ctx: OrderContext) -> PaymentInfo:
        is_cod = self._is_cod(ctx)
        if is_cod:
            method, provider, category = "COD", "CASH", "CASH_ON_DELIVERY"
        else:
            method, provider, category = "ONLINE", "FACEBOOK_PAY", "ONLINE_PAYMENT"
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
        provider_id, service_type = "FACEBOOK_LOGISTICS", "STANDARD"
        return ShippingInfo(
            order_id=ctx.order_id,
            shipping_key=shipping_key(provider_id, service_type),
            provider_id=provider_id,
            provider_name="Facebook Logistics",
            provider_type="MARKETPLACE",
            provider_tier="STANDARD",
            service_type=service_type,
            service_tier="STANDARD",
            shipping_method="STANDARD",
            base_fee=to_float(self._field(ctx, "shipping_fee", "shippingFee")),
            supports_cod=self._is_cod(ctx),
            provides_tracking=bool(as_list(ctx.body.get("tracking_histories"))),
            coverage_provinces=build_geography(
                ctx.order_id, safe_get(ctx.body, "shipping_address", "province_name")
            ).province_name,
        )

    def partner_status(self, ctx: OrderContext) -> PartnerStatusInfo:
        return partner_status_info(self._latest_tracking(ctx).get("partner_status"))

    def sub_status(self, ctx: OrderContext) -> Optional[Tuple[str, str]]:
        return sub_status_reference(ctx.body.get("sub_status"))

    # Derived fields

    def _platform_fee(self, ctx: OrderContext) -> float:
        fees = as_dict(ctx.body.get("advanced_platform_fee"))
        return sum(to_float(fees.get(name)) for name in PLATFORM_FEE_FIELDS)

    @staticmethod
    def _refund_date(refund: Dict[str, Any]) -> str:
        moment = parse_timestamp(refund.get("update_time"))
        return moment.isoformat() if moment else ""
