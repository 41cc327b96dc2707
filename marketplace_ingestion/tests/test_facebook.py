"""
Unit tests for the Facebook (Pancake) normalizer.
"""

from datetime import datetime

from marketplace_ingestion.lookups.status_codes import StandardStatus
from marketplace_ingestion.normalize import get_normalizer
from marketplace_ingestion.normalize.facebook import FacebookNormalizer
from marketplace_ingestion.platforms import Platform


class TestFacebookNormalizer:
    """Normalization of flat and wrapped Pancake orders."""

    def test_fb123_scenario(self, fb123_order):
        result = FacebookNormalizer().normalize(fb123_order)

        order = result.order
        assert order.order_id == "FB123"
        assert order.customer_id == "GUEST_FB123"
        assert order.gross_revenue == 110000
        assert order.net_revenue == 100000
        assert order.shipping_fee == 15000
        assert order.is_delivered is True
        assert order.is_cancelled is False
        assert order.latest_status == StandardStatus.DELIVERED

        assert result.customer.customer_id == "GUEST_FB123"
        assert result.customer.customer_segment == "GUEST"

    def test_fb123_cancelled_keeps_identity(self, fb123_order):
        normalizer = FacebookNormalizer()
        delivered = normalizer.normalize(fb123_order).order

        fb123_order["status"] = -1
        cancelled = normalizer.normalize(fb123_order).order

        assert cancelled.is_delivered is False
        assert cancelled.is_cancelled is True
        assert cancelled.order_id == delivered.order_id
        assert cancelled.customer_id == delivered.customer_id

    def test_normalizing_twice_is_identical(self, pancake_order):
        normalizer = FacebookNormalizer()
        assert normalizer.normalize(pancake_order) == normalizer.normalize(pancake_order)

    def test_synthesized_sku_without_variation(self, fb123_order):
        result = FacebookNormalizer().normalize(fb123_order)

        item = result.order_items[0]
        assert item.sku == "SKU_1"
        assert item.platform_product_id == "FB_1"
        assert item.quantity == 2
        assert item.total_price == 100000
        assert result.products[0].sku == "SKU_1"

    def test_non_finite_numbers_default_to_zero(self, fb123_order):
        fb123_order["items"][0]["quantity"] = "NaN"
        fb123_order["discount"] = "Infinity"

        result = FacebookNormalizer().normalize(fb123_order)

        assert result is not None
        assert result.order_items[0].quantity == 0
        assert result.order.net_revenue == 0
        assert result.order.gross_revenue == 0

    def test_wrapped_order(self, pancake_order):
        result = FacebookNormalizer().normalize(pancake_order)

        assert result.order_id == "9001"
        assert result.customer.customer_id == "FB_0901234567"
        assert result.customer.customer_name == "Nguyễn An"
        assert result.order.is_repeat_customer is True
        assert result.order.created_at == datetime(2024, 5, 1, 8, 0)
        assert result.order.gross_revenue == 270000
        assert result.order.net_revenue == 250000
        assert result.order.cod_amount == 250000
        assert result.order.platform_fee == 3000
        assert result.order.order_source == "Organic"
        assert result.order.seller_name == "Linh"
        assert result.payment.payment_method == "COD"
        assert result.payment.is_cod is True

    def test_product_attributes_from_variation(self, pancake_order):
        product = FacebookNormalizer().normalize(pancake_order).products[0]

        assert product.sku == "AO-XL-DO"
        assert product.color == "Đỏ"
        assert product.size == "XL"
        assert product.weight_gram == 400
        assert product.image_count == 1
        assert product.price_range == "100K_500K"

    def test_latest_carrier_status_overrides_lifecycle(self, pancake_order):
        result = FacebookNormalizer().normalize(pancake_order)

        assert result.order.latest_status == StandardStatus.RETURNING
        assert result.order.is_returned is True
        assert result.partner_statuses[0].id == 7
        assert result.order_statuses[0].partner_status_id == 7

    def test_refund_wins_over_cancellation(self, fb123_order):
        fb123_order["status"] = -1
        fb123_order["return_refund"] = {"return_type": "REFUND_ONLY", "return_status": "COMPLETED"}

        order = FacebookNormalizer().normalize(fb123_order).order

        assert order.latest_status == StandardStatus.REFUNDED
        assert order.is_refunded is True
        assert order.is_cancelled is False

    def test_cancelled_after_pickup_is_returned(self, pancake_order):
        pancake_order["data"]["status"] = -1
        pancake_order["data"]["tracking_histories"] = [
            {"partner_status": "on_delivery", "update_at": "2024-05-02T10:00:00"},
        ]

        order = FacebookNormalizer().normalize(pancake_order).order

        assert order.latest_status == StandardStatus.RETURNED
        assert order.is_cancelled is False
        assert order.is_returned is True

    def test_exchange_tag_marks_exchanged(self, fb123_order):
        fb123_order["tags"] = [{"name": "GH1P đổi size"}]

        assert FacebookNormalizer().normalize(fb123_order).order.is_exchanged is True

    def test_geography_and_sub_status(self, pancake_order):
        result = FacebookNormalizer().normalize(pancake_order)

        assert result.geography.province_name == "Thành phố Hà Nội"
        assert result.geography.is_metropolitan is True
        assert result.geography.economic_tier == "TIER_1"
        assert result.geography.ward_name == "Phường Kim Mã"
        assert result.sub_statuses[0].id == "12"
        assert result.order_statuses[0].sub_status_id == "12"

    def test_status_rows_share_one_key(self, pancake_order):
        result = FacebookNormalizer().normalize(pancake_order)

        keys = {
            result.statuses[0].status_key,
            result.order_statuses[0].status_key,
            result.status_details[0].status_key,
        }
        assert len(keys) == 1
        assert result.statuses[0].platform == "FACEBOOK"
        assert result.statuses[0].platform_status_code == "3"
        assert result.order_statuses[0].changed_by == "FACEBOOK_API"

    def test_missing_order_id_is_skipped(self):
        assert FacebookNormalizer().normalize({"status": 4, "items": []}) is None

    def test_non_dict_is_skipped(self):
        assert FacebookNormalizer().normalize(["not", "an", "order"]) is None

    def test_dispatch_by_platform(self):
        assert isinstance(get_normalizer(Platform.FACEBOOK), FacebookNormalizer)
        assert isinstance(get_normalizer("FACEBOOK"), FacebookNormalizer)
