"""
Unit tests for the shared normalization helpers.
"""

from datetime import datetime

import pytest

from marketplace_ingestion.models.entities import ProcessingDateInfo
from marketplace_ingestion.normalize.base import (
    build_geography,
    build_processing_date,
    cod_amount,
    gross_revenue,
    hash_contact,
    order_source,
    price_range,
    shipping_cost_ratio,
    split_ad_revenue,
    synthesize_sku,
    to_code,
)
from marketplace_ingestion.normalize.facebook import FacebookNormalizer
from marketplace_ingestion.normalize.tiktok import TikTokNormalizer


class TestFinancials:
    def test_gross_is_net_plus_discount(self):
        assert gross_revenue(100000, 10000) == 110000

    def test_cod_amount(self):
        assert cod_amount(100000, True) == 100000
        assert cod_amount(100000, False) == 0

    def test_shipping_cost_ratio(self):
        assert shipping_cost_ratio(15000, 100000) == 15.0
        assert shipping_cost_ratio(15000, 0) == 0.0

    def test_split_ad_revenue(self):
        assert split_ad_revenue(100000, "ad-9") == (100000, 0.0)
        assert split_ad_revenue(100000, None) == (0.0, 100000)

    @pytest.mark.parametrize("price, bucket", [
        (99999, "UNDER_100K"),
        (100000, "100K_500K"),
        (500000, "500K_1M"),
        (1000000, "OVER_1M"),
    ])
    def test_price_range(self, price, bucket):
        assert price_range(price) == bucket

    @pytest.mark.parametrize("livestream, ad_id, cod, source", [
        (True, "ad-1", 0, "Livestream"),
        (False, "ad-1", 0, "Ads"),
        (None, None, 60000, "Organic"),
        (None, None, 50000, "UNKNOWN"),
    ])
    def test_order_source(self, livestream, ad_id, cod, source):
        assert order_source(livestream, ad_id, cod) == source


class TestIdentifiers:
    def test_synthesize_sku(self):
        assert synthesize_sku("SELLER-1", 5) == "SELLER-1"
        assert synthesize_sku("", 5) == "SKU_5"
        assert synthesize_sku(None, "S1", prefix="TIKTOK_") == "TIKTOK_S1"

    def test_customer_id_priority(self):
        normalizer = TikTokNormalizer()
        assert normalizer.synthesize_customer_id("u-1", "0901", "O1") == "u-1"
        assert normalizer.synthesize_customer_id("null", "+84 901", "O1") == "TT_84901"
        assert normalizer.synthesize_customer_id(None, "", "O1") == "GUEST_O1"

    def test_internal_uuid_stable_per_platform(self):
        assert FacebookNormalizer().internal_uuid("1") == FacebookNormalizer().internal_uuid("1")
        assert FacebookNormalizer().internal_uuid("1") != TikTokNormalizer().internal_uuid("1")

    def test_hash_contact(self):
        assert hash_contact("0901 234 567") == hash_contact("0901-234-567")
        assert hash_contact("A@Example.com") == hash_contact("a@example.com")
        assert hash_contact(None) == ""

    def test_to_code(self):
        assert to_code("Cash on Delivery") == "CASH_ON_DELIVERY"
        assert to_code(None, default="ONLINE") == "ONLINE"


class TestBuilders:
    def test_processing_date_decomposition(self):
        info = build_processing_date("O1", datetime(2024, 11, 30, 19, 5))

        assert info.date_key == 20241130
        assert info.day_of_week == 6
        assert info.day_of_week_name == "SATURDAY"
        assert info.is_weekend is True
        assert info.is_business_day is False
        assert info.quarter_of_year == 4
        assert info.quarter_name == "Q4"
        assert info.fiscal_year == 2024
        assert info.season_name == "AUTUMN"
        assert info.is_shopping_season is True
        assert info.is_peak_hour is True
        assert info.hour_of_day == 19
        assert info.week_of_year == 48

    def test_processing_date_without_timestamp(self):
        assert build_processing_date("O1", None) == ProcessingDateInfo(order_id="O1", is_business_day=False)

    def test_geography_defaults(self):
        geography = build_geography("O1", None)

        assert geography.province_name == "Unknown"
        assert geography.country_code == "VN"
        assert geography.district_name == ""
        assert geography.geography_key != 0
