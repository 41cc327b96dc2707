"""
Shared fixtures: mocked psycopg2 connections and raw orders for each marketplace.
"""

import copy
from unittest.mock import MagicMock

import pytest


FB123_ORDER = {
    "orderId": "FB123",
    "customer": None,
    "items": [{"id": 1, "quantity": 2, "price": 50000}],
    "discount": 10000,
    "shippingFee": 15000,
    "status": 4,
}

PANCAKE_ORDER = {
    "inserted_at": "2024-05-01T01:00:00",
    "data": {
        "id": "9001",
        "status": 3,
        "page_id": "page-77",
        "cod": 250000,
        "total_price_after_sub_discount": 250000,
        "total_discount": 20000,
        "shipping_fee": 30000,
        "customer": {
            "id": None,
            "name": "Nguyễn An",
            "phone_numbers": ["0901 234 567"],
            "emails": ["an@example.com"],
            "order_count": 3,
            "purchased_amount": 600000,
            "reward_point": 12,
        },
        "items": [
            {
                "id": 501,
                "quantity": 1,
                "price": 270000,
                "variation_info": {
                    "display_id": "AO-XL-DO",
                    "name": "Áo khoác",
                    "fields": [{"name": "Màu", "value": "Đỏ"}, {"name": "Size", "value": "XL"}],
                    "images": ["https://cdn.example.com/ao.jpg"],
                    "weight": 400,
                },
            }
        ],
        "tracking_histories": [
            {"partner_status": "picked_up", "update_at": "2024-05-01T10:00:00"},
            {"partner_status": "returning", "update_at": "2024-05-03T10:00:00"},
        ],
        "shipping_address": {
            "province_name": "Thành phố Hà Nội",
            "district_name": "Quận Ba Đình",
            "commune_name": "Phường Kim Mã",
        },
        "assigning_seller": {"id": "s-1", "name": "Linh", "email": "linh@example.com"},
        "advanced_platform_fee": {"payment_fee": 1000, "service_fee": 2000},
        "sub_status": 12,
    },
}

SHOPEE_ORDER = {
    "order_id": "fallback-id",
    "shop_id": "shop-1",
    "shopee_data": {
        "order_detail": {
            "order_sn": "240501ABC",
            "order_status": "COMPLETED",
            "create_time": 1714525200,
            "update_time": 1714611600,
            "buyer_user_id": 123456,
            "buyer_username": "buyer_a",
            "cod": False,
            "payment_method": "Credit Card",
            "total_amount": 215000,
            "actual_shipping_fee": 15000,
            "shipping_carrier": "SPX Express",
            "pickup_done_time": 1714543200,
            "days_to_ship": 2,
            "recipient_address": {
                "name": "Nguyen A",
                "phone": "84901234567",
                "state": "Đà Nẵng",
                "city": "Hải Châu",
                "town": "Thạch Thang",
            },
            "item_list": [
                {
                    "item_id": 111,
                    "item_name": "Áo thun",
                    "model_id": 9,
                    "model_sku": "AT-01",
                    "model_quantity_purchased": 2,
                    "model_original_price": 120000,
                    "model_discounted_price": 100000,
                    "weight": 0.25,
                }
            ],
            "package_list": [{"logistics_status": "LOGISTICS_DELIVERY_DONE"}],
        }
    },
}

TIKTOK_ORDER = {
    "shop_id": "tt-shop",
    "tiktok_data": {
        "order_detail": {
            "id": "5780000001",
            "status": "DELIVERED",
            "user_id": "7000001",
            "buyer_email": "buyer@example.com",
            "is_cod": True,
            "create_time": 1714525200,
            "collection_time": 1714550400,
            "delivery_time": 1714568400,
            "payment": {
                "total_amount": "180000",
                "shipping_fee": "20000",
                "seller_discount": "10000",
                "platform_discount": "10000",
            },
            "recipient_address": {
                "name": "Trần B",
                "phone_number": "(+84)912345678",
                "district_info": [
                    {"address_level": "L0", "address_name": "Vietnam"},
                    {"address_level": "L1", "address_name": "Hồ Chí Minh"},
                    {"address_level": "L2", "address_name": "Quận 1"},
                    {"address_level": "L3", "address_name": "Bến Nghé"},
                ],
            },
            "line_items": [
                {
                    "id": "L1",
                    "sku_id": "S1",
                    "product_id": "P1",
                    "seller_sku": "TS-RED",
                    "sale_price": "90000",
                    "original_price": "100000",
                    "product_name": "Túi xách",
                    "display_status": "DELIVERED",
                },
                {
                    "id": "L2",
                    "sku_id": "S1",
                    "product_id": "P1",
                    "seller_sku": "TS-RED",
                    "sale_price": "90000",
                    "original_price": "100000",
                    "product_name": "Túi xách",
                    "display_status": "DELIVERED",
                },
            ],
            "shipping_provider": "J&T Express",
            "shipping_provider_id": "JT001",
            "delivery_option_name": "Standard shipping",
        }
    },
}


@pytest.fixture
def mock_conn():
    """psycopg2 connection whose cursor() always returns the same MagicMock."""
    conn = MagicMock()
    cursor = MagicMock()
    cursor.rowcount = 0
    conn.cursor.return_value = cursor
    return conn


@pytest.fixture
def fb123_order():
    return copy.deepcopy(FB123_ORDER)


@pytest.fixture
def pancake_order():
    return copy.deepcopy(PANCAKE_ORDER)


@pytest.fixture
def shopee_order():
    return copy.deepcopy(SHOPEE_ORDER)


@pytest.fixture
def tiktok_order():
    return copy.deepcopy(TIKTOK_ORDER)

