"""Platform normalizers: raw marketplace orders to canonical entities."""

from marketplace_ingestion.normalize.base import OrderAdapter
from marketplace_ingestion.normalize.facebook import FacebookNormalizer
from marketplace_ingestion.normalize.shopee import ShopeeNormalizer
from marketplace_ingestion.normalize.tiktok import TikTokNormalizer
from marketplace_ingestion.platforms import Platform

NORMALIZERS = {
    Platform.FACEBOOK: FacebookNormalizer,
    Platform.SHOPEE: ShopeeNormalizer,
    Platform.TIKTOK: TikTokNormalizer,
}


def get_normalizer(platform: Platform) -> OrderAdapter:
    """Return a normalizer instance for the given platform."""
    return NORMALIZERS[Platform(platform)]()
