"""
Marketplace order ingestion.

This package pulls raw orders from the Facebook (Pancake), Shopee and TikTok
marketplace APIs, normalizes them into one canonical set of entities and
bulk upserts those entities into PostgreSQL.
"""
