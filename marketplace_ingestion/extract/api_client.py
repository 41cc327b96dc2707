"""
Marketplace API extraction module.

Fetches one page of raw orders at a time from the Facebook (Pancake), Shopee
and TikTok order endpoints. Responses look like
{"status": ..., "data": {"orders": [...]}}, optionally wrapped in an API
Gateway Lambda proxy envelope. Paging until a short page is the caller's job.
"""

import json
import time
from typing import Any, Dict, List, Optional

import requests

from marketplace_ingestion.config import Config
from marketplace_ingestion.platforms import Platform
from marketplace_ingestion.utils.logging_utils import log_error, log_progress

RETRYABLE_STATUS_CODES = (500, 502, 503, 504)


class MarketplaceClient:
    """
    Paginated order client for one marketplace.

    Args:
        platform: Marketplace this client talks to
        url: Endpoint; defaults to the platform's configured URL
        page_size: Default page size for fetch_page
        max_retries: Attempts per page on 5xx responses and transport errors
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        platform: Platform,
        url: Optional[str] = None,
        page_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        self.platform = Platform(platform)
        self.url = url or Config.api_url(self.platform)
        self.page_size = page_size or Config.API_PAGE_SIZE
        self.max_retries = max_retries or Config.API_MAX_RETRIES
        self.timeout = timeout or Config.API_TIMEOUT_SECONDS
        self.retry_delay = 1

        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if Config.API_AUTH_HEADER and Config.API_KEY:
            self.session.headers.update({Config.API_AUTH_HEADER: Config.API_KEY})

    @property
    def _section(self) -> str:
        return f"API Extraction - {self.platform.display_name}"

    def __enter__(self) -> "MarketplaceClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def fetch_page(self, date: str, page: int, page_size: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Fetch one page of raw orders for a date.

        Args:
            date: Business date, YYYY-MM-DD
            page: 1-based page number
            page_size: Orders per page; a shorter page means no more data

        Returns:
            List of raw order dicts, exactly as the API returned them

        Raises:
            requests.exceptions.RequestException: If the page still fails after all retries
            ValueError: If the response is not a recognizable order payload
        """
        params = {"date": date, "page": page, "page_size": page_size or self.page_size}
        data = self._get_with_retries(params)
        return self._extract_orders(data)

    def _get_with_retries(self, params: Dict[str, Any]) -> Any:
        last_exception = None

        for attempt in range(self.max_retries):
            try:
                response = self.session.get(self.url, params=params, timeout=self.timeout)

                # Retry transient gateway errors with exponential backoff
                if response.status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries - 1:
                    wait_time = self.retry_delay * (2**attempt)
                    log_progress(
                        self._section,
                        f"Page {params['page']}: received {response.status_code}, retrying in {wait_time}s "
                        f"(attempt {attempt + 1}/{self.max_retries})",
                    )
                    time.sleep(wait_time)
                    continue

                response.raise_for_status()
                return response.json()

            except requests.exceptions.RequestException as e:
                last_exception = e
                status_code = e.response.status_code if getattr(e, "response", None) is not None else None
                if status_code is not None and status_code not in RETRYABLE_STATUS_CODES:
                    log_error(self._section, f"HTTP error: {e}")
                    raise
                if attempt == self.max_retries - 1:
                    log_error(self._section, f"Page {params['page']} failed after {self.max_retries} attempts: {e}")
                    raise
                wait_time = self.retry_delay * (2**attempt)
                log_progress(
                    self._section,
                    f"Page {params['page']}: {type(e).__name__}, retrying in {wait_time}s "
                    f"(attempt {attempt + 1}/{self.max_retries})",
                )
                time.sleep(wait_time)

        if last_exception:
            raise last_exception
        raise requests.exceptions.RequestException(f"Failed after {self.max_retries} attempts")

    def _extract_orders(self, data: Any) -> List[Dict[str, Any]]:
        # Handle API Gateway Lambda proxy response format
        if isinstance(data, dict) and isinstance(data.get("body"), str):
            data = json.loads(data["body"])

        if isinstance(data, list):
            return data
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected API response format for {self.platform.value}: {type(data)}")

        payload = data.get("data", data)
        if isinstance(payload, list):
            return payload
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected API response format for {self.platform.value}: {type(payload)}")

        orders = payload.get("orders") or []
        if not isinstance(orders, list):
            raise ValueError(f"Expected a list of orders from {self.platform.value}, got {type(orders)}")
        return orders


def get_client(platform: Platform) -> MarketplaceClient:
    return MarketplaceClient(platform)
