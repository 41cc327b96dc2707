"""
Import pass orchestration.

One pass fetches every enabled platform page by page, normalizes each raw
order, groups the resulting entities by type across platforms and bulk
upserts each type once, in foreign-key order.
"""

import time
from typing import Any, Callable, Dict, List, Optional, Set

from marketplace_ingestion.config import Config
from marketplace_ingestion.extract.api_client import MarketplaceClient, get_client
from marketplace_ingestion.load.bulk_loader import PersistenceError, TableRepository
from marketplace_ingestion.load.connection import get_db_connection
from marketplace_ingestion.load.tables import get_table
from marketplace_ingestion.models.entities import ENTITY_TYPES
from marketplace_ingestion.models.results import ErrorReport, ProcessingResult
from marketplace_ingestion.normalize import get_normalizer
from marketplace_ingestion.platforms import Platform
from marketplace_ingestion.utils.logging_utils import (
    log_error,
    log_progress,
    log_section_complete,
    log_section_start,
)
from marketplace_ingestion.utils.values import first_present, safe_get, to_str


class EntityBatch:
    """Entities of every type collected during a pass, with the orders that produced them."""

    def __init__(self):
        self.entities: Dict[str, List[Any]] = {entity_type: [] for entity_type in ENTITY_TYPES}
        self.order_ids: Dict[str, Set[str]] = {entity_type: set() for entity_type in ENTITY_TYPES}
        self.order_count = 0

    def add(self, entity_set) -> None:
        self.order_count += 1
        for entity_type, entities in entity_set.entities_by_type().items():
            if entities:
                self.entities[entity_type].extend(entities)
                self.order_ids[entity_type].add(entity_set.order_id)


def raw_order_id(raw_order: Any) -> str:
    """Best-effort identifier of a raw order for error reports."""
    if not isinstance(raw_order, dict):
        return "UNKNOWN"
    value = first_present(
        safe_get(raw_order, "data", "id"),
        safe_get(raw_order, "shopee_data", "order_detail", "order_sn"),
        safe_get(raw_order, "tiktok_data", "order_detail", "id"),
        raw_order.get("order_id"),
        raw_order.get("orderId"),
        raw_order.get("id"),
    )
    return to_str(value, "UNKNOWN")


class ImportOrchestrator:
    """
    Runs import passes.

    Args:
        platforms: Platforms to import; defaults to Config.enabled_platforms()
        client_factory: Builds a MarketplaceClient for a platform
        connection_factory: Opens the psycopg2 connection used for the write phase
        page_size: Orders per page; a shorter page ends a platform's fetch
    """

    def __init__(
        self,
        platforms: Optional[List[Platform]] = None,
        client_factory: Callable[[Platform], MarketplaceClient] = get_client,
        connection_factory: Callable[[], Any] = get_db_connection,
        page_size: Optional[int] = None,
    ):
        self.platforms = list(platforms) if platforms is not None else Config.enabled_platforms()
        self.client_factory = client_factory
        self.connection_factory = connection_factory
        self.page_size = page_size or Config.API_PAGE_SIZE

    def run(self, date: str) -> ProcessingResult:
        """
        Run one import pass for a business date.

        Args:
            date: Business date, YYYY-MM-DD

        Returns:
            ProcessingResult: Counts, timing and every isolated failure

        Raises:
            psycopg2.OperationalError: If the database cannot be reached
        """
        started = time.perf_counter()
        result = ProcessingResult()
        batch = EntityBatch()

        log_section_start(f"Import Pass - {date}")

        for platform in self.platforms:
            self._import_platform(platform, date, batch, result)

        failed_orders = self._persist(batch, result)

        result.failed_count += len(failed_orders)
        result.success_count = batch.order_count - len(failed_orders)
        result.processing_time_ms = int((time.perf_counter() - started) * 1000)

        log_section_complete(
            f"Import Pass - {date}",
            f"{result.total_processed} orders, {result.success_count} succeeded, "
            f"{result.failed_count} failed, {result.skipped_count} skipped in {result.processing_time_ms} ms",
        )
        return result

    def fetch_orders(self, platform: Platform, date: str) -> List[Dict[str, Any]]:
        """Every raw order of a platform for a date, paging until a short page."""
        orders: List[Dict[str, Any]] = []
        client = self.client_factory(platform)
        try:
            page = 1
            while True:
                page_orders = client.fetch_page(date, page, self.page_size)
                orders.extend(page_orders)
                log_progress(
                    f"Fetch - {platform.display_name}",
                    f"Page {page}: {len(page_orders)} orders ({len(orders)} total)",
                )
                if len(page_orders) < self.page_size:
                    break
                page += 1
        finally:
            client.close()
        return orders

    def _import_platform(self, platform: Platform, date: str, batch: EntityBatch, result: ProcessingResult) -> None:
        section = f"Fetch - {platform.display_name}"
        log_section_start(section)
        try:
            raw_orders = self.fetch_orders(platform, date)
        except Exception as e:
            # A failed fetch is one processed and failed unit; other platforms continue
            log_error(section, str(e))
            result.total_processed += 1
            result.failed_count += 1
            result.add_error(ErrorReport.of("platform_fetch", platform.value, e, platform.value))
            return
        log_section_complete(section, f"{len(raw_orders)} raw orders")

        normalizer = get_normalizer(platform)
        for raw_order in raw_orders:
            result.total_processed += 1
            try:
                entity_set = normalizer.normalize(raw_order)
            except Exception as e:
                order_id = raw_order_id(raw_order)
                log_error(f"Normalize - {platform.display_name}", f"Order {order_id}: {e}")
                result.failed_count += 1
                result.add_error(ErrorReport.of("order", order_id, e, platform.value))
                continue

            if entity_set is None:
                result.skipped_count += 1
                continue
            batch.add(entity_set)

    def _persist(self, batch: EntityBatch, result: ProcessingResult) -> Set[str]:
        """Bulk upsert every entity type; returns the orders touched by a failed type."""
        failed_orders: Set[str] = set()
        if batch.order_count == 0:
            log_progress("Persist", "No entities to write")
            return failed_orders

        conn = self.connection_factory()
        try:
            for entity_type in ENTITY_TYPES:
                entities = batch.entities[entity_type]
                if not entities:
                    continue

                spec = get_table(entity_type)
                section = f"Persist - {spec.table_name}"
                log_section_start(section)
                try:
                    written = TableRepository(conn, spec).bulk_upsert(entities)
                except PersistenceError as e:
                    log_error(section, str(e))
                    result.add_error(ErrorReport.of(entity_type, "BATCH", e))
                    failed_orders.update(batch.order_ids[entity_type])
                    continue
                log_section_complete(section, f"{written:,} rows from {len(entities):,} entities")
        finally:
            conn.close()
        return failed_orders
