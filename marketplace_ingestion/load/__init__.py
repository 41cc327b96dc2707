"""PostgreSQL persistence: connection factory, table specs and the bulk upsert engine."""

from marketplace_ingestion.load.bulk_loader import PersistenceError, TableRepository
from marketplace_ingestion.load.connection import get_db_connection
from marketplace_ingestion.load.tables import TABLES, TableSpec, get_table

__all__ = [
    "PersistenceError",
    "TableRepository",
    "TableSpec",
    "TABLES",
    "get_db_connection",
    "get_table",
]
