"""
Scoped staging tables for the bulk merge path.
"""

import uuid
from contextlib import contextmanager
from datetime import datetime, UTC
from typing import Iterator

from marketplace_ingestion.utils.logging_utils import log_error


def staging_table_name(target_table: str) -> str:
    """Unique per call: staging_<table>_<UTC yyyymmddHHMMSS>_<8 hex>."""
    stamp = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
    return f"staging_{target_table}_{stamp}_{uuid.uuid4().hex[:8]}"


@contextmanager
def staging_table(conn, target_table: str) -> Iterator[str]:
    """
    Create a temporary copy of the target's shape and drop it on every exit path.

    The caller loads and merges inside the block and commits its own work.
    If the block raises, the transaction is rolled back before the drop and
    the original exception propagates. A failed drop is logged, never raised.

    Args:
        conn: psycopg2 connection
        target_table: Table whose columns and defaults the staging table copies

    Yields:
        str: Name of the staging table
    """
    name = staging_table_name(target_table)
    cursor = conn.cursor()
    try:
        cursor.execute(
            f"CREATE TEMPORARY TABLE {name} "
            f"(LIKE {target_table} INCLUDING DEFAULTS EXCLUDING INDEXES)"
        )
        yield name
    except Exception:
        conn.rollback()
        raise
    finally:
        try:
            cursor.execute(f"DROP TABLE IF EXISTS {name}")
            conn.commit()
        except Exception as e:
            log_error(f"Staging Cleanup - {target_table}", f"Could not drop {name}: {e}")
            conn.rollback()
        finally:
            cursor.close()
