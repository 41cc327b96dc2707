"""
Bulk persistence engine for canonical entities using PostgreSQL COPY.

Primary path: COPY the batch into a scoped staging table, then merge with
INSERT ... SELECT ... ON CONFLICT DO UPDATE on the refreshable columns.
Tables whose composite key is not a native conflict target are replaced
instead: chunked delete of the batch's keys, then a plain insert.

Any failure on the primary path rolls back and retries the same batch with
execute_values in fixed-size chunks. A failure there is raised as
PersistenceError.
"""

import io
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

import pandas as pd
from psycopg2.extras import RealDictCursor, execute_values

from marketplace_ingestion.config import Config
from marketplace_ingestion.load.staging import staging_table
from marketplace_ingestion.load.tables import TableSpec
from marketplace_ingestion.utils.logging_utils import log_error, log_progress, log_warning

NULL_MARKER = "\\N"


class PersistenceError(RuntimeError):
    """The fallback path failed; the whole batch for this table was not written."""

    def __init__(self, table_name: str, message: str):
        super().__init__(f"Failed to persist {table_name}: {message}")
        self.table_name = table_name


def chunked(values: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Contiguous slices of at most `size` items."""
    for start in range(0, len(values), size):
        yield values[start:start + size]


class TableRepository:
    """
    Upsert, delete and lookup operations for one target table.

    Args:
        conn: psycopg2 connection shared by the pass
        spec: Shape of the target table
        batch_size: Rows per fallback statement
        key_chunk_size: Keys per statement for single-column keys
        composite_key_chunk_size: Keys per statement for composite keys
    """

    def __init__(
        self,
        conn,
        spec: TableSpec,
        batch_size: Optional[int] = None,
        key_chunk_size: Optional[int] = None,
        composite_key_chunk_size: Optional[int] = None,
    ):
        self.conn = conn
        self.spec = spec
        self.batch_size = batch_size or Config.BULK_BATCH_SIZE
        self.key_chunk_size = key_chunk_size or Config.KEY_CHUNK_SIZE
        self.composite_key_chunk_size = composite_key_chunk_size or Config.COMPOSITE_KEY_CHUNK_SIZE

    @property
    def table(self) -> str:
        return self.spec.table_name

    @property
    def _section(self) -> str:
        return f"Bulk Upsert - {self.table}"

    @property
    def _key_chunk(self) -> int:
        return self.composite_key_chunk_size if self.spec.is_composite else self.key_chunk_size

    # Write path

    def bulk_upsert(self, entities: Iterable[Any]) -> int:
        """
        Insert new rows and refresh existing ones.

        Args:
            entities: Entities of this table's type; duplicates by key keep the last one

        Returns:
            int: Number of rows written

        Raises:
            PersistenceError: If both the staging path and the fallback fail
        """
        batch = self._dedupe(entities)
        if not batch:
            return 0

        try:
            if self.spec.pre_delete:
                return self._staged_replace(batch)
            return self._staged_merge(batch)
        except Exception as e:
            self.conn.rollback()
            log_warning(self._section, f"Staging load failed ({e}); falling back to batched statements")

        try:
            if self.spec.pre_delete:
                return self._batch_replace(batch)
            return self._batch_upsert(batch)
        except Exception as e:
            self.conn.rollback()
            log_error(self._section, f"Fallback failed: {e}")
            raise PersistenceError(self.table, str(e)) from e

    def _dedupe(self, entities: Iterable[Any]) -> List[Any]:
        latest: Dict[Any, Any] = {}
        for entity in entities:
            latest[self.spec.key_of(entity)] = entity
        return list(latest.values())

    def _staged_merge(self, batch: List[Any]) -> int:
        with staging_table(self.conn, self.table) as staging:
            cursor = self.conn.cursor()
            try:
                self._copy_into(cursor, staging, batch)
                cursor.execute(self._insert_from_staging_sql(staging) + self._conflict_clause())
                affected = cursor.rowcount
                self.conn.commit()
            finally:
                cursor.close()
        return affected

    def _staged_replace(self, batch: List[Any]) -> int:
        with staging_table(self.conn, self.table) as staging:
            cursor = self.conn.cursor()
            try:
                self._copy_into(cursor, staging, batch)
                self._delete_chunks(cursor, [self.spec.key_of(entity) for entity in batch])
                cursor.execute(self._insert_from_staging_sql(staging))
                affected = cursor.rowcount
                self.conn.commit()
            finally:
                cursor.close()
        return affected

    def _batch_upsert(self, batch: List[Any]) -> int:
        sql = f"INSERT INTO {self.table} ({self._column_list}) VALUES %s" + self._conflict_clause()
        return self._execute_batches(sql, batch)

    def _batch_replace(self, batch: List[Any]) -> int:
        sql = f"INSERT INTO {self.table} ({self._column_list}) VALUES %s"
        return self._execute_batches(sql, batch, replace=True)

    def _execute_batches(self, sql: str, batch: List[Any], replace: bool = False) -> int:
        written = 0
        total_batches = (len(batch) + self.batch_size - 1) // self.batch_size
        cursor = self.conn.cursor()
        try:
            for batch_num, chunk in enumerate(chunked(batch, self.batch_size), start=1):
                rows = [self.spec.row_of(entity) for entity in chunk]
                if replace:
                    # A batch's keys are deleted in the same transaction that reinserts them
                    self._delete_chunks(cursor, [self.spec.key_of(entity) for entity in chunk])
                execute_values(cursor, sql, rows, page_size=self.batch_size)
                # Commit per batch to keep lock time bounded
                self.conn.commit()
                written += len(rows)
                log_progress(self._section, f"Batch {batch_num}/{total_batches}: {written:,}/{len(batch):,} rows")
        finally:
            cursor.close()
        return written

    def delete_by_keys(self, keys: Iterable[Any]) -> int:
        """
        Delete rows matching the given keys, chunked, in one transaction.

        Args:
            keys: Scalars for single-column keys, tuples for composite keys

        Returns:
            int: Number of rows deleted
        """
        cursor = self.conn.cursor()
        try:
            deleted = self._delete_chunks(cursor, list(keys))
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        finally:
            cursor.close()
        return deleted

    def _delete_chunks(self, cursor, keys: List[Any]) -> int:
        distinct = list(dict.fromkeys(self._normalize_key(key) for key in keys))
        deleted = 0
        for chunk in chunked(distinct, self._key_chunk):
            cursor.execute(f"DELETE FROM {self.table} WHERE {self._key_predicate()}", (self._key_param(chunk),))
            deleted += max(cursor.rowcount, 0)
        return deleted

    # Read path

    def find_by_keys(self, keys: Iterable[Any]) -> List[Any]:
        """
        Fetch entities for a key set of any size.

        Args:
            keys: Scalars for single-column keys, tuples for composite keys

        Returns:
            List of entities found, in no particular order
        """
        distinct = list(dict.fromkeys(self._normalize_key(key) for key in keys))
        return self._select_chunks(self._key_predicate(), distinct, self._key_chunk)

    def find_by_key(self, key: Any) -> Optional[Any]:
        found = self.find_by_keys([key])
        return found[0] if found else None

    def find_by_order_ids(self, order_ids: Iterable[str]) -> List[Any]:
        """Fetch every row belonging to the given orders (order-scoped tables only)."""
        if "order_id" not in self.spec.columns:
            raise ValueError(f"{self.table} has no order_id column")
        distinct = list(dict.fromkeys(order_ids))
        return self._select_chunks("order_id = ANY(%s)", distinct, self.key_chunk_size)

    def count(self) -> int:
        cursor = self.conn.cursor()
        try:
            cursor.execute(f"SELECT COUNT(*) FROM {self.table}")
            return cursor.fetchone()[0]
        finally:
            cursor.close()

    def _select_chunks(self, predicate: str, values: List[Any], chunk_size: int) -> List[Any]:
        results = []
        if not values:
            return results
        cursor = self.conn.cursor(cursor_factory=RealDictCursor)
        try:
            for chunk in chunked(values, chunk_size):
                param = tuple(chunk) if "IN %s" in predicate else list(chunk)
                cursor.execute(f"SELECT {self._column_list} FROM {self.table} WHERE {predicate}", (param,))
                results.extend(self.spec.entity_cls(**row) for row in cursor.fetchall())
        finally:
            cursor.close()
        return results

    # SQL helpers

    @property
    def _column_list(self) -> str:
        return ", ".join(self.spec.columns)

    def _insert_from_staging_sql(self, staging: str) -> str:
        return f"INSERT INTO {self.table} ({self._column_list}) SELECT {self._column_list} FROM {staging}"

    def _conflict_clause(self) -> str:
        keys = ", ".join(self.spec.key_columns)
        if not self.spec.refreshable_columns:
            return f" ON CONFLICT ({keys}) DO NOTHING"
        updates = ", ".join(f"{column} = EXCLUDED.{column}" for column in self.spec.refreshable_columns)
        return f" ON CONFLICT ({keys}) DO UPDATE SET {updates}"

    def _key_predicate(self) -> str:
        if self.spec.is_composite:
            return f"({', '.join(self.spec.key_columns)}) IN %s"
        return f"{self.spec.key_columns[0]} = ANY(%s)"

    def _key_param(self, chunk: Sequence[Any]) -> Any:
        # psycopg2 renders a tuple of tuples as a row-value list and a list as an ARRAY
        return tuple(chunk) if self.spec.is_composite else list(chunk)

    def _normalize_key(self, key: Any) -> Any:
        if self.spec.is_composite:
            key = tuple(key)
            if len(key) != len(self.spec.key_columns):
                raise ValueError(f"{self.table} keys need {len(self.spec.key_columns)} parts, got {key!r}")
            return key
        if isinstance(key, tuple) and len(key) == 1:
            return key[0]
        return key

    # COPY helpers

    def _rows_to_csv(self, batch: List[Any]) -> str:
        frame = pd.DataFrame([self.spec.row_of(entity) for entity in batch], columns=list(self.spec.columns))
        return frame.to_csv(index=False, header=False, na_rep=NULL_MARKER)

    def _copy_into(self, cursor, staging: str, batch: List[Any]) -> None:
        buffer = io.StringIO(self._rows_to_csv(batch))
        cursor.copy_expert(
            f"COPY {staging} ({self._column_list}) FROM STDIN WITH (FORMAT csv, NULL '{NULL_MARKER}')",
            buffer,
        )
