"""
Applies diff results to a destination store with bulk operations only.

New rows go through the store's bulk-load channel straight into the table.
Changed rows are bulk-loaded into a temporary staging table and applied with
one set-based UPDATE joined on the primary key.
"""
import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.errors import ReconcileError, SyncCancelledError
from ..datastore.base_datastore import BaseDatastore

RowSnapshot = Dict[str, Any]


def staging_table_name() -> str:
    # Fits PostgreSQL's 63 character identifier limit
    return f"tablesync_stage_{uuid.uuid4().hex}"


class BulkReconciler:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _to_records(rows: Sequence[RowSnapshot], columns: Sequence[str]) -> List[Tuple[Any, ...]]:
        return [tuple(row.get(c) for c in columns) for row in rows]

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event], table: str, step: str,
                         inserted_count: int = 0) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelledError(f"Sync cancelled before bulk {step} of {table}", table,
                                     inserted_count=inserted_count)

    async def reconcile(self, datastore: BaseDatastore, conn, table: str,
                        to_insert: Sequence[RowSnapshot], to_update: Sequence[RowSnapshot],
                        all_columns: Sequence[str], pk_columns: Sequence[str],
                        cancel_event: Optional[asyncio.Event] = None) -> Tuple[int, int]:
        """
        Insert new rows and update changed rows of ``table``.

        Insert and update are separate operations; a failed update leaves the
        inserted rows in place.

        Returns:
            (inserted_count, updated_count)

        Raises:
            ReconcileError: Wrapping the store failure, with counts applied so far
        """
        inserted_count = 0
        updated_count = 0

        if to_insert:
            self._check_cancelled(cancel_event, table, 'insert')
            try:
                await self.bulk_insert(datastore, conn, table, to_insert, all_columns)
            except Exception as e:
                raise ReconcileError(f"Bulk insert into {table} failed: {e}", table) from e
            inserted_count = len(to_insert)
            self.logger.info(f"Inserted {inserted_count} rows into {table} on {datastore.name}")

        if to_update:
            self._check_cancelled(cancel_event, table, 'update', inserted_count)
            try:
                applied = await self.bulk_update(datastore, conn, table, to_update, all_columns, pk_columns)
            except Exception as e:
                raise ReconcileError(
                    f"Bulk update of {table} failed: {e}", table,
                    inserted_count=inserted_count, updated_count=updated_count
                ) from e
            if applied:
                updated_count = len(to_update)
                self.logger.info(f"Updated {updated_count} rows of {table} on {datastore.name}")

        return inserted_count, updated_count

    async def bulk_insert(self, datastore: BaseDatastore, conn, table: str,
                          rows: Sequence[RowSnapshot], columns: Sequence[str]) -> int:
        records = self._to_records(rows, columns)
        return await datastore.bulk_insert(conn, table, columns, records)

    async def bulk_update(self, datastore: BaseDatastore, conn, table: str, rows: Sequence[RowSnapshot],
                          columns: Sequence[str], pk_columns: Sequence[str]) -> bool:
        """
        Stage ``rows`` and apply them with one joined UPDATE.

        Returns False when the table has no non-key columns to assign.
        """
        if not [c for c in columns if c not in pk_columns]:
            self.logger.warning(f"Table {table} has no non-key columns, skipping update of {len(rows)} rows")
            return False

        staging_table = staging_table_name()
        await datastore.create_staging_table(conn, staging_table, table, columns)
        try:
            await datastore.bulk_insert(conn, staging_table, columns, self._to_records(rows, columns), temporary=True)
            await datastore.update_from_staging(conn, table, staging_table, columns, pk_columns)
        finally:
            await self._drop_staging_table(datastore, conn, staging_table)
        return True

    async def _drop_staging_table(self, datastore: BaseDatastore, conn, staging_table: str) -> None:
        # Best effort: a failed drop must not replace the error that got us here
        try:
            await datastore.drop_staging_table(conn, staging_table)
        except Exception as e:
            self.logger.warning(f"Could not drop staging table {staging_table} on {datastore.name}: {e}")
