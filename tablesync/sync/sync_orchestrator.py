import asyncio
import logging
import traceback
from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union

from ..core.enums import ErrorKind, SyncDirection
from ..core.errors import SyncError
from ..core.models import DataStore, PhaseResult, SyncReport, TableSyncResult
from ..datastore.base_datastore import BaseDatastore
from .bulk_reconciler import BulkReconciler
from .row_diff import RowDiffEngine
from .schema_catalog import SchemaCatalog
from .snapshot_loader import TableSnapshotLoader


class SyncOrchestrator:
    """
    Drives pull-then-push reconciliation of a list of tables.

    Tables are processed one at a time in the caller's order and each table
    is its own failure domain: a failed phase is recorded on that table's
    result and the run moves on to the next table. The schema catalog is
    owned by the orchestrator, so schemas are resolved once per instance.
    """

    def __init__(self, schema_catalog: Optional[SchemaCatalog] = None,
                 snapshot_loader: Optional[TableSnapshotLoader] = None,
                 diff_engine: Optional[RowDiffEngine] = None,
                 reconciler: Optional[BulkReconciler] = None,
                 logger: Optional[logging.Logger] = None):
        logger_name = f"{logger.name}.sync_orchestrator" if logger else __name__
        self.logger = logging.getLogger(logger_name)
        self.schema_catalog = schema_catalog or SchemaCatalog()
        self.snapshot_loader = snapshot_loader or TableSnapshotLoader()
        self.diff_engine = diff_engine or RowDiffEngine()
        self.reconciler = reconciler or BulkReconciler()

    async def sync_all(self, local: BaseDatastore, remote: BaseDatastore, tables: Sequence[str],
                       cancel_event: Optional[asyncio.Event] = None) -> SyncReport:
        """
        Pull remote changes into local, then push local changes into remote, per table.

        Args:
            local: Local store
            remote: Remote store
            tables: Table names, identically named and shaped on both stores
            cancel_event: Once set, no further table is started

        Returns:
            SyncReport keyed by table name in input order
        """
        report = SyncReport(start_time=datetime.now())

        # Report is keyed by table name, sync each table once
        unique_tables = list(dict.fromkeys(tables))
        if len(unique_tables) != len(tables):
            duplicates = sorted({t for t in tables if tables.count(t) > 1})
            self.logger.warning(f"Tables listed more than once, syncing each only once: {duplicates}")
            tables = unique_tables

        self.logger.info(
            f"Starting synchronization of {len(tables)} tables between {local.name} and {remote.name}"
        )

        for table in tables:
            if cancel_event is not None and cancel_event.is_set():
                self.logger.warning(f"Sync cancelled, {table} and remaining tables not started")
                report.cancelled = True
                break

            result = await self.sync_table(local, remote, table, cancel_event)
            report.add(result)
            if result.error_kind == ErrorKind.CANCELLED:
                report.cancelled = True
                break

        report.end_time = datetime.now()
        failed = [r.table for r in report if not r.success]
        if failed:
            self.logger.warning(f"Synchronization finished with errors in {len(failed)} tables: {failed}")
        else:
            self.logger.info(f"Synchronization finished in {report.duration_seconds} seconds")
        return report

    async def sync_table(self, local: BaseDatastore, remote: BaseDatastore, table: str,
                         cancel_event: Optional[asyncio.Event] = None) -> TableSyncResult:
        result = TableSyncResult(table=table)

        pull = await self.run_phase(SyncDirection.PULL, remote, local, table, local, cancel_event)
        result.apply(pull)
        if not pull.success:
            self.logger.warning(f"Skipping push of {table} because pull failed")
            return result

        push = await self.run_phase(SyncDirection.PUSH, local, remote, table, local, cancel_event)
        result.apply(push)
        return result

    async def run_phase(self, direction: SyncDirection, source: BaseDatastore, destination: BaseDatastore,
                        table: str, schema_store: BaseDatastore,
                        cancel_event: Optional[asyncio.Event] = None) -> PhaseResult:
        """Run one directional pass and turn any failure into a tagged PhaseResult"""
        self.logger.info(f"{direction.value}: {source.name} -> {destination.name} for table {table}")
        try:
            inserted, updated = await self._synchronize(source, destination, table, schema_store, cancel_event)
        except SyncError as e:
            self.logger.error(f"{direction.value} of {table} failed: {e.kind.value}: {e.message}")
            return PhaseResult.failed(direction, e)
        except Exception as e:
            self.logger.error(f"{direction.value} of {table} failed unexpectedly: {traceback.format_exc()}")
            return PhaseResult.failed(direction, SyncError(f"{type(e).__name__}: {e}", table))

        self.logger.info(f"{direction.value} of {table} complete: {inserted} inserted, {updated} updated")
        return PhaseResult(direction, inserted, updated)

    async def _synchronize(self, source: BaseDatastore, destination: BaseDatastore, table: str,
                           schema_store: BaseDatastore,
                           cancel_event: Optional[asyncio.Event]) -> Tuple[int, int]:
        # Both stores are assumed to share one shape, resolved from the schema store
        schema = await self.schema_catalog.resolve_schema(schema_store, table)
        all_columns = schema.all_columns
        column_kinds = schema.column_kinds

        async with source.session() as source_conn:
            source_rows = await self.snapshot_loader.load_snapshot(
                source, source_conn, table, all_columns, column_kinds
            )

        async with destination.session() as destination_conn:
            destination_rows = await self.snapshot_loader.load_snapshot(
                destination, destination_conn, table, all_columns, column_kinds
            )
            diff = self.diff_engine.diff(
                source_rows, destination_rows, schema.pk_columns, all_columns, column_kinds
            )
            self.logger.info(
                f"{table}: {len(diff.to_insert)} new, {len(diff.to_update)} changed, "
                f"{diff.unchanged} unchanged rows from {source.name}"
            )
            return await self.reconciler.reconcile(
                destination, destination_conn, table, diff.to_insert, diff.to_update,
                all_columns, schema.pk_columns, cancel_event
            )


StoreLike = Union[BaseDatastore, DataStore]


def _as_datastore(store: StoreLike) -> BaseDatastore:
    return store.datastore if isinstance(store, DataStore) else store


async def sync_data_async(local: StoreLike, remote: StoreLike, tables: List[str],
                          orchestrator: Optional[SyncOrchestrator] = None,
                          cancel_event: Optional[asyncio.Event] = None) -> SyncReport:
    """
    Synchronize ``tables`` between local and remote databases.

    First pulls changes from remote to local, then pushes local changes to
    remote. Both datastores are disconnected when the run ends.
    """
    local_store = _as_datastore(local)
    remote_store = _as_datastore(remote)
    orchestrator = orchestrator or SyncOrchestrator()
    try:
        return await orchestrator.sync_all(local_store, remote_store, tables, cancel_event)
    finally:
        await local_store.disconnect()
        await remote_store.disconnect()


def sync_data(local: StoreLike, remote: StoreLike, tables: List[str]) -> SyncReport:
    """Blocking wrapper around ``sync_data_async`` for callers without an event loop"""
    return asyncio.run(sync_data_async(local, remote, tables))
