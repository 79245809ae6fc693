from .schema_catalog import SchemaCatalog
from .snapshot_loader import TableSnapshotLoader
from .row_diff import RowDiffEngine, DiffResult, composite_key, rows_differ, values_differ
from .bulk_reconciler import BulkReconciler
from .sync_orchestrator import SyncOrchestrator, sync_data_async, sync_data

__all__ = [
    'SchemaCatalog',
    'TableSnapshotLoader',
    'RowDiffEngine',
    'DiffResult',
    'composite_key',
    'rows_differ',
    'values_differ',
    'BulkReconciler',
    'SyncOrchestrator',
    'sync_data_async',
    'sync_data',
]
