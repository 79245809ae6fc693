"""
Table Sync - bidirectional bulk reconciliation of tables between two databases

Main modules:
- core: Data models, enums and the error taxonomy
- datastore: Database implementations of the store capability boundary
- sync: Schema catalog, snapshot loading, row diffing, bulk reconcile and orchestration
- config: Configuration loading and validation
- cli: Command line interface
"""

from .core.models import ConnectionConfig, DataStore, SyncJobConfig, SyncReport, TableSyncResult
from .core.errors import SyncError, SchemaError, ConnectivityError, ReconcileError, SyncCancelledError
from .sync.sync_orchestrator import SyncOrchestrator, sync_data_async, sync_data
from .sync.schema_catalog import SchemaCatalog
from .config.config_loader import ConfigLoader

__version__ = "1.0.0"
__all__ = [
    'ConnectionConfig',
    'DataStore',
    'SyncJobConfig',
    'SyncReport',
    'TableSyncResult',
    'SyncError',
    'SchemaError',
    'ConnectivityError',
    'ReconcileError',
    'SyncCancelledError',
    'SyncOrchestrator',
    'SchemaCatalog',
    'sync_data_async',
    'sync_data',
    'ConfigLoader',
]
