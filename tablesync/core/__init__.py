from .enums import ValueKind, SyncDirection, RowStatus, ErrorKind, DatastoreType
from .errors import SyncError, SchemaError, ConnectivityError, ReconcileError, SyncCancelledError
from .models import (
    ConnectionConfig, DataStore, SyncJobConfig, ColumnInfo, TableSchema,
    PhaseResult, TableSyncResult, SyncReport
)

__all__ = [
    'ValueKind',
    'SyncDirection',
    'RowStatus',
    'ErrorKind',
    'DatastoreType',
    'SyncError',
    'SchemaError',
    'ConnectivityError',
    'ReconcileError',
    'SyncCancelledError',
    'ConnectionConfig',
    'DataStore',
    'SyncJobConfig',
    'ColumnInfo',
    'TableSchema',
    'PhaseResult',
    'TableSyncResult',
    'SyncReport',
]
