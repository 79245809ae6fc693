"""
Exception taxonomy for table synchronization.

Every failure raised by the sync engine is a ``SyncError`` tagged with an
``ErrorKind``. The orchestrator catches them at the phase boundary and records
them on the table's result; nothing here is retried.

Inserts and updates are not one transaction, so an error may carry the row
counts that were already applied to the destination when it happened.
"""
from typing import Optional

from .enums import ErrorKind


class SyncError(Exception):
    """Base class for all sync failures"""
    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, table: Optional[str] = None,
                 inserted_count: int = 0, updated_count: int = 0):
        super().__init__(message)
        self.message = message
        self.table = table
        self.inserted_count = inserted_count
        self.updated_count = updated_count


class SchemaError(SyncError):
    """Missing primary key or failed schema introspection"""
    kind = ErrorKind.SCHEMA


class ConnectivityError(SyncError):
    """Connection open, timeout or transport failure"""
    kind = ErrorKind.CONNECTIVITY


class ReconcileError(SyncError):
    """Bulk load or set-based update failure"""
    kind = ErrorKind.RECONCILE


class SyncCancelledError(SyncError):
    kind = ErrorKind.CANCELLED
