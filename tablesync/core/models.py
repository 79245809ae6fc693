from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Tuple, TYPE_CHECKING
from datetime import datetime

from .enums import ValueKind, SyncDirection, ErrorKind
from .errors import SyncError

if TYPE_CHECKING:
    from ..datastore.base_datastore import BaseDatastore


@dataclass
class ConnectionConfig:
    """Base connection configuration"""
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    dbname: Optional[str] = None
    schema: Optional[str] = None
    # Connection pool settings
    max_connections: int = 4
    min_connections: int = 1
    connect_timeout: float = 30.0
    command_timeout: Optional[float] = None


@dataclass
class DataStore:
    """Named store configuration, one side (local or remote) of a sync"""
    name: str
    type: str  # postgres, mysql
    connection: ConnectionConfig
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    def __post_init__(self):
        # Convert dict to ConnectionConfig if needed
        if isinstance(self.connection, dict):
            self.connection = ConnectionConfig(**self.connection)
        self._datastore_impl: Optional['BaseDatastore'] = None

    @property
    def datastore(self) -> 'BaseDatastore':
        """Datastore implementation for this store, created on first access"""
        if self._datastore_impl is None:
            from ..datastore import create_datastore
            self._datastore_impl = create_datastore(self.name, self.type, self.connection)
        return self._datastore_impl


@dataclass
class SyncJobConfig:
    """A local/remote pair and the ordered tables to reconcile between them"""
    local: DataStore
    remote: DataStore
    tables: List[str] = field(default_factory=list)
    name: str = "tablesync"


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    data_type: str
    kind: ValueKind = ValueKind.OTHER


@dataclass(frozen=True)
class TableSchema:
    """Resolved shape of a table: primary key and all columns in ordinal order"""
    table: str
    pk_columns: Tuple[str, ...]
    columns: Tuple[ColumnInfo, ...]

    @property
    def all_columns(self) -> List[str]:
        return [c.name for c in self.columns]

    @property
    def column_kinds(self) -> Dict[str, ValueKind]:
        return {c.name: c.kind for c in self.columns}


@dataclass
class PhaseResult:
    """Outcome of one directional pass over one table"""
    direction: SyncDirection
    inserted: int = 0
    updated: int = 0
    error: Optional[SyncError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @classmethod
    def failed(cls, direction: SyncDirection, error: SyncError) -> 'PhaseResult':
        # Counts already applied before the failure are real, keep them
        return cls(direction, error.inserted_count, error.updated_count, error)


@dataclass
class TableSyncResult:
    """Combined pull and push outcome for a single table"""
    table: str
    pull_inserts: int = 0
    pull_updates: int = 0
    push_inserts: int = 0
    push_updates: int = 0
    success: bool = True
    error_message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    failed_phase: Optional[SyncDirection] = None

    @property
    def total_changes(self) -> int:
        return self.pull_inserts + self.pull_updates + self.push_inserts + self.push_updates

    def apply(self, phase: PhaseResult) -> None:
        if phase.direction == SyncDirection.PULL:
            self.pull_inserts = phase.inserted
            self.pull_updates = phase.updated
        else:
            self.push_inserts = phase.inserted
            self.push_updates = phase.updated

        if phase.error is not None:
            self.success = False
            self.failed_phase = phase.direction
            self.error_kind = phase.error.kind
            self.error_message = f"{phase.direction.value} failed: {phase.error.kind.value}: {phase.error.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pull_inserts': self.pull_inserts,
            'pull_updates': self.pull_updates,
            'push_inserts': self.push_inserts,
            'push_updates': self.push_updates,
            'success': self.success,
            'error_message': self.error_message,
            'error_kind': self.error_kind.value if self.error_kind else None,
            'failed_phase': self.failed_phase.value if self.failed_phase else None,
        }


@dataclass
class SyncReport:
    """Per-table results of one sync_all run, in the caller's table order"""
    tables: Dict[str, TableSyncResult] = field(default_factory=dict)
    has_errors: bool = False
    cancelled: bool = False
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def add(self, result: TableSyncResult) -> None:
        self.tables[result.table] = result
        if not result.success:
            self.has_errors = True

    def __getitem__(self, table: str) -> TableSyncResult:
        return self.tables[table]

    def __contains__(self, table: str) -> bool:
        return table in self.tables

    def __iter__(self):
        return iter(self.tables.values())

    def __len__(self) -> int:
        return len(self.tables)

    @property
    def duration_seconds(self) -> float:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'has_errors': self.has_errors,
            'cancelled': self.cancelled,
            'duration': f"{self.duration_seconds} seconds",
            'tables': {name: result.to_dict() for name, result in self.tables.items()},
        }
