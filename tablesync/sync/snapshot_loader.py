import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.enums import ValueKind
from ..core.errors import ConnectivityError, SchemaError, SyncError
from ..datastore.base_datastore import BaseDatastore

RowSnapshot = Dict[str, Any]


def normalize_value(value: Any, kind: Optional[ValueKind]) -> Any:
    """Bring a driver value into the form used for comparison"""
    if value is None:
        return None
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if kind == ValueKind.BINARY and isinstance(value, str):
        return value.encode()
    return value


class TableSnapshotLoader:
    """Loads a table's full row set restricted to the resolved columns"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    async def load_snapshot(self, datastore: BaseDatastore, conn, table: str, columns: Sequence[str],
                            column_kinds: Optional[Mapping[str, ValueKind]] = None) -> List[RowSnapshot]:
        """
        Read every row of ``table`` with one column-projected query.

        The whole table is held in memory. Column order always follows
        ``columns``, never the store's physical order.

        Raises:
            ConnectivityError: On transport failure
            SchemaError: If the store rejects the projection
        """
        columns = list(columns)
        kinds = [column_kinds.get(c) if column_kinds else None for c in columns]
        try:
            records = await datastore.fetch_rows(conn, table, columns)
        except SyncError:
            raise
        except Exception as e:
            if datastore.is_transport_error(e):
                raise ConnectivityError(f"Loading {table} from '{datastore.name}' failed: {e}", table) from e
            raise SchemaError(f"Could not read columns {columns} of {table} from '{datastore.name}': {e}", table) from e

        snapshot = [
            {column: normalize_value(value, kind) for column, kind, value in zip(columns, kinds, record)}
            for record in records
        ]
        self.logger.info(f"Loaded {len(snapshot)} rows of {table} from {datastore.name}")
        return snapshot
