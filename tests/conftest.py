"""Pytest configuration and fixtures for tablesync tests."""

import asyncio
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple
import pytest
import logging

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tablesync.core.enums import ValueKind
from tablesync.core.models import ConnectionConfig
from tablesync.datastore.base_datastore import BaseDatastore

# Configure logging
logging.basicConfig(level=logging.INFO)


@dataclass
class MemoryTable:
    """A table held by the in-memory datastore"""
    pk: List[str]
    columns: List[Tuple[str, str]]  # (name, data type)
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def find(self, key: Tuple[Any, ...]) -> Optional[Dict[str, Any]]:
        for row in self.rows:
            if tuple(row[c] for c in self.pk) == key:
                return row
        return None


class MemoryConnection:
    """One session; temporary tables live only as long as it does"""

    def __init__(self):
        self.temp_tables: Dict[str, List[Dict[str, Any]]] = {}


class InMemoryDatastore(BaseDatastore):
    """Datastore double implementing the four store primitives over dicts"""

    _kinds = {
        'int': ValueKind.INTEGER,
        'float': ValueKind.FLOAT,
        'text': ValueKind.TEXT,
        'bytes': ValueKind.BINARY,
        'datetime': ValueKind.DATETIME,
    }

    def __init__(self, name: str, tables: Optional[Dict[str, MemoryTable]] = None):
        super().__init__(name, ConnectionConfig())
        self.tables: Dict[str, MemoryTable] = tables or {}
        self.failures: Dict[str, BaseException] = {}
        self.calls: List[str] = []
        self.queries: List[str] = []
        self.schema_gate: Optional[asyncio.Event] = None
        self.sessions_opened = 0
        self.sessions_released = 0
        self.open_temp_tables: Dict[str, List[Dict[str, Any]]] = {}

    def _record(self, op: str) -> None:
        self.calls.append(op)
        if op in self.failures:
            raise self.failures[op]

    def call_count(self, op: str) -> int:
        return self.calls.count(op)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables[table].rows

    async def _create_connection(self) -> None:
        self._record('connect')
        self._connection_pool = object()

    async def _cleanup_connections(self) -> None:
        self._connection_pool = None

    @asynccontextmanager
    async def _acquire(self):
        self._record('acquire')
        self.sessions_opened += 1
        conn = MemoryConnection()
        try:
            yield conn
        finally:
            self.sessions_released += 1

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    async def fetch_primary_key(self, conn, table: str) -> List[str]:
        if self.schema_gate is not None:
            await self.schema_gate.wait()
        self._record('primary_key')
        await asyncio.sleep(0)
        return list(self.tables[table].pk) if table in self.tables else []

    async def fetch_columns(self, conn, table: str) -> List[Dict[str, Any]]:
        if self.schema_gate is not None:
            await self.schema_gate.wait()
        self._record('columns')
        await asyncio.sleep(0)
        if table not in self.tables:
            return []
        return [{'column_name': n, 'data_type': t} for n, t in self.tables[table].columns]

    def map_source_type_to_kind(self, source_type: str) -> ValueKind:
        return self._kinds.get(source_type, ValueKind.OTHER)

    async def fetch_rows(self, conn, table: str, columns: Sequence[str]) -> List[Sequence[Any]]:
        self._record('fetch_rows')
        self.queries.append(self.build_select_sql(table, columns))
        if table not in self.tables:
            raise LookupError(f'relation "{table}" does not exist')
        known = {n for n, _ in self.tables[table].columns}
        unknown = [c for c in columns if c not in known]
        if unknown:
            raise LookupError(f"column {unknown[0]} does not exist")
        return [tuple(row.get(c) for c in columns) for row in self.tables[table].rows]

    async def bulk_insert(self, conn, table: str, columns: Sequence[str],
                          records: Sequence[Sequence[Any]], temporary: bool = False) -> int:
        self._record('bulk_insert_staging' if temporary else 'bulk_insert')
        if temporary:
            conn.temp_tables[table].extend(dict(zip(columns, r)) for r in records)
            return len(records)

        target = self.tables[table]
        for record in records:
            row = dict(zip(columns, record))
            key = tuple(row[c] for c in target.pk)
            if target.find(key) is not None:
                raise ValueError(f"duplicate key value violates unique constraint: {key}")
            target.rows.append(row)
        return len(records)

    async def create_staging_table(self, conn, staging_table: str, table: str,
                                   columns: Sequence[str]) -> None:
        self._record('create_staging')
        conn.temp_tables[staging_table] = []
        self.open_temp_tables[staging_table] = conn.temp_tables[staging_table]

    def build_update_from_staging_sql(self, table: str, staging_table: str,
                                      columns: Sequence[str], pk_columns: Sequence[str]) -> str:
        return f"UPDATE {table} FROM {staging_table}"

    async def update_from_staging(self, conn, table: str, staging_table: str,
                                  columns: Sequence[str], pk_columns: Sequence[str]) -> int:
        self._record('update_from_staging')
        target = self.tables[table]
        updated = 0
        for staged in conn.temp_tables[staging_table]:
            row = target.find(tuple(staged[c] for c in pk_columns))
            if row is None:
                continue
            for column in columns:
                if column not in pk_columns:
                    row[column] = staged[column]
            updated += 1
        return updated

    async def drop_staging_table(self, conn, staging_table: str) -> None:
        self._record('drop_staging')
        conn.temp_tables.pop(staging_table, None)
        self.open_temp_tables.pop(staging_table, None)


PEOPLE_COLUMNS = [('Id', 'int'), ('Name', 'text'), ('Avatar', 'bytes'), ('Score', 'float')]


@pytest.fixture
def make_store():
    """Factory for in-memory datastores"""
    def _make(name: str, tables: Optional[Dict[str, MemoryTable]] = None) -> InMemoryDatastore:
        return InMemoryDatastore(name, tables)
    return _make


@pytest.fixture
def make_table():
    """Factory for in-memory tables, defaulting to a People shape keyed on Id"""
    def _make(rows: Optional[List[Dict[str, Any]]] = None, pk: Optional[List[str]] = None,
              columns: Optional[List[Tuple[str, str]]] = None) -> MemoryTable:
        columns = columns or PEOPLE_COLUMNS
        pk = ['Id'] if pk is None else pk
        full_rows = [{name: row.get(name) for name, _ in columns} for row in (rows or [])]
        return MemoryTable(pk=list(pk), columns=list(columns), rows=full_rows)
    return _make
