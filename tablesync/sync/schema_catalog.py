"""
Memoized primary-key and column resolution per (store, table).
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..core.errors import SchemaError, ConnectivityError, SyncError
from ..core.models import ColumnInfo, TableSchema
from ..datastore.base_datastore import BaseDatastore

CacheKey = Tuple[str, str]


class SchemaCatalog:
    """
    Single-flight schema cache.

    Concurrent lookups of the same (store identity, table) key share one
    in-flight introspection query; once it completes the value is reused for
    the lifetime of the catalog. There is no invalidation, so schema changes
    made while the catalog is alive are not observed.

    A lookup that fails is not cached; the next caller queries again.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._primary_keys: Dict[CacheKey, List[str]] = {}
        self._columns: Dict[CacheKey, List[ColumnInfo]] = {}
        self._inflight: Dict[Tuple[str, CacheKey], asyncio.Future] = {}

    async def _single_flight(self, namespace: str, cache: Dict[CacheKey, Any],
                             key: CacheKey, loader: Callable[[], Awaitable[Any]]) -> Any:
        if key in cache:
            return cache[key]

        flight_key = (namespace, key)
        task = self._inflight.get(flight_key)
        if task is None:
            task = asyncio.ensure_future(self._load(cache, flight_key, loader))
            # Every waiter may be cancelled before a failure lands, consume it here
            task.add_done_callback(lambda t: t.cancelled() or t.exception())
            self._inflight[flight_key] = task
        else:
            self.logger.debug(f"Joining in-flight {namespace} lookup for {key[1]} on {key[0]}")
        # A cancelled waiter must not cancel the query other callers wait on
        return await asyncio.shield(task)

    async def _load(self, cache: Dict[CacheKey, Any], flight_key: Tuple[str, CacheKey],
                    loader: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await loader()
            cache[flight_key[1]] = value
            return value
        finally:
            self._inflight.pop(flight_key, None)

    async def _introspect(self, datastore: BaseDatastore, table: str, what: str,
                          query: Callable[[Any], Awaitable[Any]]) -> Any:
        self.logger.info(f"Resolving {what} of table {table} on {datastore.name}")
        try:
            async with datastore.session() as conn:
                return await query(conn)
        except SyncError:
            raise
        except Exception as e:
            if datastore.is_transport_error(e):
                raise ConnectivityError(
                    f"Schema introspection of {table} on '{datastore.name}' failed: {e}", table
                ) from e
            raise SchemaError(f"Could not resolve {what} of table {table} on '{datastore.name}': {e}", table) from e

    async def resolve_primary_key(self, datastore: BaseDatastore, table: str) -> List[str]:
        """
        Primary key column names of ``table`` in key order.

        Raises:
            SchemaError: If the table has no primary key
        """
        key = (datastore.identity, table)
        pk_columns = await self._single_flight(
            'primary_key', self._primary_keys, key,
            lambda: self._introspect(datastore, table, 'primary key',
                                     lambda conn: datastore.fetch_primary_key(conn, table))
        )
        if not pk_columns:
            raise SchemaError(
                f"No primary key found for table {table}. Synchronization requires a primary key.", table
            )
        return list(pk_columns)

    async def resolve_column_info(self, datastore: BaseDatastore, table: str) -> List[ColumnInfo]:
        key = (datastore.identity, table)

        async def query(conn) -> List[ColumnInfo]:
            rows = await datastore.fetch_columns(conn, table)
            return [
                ColumnInfo(
                    name=row['column_name'],
                    data_type=row['data_type'],
                    kind=datastore.map_source_type_to_kind(row['data_type'])
                )
                for row in rows
            ]

        columns = await self._single_flight(
            'columns', self._columns, key,
            lambda: self._introspect(datastore, table, 'columns', query)
        )
        if not columns:
            raise SchemaError(f"Table {table} does not exist or has no columns on '{datastore.name}'", table)
        return list(columns)

    async def resolve_columns(self, datastore: BaseDatastore, table: str) -> List[str]:
        """Column names of ``table`` in ordinal order"""
        return [c.name for c in await self.resolve_column_info(datastore, table)]

    async def resolve_schema(self, datastore: BaseDatastore, table: str) -> TableSchema:
        pk_columns = await self.resolve_primary_key(datastore, table)
        columns = await self.resolve_column_info(datastore, table)

        names = {c.name for c in columns}
        missing = [pk for pk in pk_columns if pk not in names]
        if missing:
            raise SchemaError(f"Primary key columns {missing} of table {table} are not in its column list", table)

        return TableSchema(table=table, pk_columns=tuple(pk_columns), columns=tuple(columns))
