"""
PostgreSQL datastore implementation.
"""
from typing import Dict, List, Any, Sequence

from .base_datastore import BaseDatastore
from ..core.enums import ValueKind
from ..core.models import ConnectionConfig


class PostgresDatastore(BaseDatastore):
    """
    PostgreSQL datastore implementation using asyncpg.

    Features:
    - Connection pooling with asyncpg
    - Lazy loading of asyncpg driver
    - COPY based bulk loading (``copy_records_to_table``)
    - ``CREATE TEMP TABLE`` staging and ``UPDATE ... FROM`` joins
    """

    def __init__(self, name: str, connection_config: ConnectionConfig):
        super().__init__(name, connection_config)

    @property
    def schema_name(self) -> str:
        return self.connection_config.schema or 'public'

    async def _create_connection(self) -> None:
        """Create PostgreSQL connection pool using asyncpg"""
        try:
            import asyncpg
        except ImportError:
            raise ImportError(
                "asyncpg is required for PostgreSQL datastore. "
                "Install it with: pip install asyncpg"
            )

        database_name = self.connection_config.database or self.connection_config.dbname

        self._connection_pool = await asyncpg.create_pool(
            host=self.connection_config.host,
            port=self.connection_config.port or 5432,
            user=self.connection_config.user,
            password=self.connection_config.password,
            database=database_name,
            min_size=self.connection_config.min_connections,
            max_size=self.connection_config.max_connections,
            timeout=self.connection_config.connect_timeout,
            command_timeout=self.connection_config.command_timeout,
        )

        # Test connection
        async with self._connection_pool.acquire() as conn:
            await conn.fetchval("SELECT 1")

    async def _cleanup_connections(self) -> None:
        """Clean up PostgreSQL connection pool"""
        if self._connection_pool:
            await self._connection_pool.close()
            self._connection_pool = None

    def _acquire(self):
        if not self._connection_pool:
            raise RuntimeError(f"PostgreSQL datastore {self.name} is not connected")
        return self._connection_pool.acquire()

    def is_transport_error(self, exc: BaseException) -> bool:
        import asyncpg
        return super().is_transport_error(exc) or isinstance(exc, (
            asyncpg.exceptions.PostgresConnectionError,
            asyncpg.exceptions.ConnectionDoesNotExistError,
            asyncpg.exceptions.CannotConnectNowError,
        ))

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def qualified_table_name(self, table: str) -> str:
        return f"{self.quote_identifier(self.schema_name)}.{self.quote_identifier(table)}"

    @staticmethod
    def _affected_rows(status: str) -> int:
        # asyncpg returns a status string like "UPDATE 5" or "COPY 5"
        parts = status.split() if isinstance(status, str) else []
        if parts and parts[-1].isdigit():
            return int(parts[-1])
        return 0

    # Schema introspection

    async def fetch_primary_key(self, conn, table: str) -> List[str]:
        query = """
        SELECT kcu.column_name
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage kcu
            ON tc.constraint_name = kcu.constraint_name
            AND tc.table_schema = kcu.table_schema
            AND tc.table_name = kcu.table_name
        WHERE tc.constraint_type = 'PRIMARY KEY'
            AND tc.table_schema = $1
            AND tc.table_name = $2
        ORDER BY kcu.ordinal_position
        """
        self._logger.debug(f"Resolving primary key of {self.schema_name}.{table} on {self.name}")
        rows = await conn.fetch(query, self.schema_name, table)
        return [row['column_name'] for row in rows]

    async def fetch_columns(self, conn, table: str) -> List[Dict[str, Any]]:
        query = """
        SELECT column_name, data_type
        FROM information_schema.columns
        WHERE table_schema = $1 AND table_name = $2
        ORDER BY ordinal_position
        """
        self._logger.debug(f"Resolving columns of {self.schema_name}.{table} on {self.name}")
        rows = await conn.fetch(query, self.schema_name, table)
        return [dict(row) for row in rows]

    def map_source_type_to_kind(self, source_type: str) -> ValueKind:
        """Map PostgreSQL type to value kind"""
        type_mapping = {
            'integer': ValueKind.INTEGER,
            'int': ValueKind.INTEGER,
            'bigint': ValueKind.INTEGER,
            'smallint': ValueKind.INTEGER,
            'real': ValueKind.FLOAT,
            'double precision': ValueKind.FLOAT,
            'numeric': ValueKind.DECIMAL,
            'decimal': ValueKind.DECIMAL,
            'money': ValueKind.DECIMAL,
            'character varying': ValueKind.TEXT,
            'varchar': ValueKind.TEXT,
            'character': ValueKind.TEXT,
            'char': ValueKind.TEXT,
            'text': ValueKind.TEXT,
            'date': ValueKind.DATETIME,
            'time without time zone': ValueKind.DATETIME,
            'time with time zone': ValueKind.DATETIME,
            'timestamp without time zone': ValueKind.DATETIME,
            'timestamp with time zone': ValueKind.DATETIME,
            'timestamp': ValueKind.DATETIME,
            'timestamptz': ValueKind.DATETIME,
            'boolean': ValueKind.BOOLEAN,
            'bytea': ValueKind.BINARY,
        }

        normalized_type = source_type.lower().strip()
        base_type = normalized_type.split('(')[0] if '(' in normalized_type else normalized_type
        return type_mapping.get(base_type, ValueKind.OTHER)

    # Data access

    async def fetch_rows(self, conn, table: str, columns: Sequence[str]) -> List[Sequence[Any]]:
        query = self.build_select_sql(table, columns)
        self._logger.debug(f"Executing PostgreSQL query: {query}")
        rows = await conn.fetch(query)
        return [tuple(row) for row in rows]

    async def bulk_insert(self, conn, table: str, columns: Sequence[str],
                          records: Sequence[Sequence[Any]], temporary: bool = False) -> int:
        if not records:
            return 0
        # Temp tables live in the session's pg_temp schema, leave it unqualified
        status = await conn.copy_records_to_table(
            table,
            records=records,
            columns=list(columns),
            schema_name=None if temporary else self.schema_name,
        )
        return self._affected_rows(status) or len(records)

    # Staging table protocol

    async def create_staging_table(self, conn, staging_table: str, table: str,
                                   columns: Sequence[str]) -> None:
        column_list = ", ".join(self.quote_identifier(c) for c in columns)
        query = (
            f"CREATE TEMP TABLE {self.quote_identifier(staging_table)} AS "
            f"SELECT {column_list} FROM {self.qualified_table_name(table)} WITH NO DATA"
        )
        await conn.execute(query)

    def build_update_from_staging_sql(self, table: str, staging_table: str,
                                      columns: Sequence[str], pk_columns: Sequence[str]) -> str:
        q = self.quote_identifier
        set_clause = ", ".join(f"{q(c)} = stage.{q(c)}" for c in columns if c not in pk_columns)
        join_clause = " AND ".join(f"dest.{q(pk)} = stage.{q(pk)}" for pk in pk_columns)
        return (
            f"UPDATE {self.qualified_table_name(table)} AS dest SET {set_clause} "
            f"FROM {q(staging_table)} AS stage WHERE {join_clause}"
        )

    async def update_from_staging(self, conn, table: str, staging_table: str,
                                  columns: Sequence[str], pk_columns: Sequence[str]) -> int:
        query = self.build_update_from_staging_sql(table, staging_table, columns, pk_columns)
        self._logger.debug(f"Executing PostgreSQL query: {query}")
        status = await conn.execute(query)
        return self._affected_rows(status)

    async def drop_staging_table(self, conn, staging_table: str) -> None:
        await conn.execute(f"DROP TABLE IF EXISTS {self.quote_identifier(staging_table)}")
