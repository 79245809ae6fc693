"""
MySQL datastore implementation.
"""
from typing import Dict, List, Optional, Any, Sequence

from .base_datastore import BaseDatastore
from ..core.enums import ValueKind
from ..core.models import ConnectionConfig

# Client error codes meaning the server went away or could not be reached
_MYSQL_TRANSPORT_ERROR_CODES = {2002, 2003, 2006, 2013, 2055}


class MySQLDatastore(BaseDatastore):
    """
    MySQL datastore implementation using aiomysql.

    Features:
    - Connection pooling with aiomysql
    - Lazy loading of aiomysql driver
    - Multi-row ``executemany`` inserts as the bulk channel
    - ``CREATE TEMPORARY TABLE`` staging and ``UPDATE ... JOIN``
    """

    def __init__(self, name: str, connection_config: ConnectionConfig):
        super().__init__(name, connection_config)

    @property
    def database_name(self) -> Optional[str]:
        return self.connection_config.database or self.connection_config.dbname

    async def _create_connection(self) -> None:
        """Create MySQL connection pool using aiomysql"""
        try:
            import aiomysql
        except ImportError:
            raise ImportError(
                "aiomysql is required for MySQL datastore. "
                "Install it with: pip install aiomysql"
            )

        self._connection_pool = await aiomysql.create_pool(
            host=self.connection_config.host,
            port=self.connection_config.port or 3306,
            user=self.connection_config.user,
            password=self.connection_config.password or '',
            db=self.database_name,
            autocommit=True,
            connect_timeout=self.connection_config.connect_timeout,
            minsize=self.connection_config.min_connections,
            maxsize=self.connection_config.max_connections
        )

        # Test connection
        async with self._connection_pool.acquire() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                result = await cur.fetchone()
                if not result or result[0] != 1:
                    raise RuntimeError("MySQL connection test failed")

    async def _cleanup_connections(self) -> None:
        """Clean up MySQL connection pool"""
        if self._connection_pool:
            self._connection_pool.close()
            await self._connection_pool.wait_closed()
            self._connection_pool = None

    def _acquire(self):
        if not self._connection_pool:
            raise RuntimeError(f"MySQL datastore {self.name} is not connected")
        return self._connection_pool.acquire()

    def is_transport_error(self, exc: BaseException) -> bool:
        import aiomysql
        if isinstance(exc, aiomysql.OperationalError) and exc.args:
            return exc.args[0] in _MYSQL_TRANSPORT_ERROR_CODES
        return super().is_transport_error(exc)

    def quote_identifier(self, name: str) -> str:
        return '`' + name.replace('`', '``') + '`'

    async def _fetch(self, conn, query: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        async with conn.cursor() as cur:
            await cur.execute(query, params or [])
            columns = [desc[0] for desc in cur.description] if cur.description else []
            rows = await cur.fetchall()
            return [dict(zip(columns, row)) for row in rows]

    async def _execute(self, conn, query: str) -> int:
        self._logger.debug(f"Executing MySQL query: {query}")
        async with conn.cursor() as cur:
            await cur.execute(query)
            return cur.rowcount

    # Schema introspection

    async def fetch_primary_key(self, conn, table: str) -> List[str]:
        query = """
        SELECT COLUMN_NAME AS column_name
        FROM information_schema.KEY_COLUMN_USAGE
        WHERE CONSTRAINT_NAME = 'PRIMARY'
            AND TABLE_SCHEMA = COALESCE(%s, DATABASE())
            AND TABLE_NAME = %s
        ORDER BY ORDINAL_POSITION
        """
        rows = await self._fetch(conn, query, [self.connection_config.schema or self.database_name, table])
        return [row['column_name'] for row in rows]

    async def fetch_columns(self, conn, table: str) -> List[Dict[str, Any]]:
        query = """
        SELECT COLUMN_NAME AS column_name, DATA_TYPE AS data_type
        FROM information_schema.COLUMNS
        WHERE TABLE_SCHEMA = COALESCE(%s, DATABASE())
            AND TABLE_NAME = %s
        ORDER BY ORDINAL_POSITION
        """
        return await self._fetch(conn, query, [self.connection_config.schema or self.database_name, table])

    def map_source_type_to_kind(self, source_type: str) -> ValueKind:
        """Map MySQL type to value kind"""
        type_mapping = {
            'int': ValueKind.INTEGER,
            'integer': ValueKind.INTEGER,
            'bigint': ValueKind.INTEGER,
            'smallint': ValueKind.INTEGER,
            'mediumint': ValueKind.INTEGER,
            'tinyint': ValueKind.INTEGER,
            'float': ValueKind.FLOAT,
            'double': ValueKind.FLOAT,
            'decimal': ValueKind.DECIMAL,
            'numeric': ValueKind.DECIMAL,
            'varchar': ValueKind.TEXT,
            'char': ValueKind.TEXT,
            'text': ValueKind.TEXT,
            'tinytext': ValueKind.TEXT,
            'mediumtext': ValueKind.TEXT,
            'longtext': ValueKind.TEXT,
            'enum': ValueKind.TEXT,
            'date': ValueKind.DATETIME,
            'time': ValueKind.DATETIME,
            'datetime': ValueKind.DATETIME,
            'timestamp': ValueKind.DATETIME,
            'boolean': ValueKind.BOOLEAN,
            'bool': ValueKind.BOOLEAN,
            'binary': ValueKind.BINARY,
            'varbinary': ValueKind.BINARY,
            'blob': ValueKind.BINARY,
            'tinyblob': ValueKind.BINARY,
            'mediumblob': ValueKind.BINARY,
            'longblob': ValueKind.BINARY,
            'bit': ValueKind.BINARY,
        }

        normalized_type = source_type.lower().strip()
        base_type = normalized_type.split('(')[0] if '(' in normalized_type else normalized_type
        return type_mapping.get(base_type, ValueKind.OTHER)

    # Data access

    async def fetch_rows(self, conn, table: str, columns: Sequence[str]) -> List[Sequence[Any]]:
        query = self.build_select_sql(table, columns)
        self._logger.debug(f"Executing MySQL query: {query}")
        async with conn.cursor() as cur:
            await cur.execute(query)
            return list(await cur.fetchall())

    def build_insert_sql(self, table: str, columns: Sequence[str], temporary: bool = False) -> str:
        target = self.quote_identifier(table) if temporary else self.qualified_table_name(table)
        column_list = ", ".join(self.quote_identifier(c) for c in columns)
        placeholders = ", ".join(["%s"] * len(columns))
        return f"INSERT INTO {target} ({column_list}) VALUES ({placeholders})"

    async def bulk_insert(self, conn, table: str, columns: Sequence[str],
                          records: Sequence[Sequence[Any]], temporary: bool = False) -> int:
        if not records:
            return 0
        query = self.build_insert_sql(table, columns, temporary)
        # aiomysql rewrites INSERT ... VALUES executemany into multi-row statements
        async with conn.cursor() as cur:
            await cur.executemany(query, [tuple(r) for r in records])
        return len(records)

    # Staging table protocol

    async def create_staging_table(self, conn, staging_table: str, table: str,
                                   columns: Sequence[str]) -> None:
        column_list = ", ".join(self.quote_identifier(c) for c in columns)
        await self._execute(
            conn,
            f"CREATE TEMPORARY TABLE {self.quote_identifier(staging_table)} AS "
            f"SELECT {column_list} FROM {self.qualified_table_name(table)} LIMIT 0"
        )

    def build_update_from_staging_sql(self, table: str, staging_table: str,
                                      columns: Sequence[str], pk_columns: Sequence[str]) -> str:
        q = self.quote_identifier
        join_clause = " AND ".join(f"dest.{q(pk)} = stage.{q(pk)}" for pk in pk_columns)
        set_clause = ", ".join(f"dest.{q(c)} = stage.{q(c)}" for c in columns if c not in pk_columns)
        return (
            f"UPDATE {self.qualified_table_name(table)} AS dest "
            f"INNER JOIN {q(staging_table)} AS stage ON {join_clause} "
            f"SET {set_clause}"
        )

    async def update_from_staging(self, conn, table: str, staging_table: str,
                                  columns: Sequence[str], pk_columns: Sequence[str]) -> int:
        query = self.build_update_from_staging_sql(table, staging_table, columns, pk_columns)
        return await self._execute(conn, query)

    async def drop_staging_table(self, conn, staging_table: str) -> None:
        await self._execute(conn, f"DROP TEMPORARY TABLE IF EXISTS {self.quote_identifier(staging_table)}")
