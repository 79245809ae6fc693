"""
Base datastore interface for the stores taking part in a table sync.

A backend only has to provide four primitives:
- schema introspection (primary key and ordinal column list)
- a column-projected full-table read
- a bulk-load channel
- a temporary staging table plus a join-based UPDATE
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from ..core.enums import ValueKind
from ..core.errors import ConnectivityError
from ..core.models import ConnectionConfig


class BaseDatastore(ABC):
    """
    Abstract base class for all datastore implementations.

    Provides common interface for database connection management with:
    - Lazy loading of database drivers
    - Idempotent connect/disconnect operations
    - Scoped sessions that always hand their connection back to the pool
    """

    # Errors that mean the store could not be reached, whatever the driver
    transport_errors = (OSError, ConnectionError, asyncio.TimeoutError)

    def __init__(self, name: str, connection_config: ConnectionConfig):
        self.name = name
        self.connection_config = connection_config
        self._connection_pool = None
        self._connection_lock = asyncio.Lock()
        self._is_connected = False
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def is_connected(self) -> bool:
        """Check if the datastore is currently connected"""
        return self._is_connected

    @property
    def identity(self) -> str:
        """Key identifying this store in the schema cache"""
        return self.name

    @abstractmethod
    async def _create_connection(self) -> None:
        """Create the actual connection pool - implemented by subclasses"""
        pass

    @abstractmethod
    async def _cleanup_connections(self) -> None:
        """Clean up database connections - implemented by subclasses"""
        pass

    @abstractmethod
    def _acquire(self):
        """Return an async context manager yielding one pooled connection"""
        pass

    async def connect(self, logger: Optional[logging.Logger] = None) -> None:
        """
        Connect to the datastore - idempotent operation.

        Raises:
            ConnectivityError: If the pool could not be created
        """
        logger = logger or self._logger
        async with self._connection_lock:
            if self._is_connected:
                return

            logger.info(f"Connecting to {self.__class__.__name__}: {self.name}")
            try:
                await self._create_connection()
                self._is_connected = True
                logger.info(f"Successfully connected to {self.__class__.__name__}: {self.name}")
            except ImportError:
                raise
            except Exception as e:
                logger.error(f"Failed to connect to {self.__class__.__name__} {self.name}: {e}")
                await self._cleanup_connections()
                raise ConnectivityError(f"Could not connect to datastore '{self.name}': {e}") from e

    async def disconnect(self, logger: Optional[logging.Logger] = None) -> None:
        """Disconnect from the datastore - idempotent operation."""
        logger = logger or self._logger
        async with self._connection_lock:
            if not self._is_connected:
                return

            logger.info(f"Disconnecting from {self.__class__.__name__}: {self.name}")
            try:
                await self._cleanup_connections()
                logger.info(f"Successfully disconnected from {self.__class__.__name__}: {self.name}")
            except Exception as e:
                logger.error(f"Error during disconnect from {self.__class__.__name__} {self.name}: {e}")
            finally:
                # Still mark as disconnected even if cleanup failed
                self._is_connected = False

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Any]:
        """
        Acquire one connection for the duration of a sync phase.

        Temporary staging tables are session scoped, so everything a phase
        does against this store goes through the connection yielded here.
        The connection is released on every exit path.
        """
        await self.connect()
        try:
            async with self._acquire() as conn:
                yield conn
        except Exception as e:
            if self.is_transport_error(e):
                raise ConnectivityError(f"Lost connection to datastore '{self.name}': {e}") from e
            raise

    def is_transport_error(self, exc: BaseException) -> bool:
        """Whether ``exc`` means the store is unreachable rather than the query is wrong"""
        return isinstance(exc, self.transport_errors)

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Quote a table or column name for this dialect"""
        pass

    def qualified_table_name(self, table: str) -> str:
        schema = self.connection_config.schema
        if schema:
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)

    # Schema introspection

    @abstractmethod
    async def fetch_primary_key(self, conn, table: str) -> List[str]:
        """
        Primary key column names of ``table`` in key ordinal order.

        Returns an empty list when the table has no primary key.
        """
        pass

    @abstractmethod
    async def fetch_columns(self, conn, table: str) -> List[Dict[str, Any]]:
        """
        Columns of ``table`` in ordinal order.

        Returns:
            List of dictionaries with ``column_name`` and ``data_type`` keys
        """
        pass

    @abstractmethod
    def map_source_type_to_kind(self, source_type: str) -> ValueKind:
        """Map a database-specific type name to the value kind used for comparison"""
        pass

    # Data access

    def build_select_sql(self, table: str, columns: Sequence[str]) -> str:
        column_list = ", ".join(self.quote_identifier(c) for c in columns)
        return f"SELECT {column_list} FROM {self.qualified_table_name(table)}"

    @abstractmethod
    async def fetch_rows(self, conn, table: str, columns: Sequence[str]) -> List[Sequence[Any]]:
        """Read every row of ``table`` restricted to ``columns``, values in column order"""
        pass

    @abstractmethod
    async def bulk_insert(self, conn, table: str, columns: Sequence[str],
                          records: Sequence[Sequence[Any]], temporary: bool = False) -> int:
        """
        Load ``records`` into ``table`` through the store's bulk channel.

        Args:
            temporary: ``table`` is a session staging table, not a schema table

        Returns:
            Number of rows transferred
        """
        pass

    # Staging table protocol

    @abstractmethod
    async def create_staging_table(self, conn, staging_table: str, table: str,
                                   columns: Sequence[str]) -> None:
        """Create a session-scoped empty table shaped like ``columns`` of ``table``"""
        pass

    @abstractmethod
    def build_update_from_staging_sql(self, table: str, staging_table: str,
                                      columns: Sequence[str], pk_columns: Sequence[str]) -> str:
        pass

    @abstractmethod
    async def update_from_staging(self, conn, table: str, staging_table: str,
                                  columns: Sequence[str], pk_columns: Sequence[str]) -> int:
        """
        One set-based UPDATE of ``table`` from ``staging_table`` joined on ``pk_columns``.

        Every column of ``columns`` that is not part of the key is assigned.
        """
        pass

    @abstractmethod
    async def drop_staging_table(self, conn, staging_table: str) -> None:
        pass
