"""
Datastore module for the two stores taking part in a table sync.

This module provides datastore implementations for different database types
with lazy loading of drivers and centralized connection management.
"""

from .base_datastore import BaseDatastore
from .postgres_datastore import PostgresDatastore
from .mysql_datastore import MySQLDatastore
from ..core.enums import DatastoreType
from ..core.models import ConnectionConfig


def create_datastore(name: str, store_type: str, connection: ConnectionConfig) -> BaseDatastore:
    """Create the datastore implementation for ``store_type``"""
    if store_type == DatastoreType.POSTGRES.value:
        return PostgresDatastore(name, connection)
    elif store_type == DatastoreType.MYSQL.value:
        return MySQLDatastore(name, connection)
    raise ValueError(f"Unsupported datastore type: {store_type}")


__all__ = [
    'BaseDatastore',
    'PostgresDatastore',
    'MySQLDatastore',
    'create_datastore',
]
