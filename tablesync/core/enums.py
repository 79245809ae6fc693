from enum import Enum


class ValueKind(str, Enum):
    """Kind of value a column holds, resolved once from the store's data type"""
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    TEXT = "text"
    BINARY = "binary"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    OTHER = "other"


class SyncDirection(str, Enum):
    PULL = "pull"
    PUSH = "push"


class RowStatus(str, Enum):
    NEW = "N"
    CHANGED = "C"
    UNCHANGED = "U"


class ErrorKind(str, Enum):
    SCHEMA = "SchemaError"
    CONNECTIVITY = "ConnectivityError"
    RECONCILE = "ReconcileError"
    CANCELLED = "SyncCancelledError"
    UNEXPECTED = "UnexpectedError"


class DatastoreType(str, Enum):
    POSTGRES = "postgres"
    MYSQL = "mysql"
