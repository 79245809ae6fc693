import math
from decimal import Decimal
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.enums import RowStatus, ValueKind

RowSnapshot = Dict[str, Any]
CompositeKey = Tuple[Any, ...]
_BUFFER_TYPES = (bytes, bytearray, memoryview)


@dataclass
class DiffResult:
    """Source rows split by how they relate to the destination"""
    to_insert: List[RowSnapshot] = field(default_factory=list)
    to_update: List[RowSnapshot] = field(default_factory=list)
    unchanged: int = 0

    def __iter__(self):
        # Allows ``to_insert, to_update = engine.diff(...)``
        return iter((self.to_insert, self.to_update))

    @property
    def has_changes(self) -> bool:
        return bool(self.to_insert or self.to_update)


def composite_key(row: Mapping[str, Any], pk_columns: Sequence[str]) -> CompositeKey:
    """Tuple of the row's primary key values in key order"""
    return tuple(row[pk] for pk in pk_columns)


def _is_nan(value: Any) -> bool:
    # numeric NaN comes back from asyncpg as Decimal('NaN')
    if isinstance(value, Decimal):
        return value.is_nan()
    return isinstance(value, float) and math.isnan(value)


def values_differ(left: Any, right: Any, kind: Optional[ValueKind] = None) -> bool:
    if left is None and right is None:
        return False
    if left is None or right is None:
        return True

    # Only buffers compare by content, bytes(int) would build a zero-filled buffer
    if isinstance(left, _BUFFER_TYPES) and isinstance(right, _BUFFER_TYPES):
        return bytes(left) != bytes(right)
    if kind == ValueKind.BINARY:
        return left != right

    if _is_nan(left) and _is_nan(right):
        return False

    return left != right


def rows_differ(source: Mapping[str, Any], destination: Mapping[str, Any], columns: Sequence[str],
                column_kinds: Optional[Mapping[str, ValueKind]] = None) -> bool:
    for column in columns:
        kind = column_kinds.get(column) if column_kinds else None
        if values_differ(source.get(column), destination.get(column), kind):
            return True
    return False


class RowDiffEngine:
    """Classifies source rows against a destination index as new, changed or unchanged"""

    def classify(self, source_rows: Sequence[RowSnapshot], destination_rows: Sequence[RowSnapshot],
                 pk_columns: Sequence[str], all_columns: Sequence[str],
                 column_kinds: Optional[Mapping[str, ValueKind]] = None) -> List[Tuple[RowSnapshot, RowStatus]]:
        """Status of every source row, in source order"""
        destination_map = {composite_key(row, pk_columns): row for row in destination_rows}

        statuses = []
        for row in source_rows:
            match = destination_map.get(composite_key(row, pk_columns))
            if match is None:
                statuses.append((row, RowStatus.NEW))
            elif rows_differ(row, match, all_columns, column_kinds):
                statuses.append((row, RowStatus.CHANGED))
            else:
                statuses.append((row, RowStatus.UNCHANGED))
        return statuses

    def diff(self, source_rows: Sequence[RowSnapshot], destination_rows: Sequence[RowSnapshot],
             pk_columns: Sequence[str], all_columns: Sequence[str],
             column_kinds: Optional[Mapping[str, ValueKind]] = None) -> DiffResult:
        """
        Split ``source_rows`` into rows to insert and rows to update.

        Runs in O(S + D) time and O(D) space. Rows present only in the
        destination are ignored, deletions are never propagated.
        """
        result = DiffResult()
        for row, status in self.classify(source_rows, destination_rows, pk_columns, all_columns, column_kinds):
            if status == RowStatus.NEW:
                result.to_insert.append(row)
            elif status == RowStatus.CHANGED:
                result.to_update.append(row)
            else:
                result.unchanged += 1
        return result
