"""
In-memory store.

Used when no destination is configured and in tests. Values are type
checked on insert so the store rejects a batch the way a typed SQL
table would.
"""

import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import pandas as pd

from tabularload.errors import StoreWriteError
from tabularload.schema.table import TableDefinition
from tabularload.schema.types import StorageType
from tabularload.store.base import Row, Store

_ACCEPTED_TYPES: dict[StorageType, tuple[type, ...]] = {
    StorageType.TEXT: (str,),
    StorageType.INTEGER: (int,),
    StorageType.FLOAT: (float, int),
    StorageType.BOOLEAN: (bool,),
    StorageType.DATE: (date,),
    StorageType.DATETIME: (datetime,),
}


def _type_matches(storage_type: StorageType, value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return storage_type in (StorageType.BOOLEAN, StorageType.INTEGER)
    if storage_type is StorageType.DATE and isinstance(value, datetime):
        return False
    return isinstance(value, _ACCEPTED_TYPES[storage_type])


def _stored(storage_type: StorageType, value: Any) -> Any:
    """Value as a typed column would hold it; booleans widen to 0 and 1."""
    if isinstance(value, bool) and storage_type is StorageType.INTEGER:
        return int(value)
    return value


@dataclass
class _MemoryTable:
    definition: TableDefinition
    rows: list[Row] = field(default_factory=list)
    next_id: int = 1


class MemoryStore(Store):
    """Thread-safe dictionary-backed store."""

    def __init__(self) -> None:
        self._tables: dict[str, _MemoryTable] = {}
        self._lock = threading.Lock()

    def table_exists(self, name: str) -> bool:
        with self._lock:
            return name in self._tables

    def create_table(self, definition: TableDefinition) -> None:
        with self._lock:
            if definition.name in self._tables:
                msg = f"Table '{definition.name}' already exists"
                raise StoreWriteError(msg)
            self._tables[definition.name] = _MemoryTable(definition)

    def describe_table(self, name: str) -> dict[str, StorageType | None]:
        with self._lock:
            table = self._get(name)
            return {c.name: c.storage_type for c in table.definition.columns}

    def insert_batch(self, table: str, rows: list[Row]) -> int:
        with self._lock:
            target = self._get(table)
            columns = {c.name: c for c in target.definition.data_columns}

            # Validate everything first so a rejected batch leaves no rows
            for row in rows:
                unknown = set(row) - set(columns)
                if unknown:
                    msg = f"Unknown columns for '{table}': {sorted(unknown)}"
                    raise StoreWriteError(msg)
                for name, value in row.items():
                    if not _type_matches(columns[name].storage_type, value):
                        msg = (
                            f"Value {value!r} does not fit column "
                            f"'{name}' ({columns[name].storage_type.value})"
                        )
                        raise StoreWriteError(msg)

            identity = target.definition.identity_column.name
            for row in rows:
                record = {identity: target.next_id}
                record.update(
                    {
                        name: _stored(column.storage_type, row.get(name))
                        for name, column in columns.items()
                    }
                )
                target.rows.append(record)
                target.next_id += 1
            return len(rows)

    def read_frame(self, name: str) -> pd.DataFrame:
        with self._lock:
            table = self._get(name)
            return pd.DataFrame(
                [dict(r) for r in table.rows],
                columns=table.definition.column_names,
            )

    def row_count(self, name: str) -> int:
        """Number of rows stored in a table."""
        with self._lock:
            return len(self._get(name).rows)

    def _get(self, name: str) -> _MemoryTable:
        try:
            return self._tables[name]
        except KeyError:
            msg = f"Table '{name}' does not exist"
            raise StoreWriteError(msg) from None
