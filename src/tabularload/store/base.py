"""
Store collaborator interface.

The pipeline only relies on the capability set below, so any SQL or
non-SQL engine that implements it can be loaded into.
"""

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any

import pandas as pd

from tabularload.schema.table import TableDefinition
from tabularload.schema.types import StorageType

Row = dict[str, Any]


class Store(ABC):
    """
    Abstract destination store.

    Implementations must be safe to call from several worker threads as
    long as each call concerns a different table; every call acquires
    its own connection or lock scope.
    """

    @abstractmethod
    def table_exists(self, name: str) -> bool:
        """Whether a table with this name exists."""
        ...

    @abstractmethod
    def create_table(self, definition: TableDefinition) -> None:
        """Create a table with exactly the definition's columns, in order."""
        ...

    @abstractmethod
    def describe_table(self, name: str) -> dict[str, StorageType | None]:
        """
        Column set of an existing table.

        Returns:
            Mapping of column name to storage type; None where the store's
            type has no storage type counterpart.
        """
        ...

    @abstractmethod
    def insert_batch(self, table: str, rows: list[Row]) -> int:
        """
        Insert rows atomically.

        Args:
            table: Table name.
            rows: Records keyed by column name, identity column omitted.

        Returns:
            Number of rows inserted.

        Raises:
            StoreWriteError: If the store rejects the batch; nothing of the
                batch is kept.
            StoreUnavailableError: If the store cannot be reached.
        """
        ...

    @abstractmethod
    def read_frame(self, name: str) -> pd.DataFrame:
        """Read a whole table, for consumers and post-load verification."""
        ...

    def close(self) -> None:
        """Release connections. The default store holds none."""

    def __enter__(self) -> "Store":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
