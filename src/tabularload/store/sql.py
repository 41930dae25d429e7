"""
SQLAlchemy-backed store.

Works with any engine SQLAlchemy can connect to. Every call checks out
its own connection from the engine's pool, so concurrent workers never
share a connection or transaction.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, NoReturn

import pandas as pd
import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from tabularload.errors import StoreUnavailableError, StoreWriteError
from tabularload.schema.table import ColumnSpec, TableDefinition
from tabularload.schema.types import StorageType
from tabularload.store.base import Row, Store
from tabularload.utils.logging import get_logger

log = get_logger(__name__)

# DB-API drivers raise the builtin errors for values they cannot bind, such
# as an int too large for the column, and SQLAlchemy passes them through
WRITE_ERRORS = (SQLAlchemyError, OverflowError, ValueError, TypeError)

SQL_TYPES: dict[StorageType, type[sa.types.TypeEngine[Any]]] = {
    StorageType.TEXT: sa.Text,
    StorageType.INTEGER: sa.Integer,
    StorageType.FLOAT: sa.Float,
    StorageType.BOOLEAN: sa.Boolean,
    StorageType.DATE: sa.Date,
    StorageType.DATETIME: sa.DateTime,
}


def storage_type_of(sql_type: sa.types.TypeEngine[Any]) -> StorageType | None:
    """
    Map a reflected column type back to a storage type.

    Order matters: DateTime before Date, Boolean before Integer.
    """
    if isinstance(sql_type, sa.Boolean):
        return StorageType.BOOLEAN
    if isinstance(sql_type, sa.DateTime):
        return StorageType.DATETIME
    if isinstance(sql_type, sa.Date):
        return StorageType.DATE
    if isinstance(sql_type, sa.Integer):
        return StorageType.INTEGER
    if isinstance(sql_type, sa.Numeric):
        return StorageType.FLOAT
    if isinstance(sql_type, sa.String):
        return StorageType.TEXT
    return None


def _connect_args(url: sa.URL, timeout: float | None) -> dict[str, Any]:
    """Driver-specific arguments enforcing the store call timeout."""
    backend = url.get_backend_name()
    args: dict[str, Any] = {}
    if backend == "sqlite":
        args["check_same_thread"] = False
        if timeout is not None:
            args["timeout"] = timeout
    elif backend == "postgresql" and timeout is not None:
        args["connect_timeout"] = max(1, int(timeout))
        args["options"] = f"-c statement_timeout={int(timeout * 1000)}"
    elif backend in ("mysql", "mariadb") and timeout is not None:
        args["connect_timeout"] = max(1, int(timeout))
        args["read_timeout"] = max(1, int(timeout))
        args["write_timeout"] = max(1, int(timeout))
    return args


class SQLStore(Store):
    """Store writing through SQLAlchemy Core."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._tables: dict[str, sa.Table] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_url(
        cls, url: str, *, timeout: float | None = None, echo: bool = False
    ) -> "SQLStore":
        """
        Create a store for a database URL.

        In-memory SQLite databases use a single shared connection so every
        caller sees the same database.

        Args:
            url: SQLAlchemy database URL.
            timeout: Seconds a store call may block.
            echo: Log SQL statements.
        """
        parsed = make_url(url)
        kwargs: dict[str, Any] = {
            "echo": echo,
            "connect_args": _connect_args(parsed, timeout),
        }
        if parsed.get_backend_name() == "sqlite" and parsed.database in (
            None,
            "",
            ":memory:",
        ):
            kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True

        log.info("Creating SQL store", url=parsed.render_as_string(hide_password=True))
        return cls(sa.create_engine(parsed, **kwargs))

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        """Check out a connection, mapping connect failures to StoreUnavailableError."""
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as e:
            msg = f"Cannot connect to store: {e}"
            raise StoreUnavailableError(msg) from e
        try:
            yield conn
        finally:
            conn.close()

    def table_exists(self, name: str) -> bool:
        with self._connection() as conn:
            return sa.inspect(conn).has_table(name)

    def create_table(self, definition: TableDefinition) -> None:
        table = sa.Table(
            definition.name,
            sa.MetaData(),
            *(self._column(c) for c in definition.columns),
        )
        with self._connection() as conn:
            try:
                with conn.begin():
                    table.create(conn)
            except WRITE_ERRORS as e:
                self._raise_write_error(f"Cannot create table '{definition.name}'", e)
        with self._lock:
            self._tables[definition.name] = table
        log.info("Created table", table=definition.name)

    def describe_table(self, name: str) -> dict[str, StorageType | None]:
        with self._connection() as conn:
            columns = sa.inspect(conn).get_columns(name)
        return {c["name"]: storage_type_of(c["type"]) for c in columns}

    def insert_batch(self, table: str, rows: list[Row]) -> int:
        if not rows:
            return 0
        target = self._table(table)
        with self._connection() as conn:
            try:
                with conn.begin():
                    conn.execute(target.insert(), rows)
            except WRITE_ERRORS as e:
                self._raise_write_error(f"Insert into '{table}' failed", e)
        return len(rows)

    def read_frame(self, name: str) -> pd.DataFrame:
        with self._connection() as conn:
            try:
                return pd.read_sql_table(name, conn)
            except (SQLAlchemyError, ValueError) as e:
                self._raise_write_error(f"Cannot read table '{name}'", e)

    def close(self) -> None:
        self.engine.dispose()

    def _table(self, name: str) -> sa.Table:
        """Table object for inserts, reflected if this store did not create it."""
        with self._lock:
            table = self._tables.get(name)
        if table is None:
            with self._connection() as conn:
                try:
                    table = sa.Table(name, sa.MetaData(), autoload_with=conn)
                except SQLAlchemyError as e:
                    self._raise_write_error(f"Cannot reflect table '{name}'", e)
            with self._lock:
                self._tables[name] = table
        return table

    @staticmethod
    def _column(spec: ColumnSpec) -> sa.Column[Any]:
        if spec.identity:
            return sa.Column(
                spec.name, sa.Integer, primary_key=True, autoincrement=True
            )
        return sa.Column(spec.name, SQL_TYPES[spec.storage_type](), nullable=True)

    @staticmethod
    def _raise_write_error(context: str, error: Exception) -> NoReturn:
        """Translate a driver error; lost connections abort the run."""
        if isinstance(error, DBAPIError) and error.connection_invalidated:
            msg = f"{context}: connection lost: {error.orig}"
            raise StoreUnavailableError(msg) from error
        detail = error.orig if isinstance(error, DBAPIError) else error
        msg = f"{context}: {detail}"
        raise StoreWriteError(msg) from error
