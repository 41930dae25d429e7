"""Tests for schema materialization."""

from collections.abc import Callable
from pathlib import Path

import pytest
import sqlalchemy as sa

from tabularload.descriptor import load_descriptor
from tabularload.descriptor.models import ResourceSpec
from tabularload.errors import IncompatibleTableError
from tabularload.etl import run
from tabularload.report import ResourceStatus
from tabularload.schema import TableDefinition, build_table_definition
from tabularload.schema.types import StorageType
from tabularload.store import MemoryStore, SQLStore, TableStatus, materialize
from tabularload.store.materialize import compare_columns, is_compatible


def _definition(
    fields: list[dict[str, str]], name: str = "prices"
) -> TableDefinition:
    resource = ResourceSpec.model_validate(
        {"name": name, "path": f"{name}.csv", "schema": {"fields": fields}}
    )
    return build_table_definition(resource)


class TestIsCompatible:
    """Tests for storage type compatibility."""

    def test_identical(self) -> None:
        """Test every type is compatible with itself."""
        assert all(is_compatible(t, t) for t in StorageType)

    def test_widening(self) -> None:
        """Test integer into float and boolean into integer are accepted."""
        assert is_compatible(StorageType.INTEGER, StorageType.FLOAT)
        assert is_compatible(StorageType.BOOLEAN, StorageType.INTEGER)

    def test_narrowing_rejected(self) -> None:
        """Test the reverse directions and unrelated types are rejected."""
        assert not is_compatible(StorageType.FLOAT, StorageType.INTEGER)
        assert not is_compatible(StorageType.INTEGER, StorageType.BOOLEAN)
        assert not is_compatible(StorageType.TEXT, StorageType.INTEGER)
        assert not is_compatible(StorageType.TEXT, None)


class TestCompareColumns:
    """Tests for compare_columns()."""

    def test_extra_columns_allowed(self) -> None:
        """Test columns beyond the definition do not count as mismatches."""
        definition = _definition([{"name": "symbol"}])
        existing = {
            "_row_id": StorageType.INTEGER,
            "symbol": StorageType.TEXT,
            "comment": StorageType.TEXT,
        }
        assert compare_columns(definition, existing) == []

    def test_missing_and_mismatched(self) -> None:
        """Test each missing or mismatched column is described."""
        definition = _definition(
            [{"name": "symbol"}, {"name": "price", "type": "number"}]
        )
        existing = {"_row_id": StorageType.INTEGER, "price": StorageType.TEXT}
        mismatches = compare_columns(definition, existing)
        assert mismatches == [
            "missing column 'symbol'",
            "column 'price' is text, expected float",
        ]


class TestMaterializeMemory:
    """Tests for materialize() against the in-memory store."""

    def test_create_then_reuse(self, memory_store: MemoryStore) -> None:
        """Test the first call creates the table and the second reuses it."""
        definition = _definition([{"name": "symbol"}])

        first = materialize(definition, memory_store)
        assert first.status is TableStatus.CREATED
        assert memory_store.table_exists("prices")

        second = materialize(definition, memory_store)
        assert second.status is TableStatus.COMPATIBLE
        assert second.usable
        second.raise_for_status()

    def test_widening_reused(self, memory_store: MemoryStore) -> None:
        """Test an integer field may load into an existing float column."""
        materialize(_definition([{"name": "qty", "type": "number"}]), memory_store)
        outcome = materialize(
            _definition([{"name": "qty", "type": "integer"}]), memory_store
        )
        assert outcome.status is TableStatus.COMPATIBLE

    def test_incompatible(self, memory_store: MemoryStore) -> None:
        """Test a type mismatch is reported without altering the table."""
        materialize(_definition([{"name": "qty", "type": "string"}]), memory_store)
        outcome = materialize(
            _definition([{"name": "qty", "type": "integer"}]), memory_store
        )
        assert outcome.status is TableStatus.INCOMPATIBLE
        assert not outcome.usable
        assert outcome.mismatches == ("column 'qty' is text, expected integer",)
        assert memory_store.describe_table("prices")["qty"] is StorageType.TEXT

        with pytest.raises(IncompatibleTableError) as exc_info:
            outcome.raise_for_status()
        assert exc_info.value.table == "prices"


class TestMaterializeSQL:
    """Tests for materialize() against SQLite."""

    def test_create_then_reuse(self, sql_store: SQLStore) -> None:
        """Test tables created through SQLAlchemy are recognized on reuse."""
        definition = _definition(
            [
                {"name": "symbol", "type": "string"},
                {"name": "qty", "type": "integer"},
                {"name": "price", "type": "number"},
                {"name": "active", "type": "boolean"},
                {"name": "day", "type": "date"},
                {"name": "at", "type": "datetime"},
            ]
        )
        assert materialize(definition, sql_store).status is TableStatus.CREATED
        assert materialize(definition, sql_store).status is TableStatus.COMPATIBLE

    def test_incompatible_existing_table(self, sql_store: SQLStore) -> None:
        """Test a table created outside the loader is compared, not altered."""
        with sql_store.engine.begin() as conn:
            conn.execute(
                sa.text(
                    "CREATE TABLE prices ("
                    "_row_id INTEGER PRIMARY KEY AUTOINCREMENT, "
                    "symbol TEXT, price TEXT)"
                )
            )

        definition = _definition(
            [{"name": "symbol"}, {"name": "price", "type": "number"}]
        )
        outcome = materialize(definition, sql_store)

        assert outcome.status is TableStatus.INCOMPATIBLE
        assert outcome.mismatches == ("column 'price' is text, expected float",)
        assert sql_store.describe_table("prices")["price"] is StorageType.TEXT


class TestWidenedLoads:
    """Rows declared with a narrower type load into widened columns."""

    @pytest.mark.parametrize(
        ("existing", "declared", "content", "expected"),
        [
            ("integer", "boolean", "flag\ntrue\nfalse\n", [1, 0]),
            ("number", "integer", "flag\n3\n4\n", [3.0, 4.0]),
        ],
        ids=["boolean-into-integer", "integer-into-float"],
    )
    @pytest.mark.parametrize("store_fixture", ["memory_store", "sql_store"])
    def test_rerun_inserts_rows(
        self,
        make_package: Callable[..., Path],
        request: pytest.FixtureRequest,
        store_fixture: str,
        existing: str,
        declared: str,
        content: str,
        expected: list[float],
    ) -> None:
        """Test a compatible table reports its rows as inserted, none skipped."""
        store = request.getfixturevalue(store_fixture)
        first = make_package(
            [
                {
                    "name": "t",
                    "path": "t.csv",
                    "schema": {"fields": [{"name": "flag", "type": existing}]},
                }
            ],
            {"t.csv": "flag\n1\n"},
            subdir="v1",
        )
        second = make_package(
            [
                {
                    "name": "t",
                    "path": "t.csv",
                    "schema": {"fields": [{"name": "flag", "type": declared}]},
                }
            ],
            {"t.csv": content},
            subdir="v2",
        )
        run(load_descriptor(first), store)

        report = run(load_descriptor(second), store)

        entry = report.resource("t")
        assert entry.table_status is TableStatus.COMPATIBLE
        assert entry.status is ResourceStatus.LOADED
        assert entry.rows_inserted == 2
        assert entry.rows_skipped == 0
        assert store.read_frame("t")["flag"].tolist()[1:] == expected
