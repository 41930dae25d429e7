"""Tests for the import pipeline."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from tabularload.config import (
    ConcurrencyConfig,
    IngestionConfig,
    LoaderConfig,
    StoreConfig,
)
from tabularload.descriptor import PackageDescriptor, load_descriptor
from tabularload.errors import RowCoercionWarning, StoreUnavailableError
from tabularload.etl import ImportPipeline, run
from tabularload.report import ResourceStatus
from tabularload.store import MemoryStore, SQLStore, TableStatus


def _resource(name: str, fields: list[dict[str, str]]) -> dict[str, Any]:
    return {"name": name, "path": f"data/{name}.csv", "schema": {"fields": fields}}


class TestFinancialsLoad:
    """End-to-end load of the constituents_financials example."""

    def test_report(
        self, financials_package: PackageDescriptor, memory_store: MemoryStore
    ) -> None:
        """Test counts, the single warning and the derived status."""
        report = run(financials_package, memory_store)

        assert report.package == "s-and-p-500-companies"
        assert report.succeeded
        entry = report.resource("constituents_financials")
        assert entry.table == "constituents_financials"
        assert entry.table_status is TableStatus.CREATED
        assert entry.rows_attempted == 2
        assert entry.rows_inserted == 2
        assert entry.rows_skipped == 0
        assert entry.status is ResourceStatus.PARTIAL

        assert len(entry.warnings) == 1
        warning = entry.warnings[0]
        assert isinstance(warning, RowCoercionWarning)
        assert warning.field == "Price"
        assert warning.row == 2
        assert warning.value == "notanumber"

    def test_rows(
        self, financials_package: PackageDescriptor, memory_store: MemoryStore
    ) -> None:
        """Test the stored rows carry sanitized columns and a null price."""
        run(financials_package, memory_store)

        df = memory_store.read_frame("constituents_financials")
        assert list(df.columns) == ["_row_id", "symbol", "price", "_52_week_low"]
        assert df["_row_id"].tolist() == [1, 2]
        assert df["symbol"].tolist() == ["MMM", "BAD"]
        assert df.loc[0, "price"] == pytest.approx(162.27)
        assert pd.isna(df.loc[1, "price"])
        assert df["_52_week_low"].tolist() == pytest.approx([123.61, 99.1])

    def test_rerun_appends(
        self, financials_package: PackageDescriptor, memory_store: MemoryStore
    ) -> None:
        """Test a second run reuses the table and appends duplicate rows."""
        run(financials_package, memory_store)
        report = run(financials_package, memory_store)

        entry = report.resource("constituents_financials")
        assert entry.table_status is TableStatus.COMPATIBLE
        assert entry.rows_inserted == 2
        assert memory_store.row_count("constituents_financials") == 4

    def test_fingerprints(
        self, financials_package: PackageDescriptor, memory_store: MemoryStore
    ) -> None:
        """Test the report records descriptor and source digests and timing."""
        report = run(financials_package, memory_store)

        assert len(report.descriptor_hash) == 16
        entry = report.resource("constituents_financials")
        assert entry.source_digest is not None
        assert entry.source_digest != "missing"
        assert report.finished_at is not None
        assert report.finished_at >= report.started_at


class TestResourceFailures:
    """Resource-scoped failures are recorded and the run continues."""

    def test_field_collision(
        self, make_package: Callable[..., Path], memory_store: MemoryStore
    ) -> None:
        """Test colliding field names fail the resource without creating a table."""
        path = make_package(
            [
                _resource("prices", [{"name": "Price"}, {"name": "price"}]),
                _resource("symbols", [{"name": "Symbol"}]),
            ],
            {
                "data/prices.csv": "Price,price\n1,2\n",
                "data/symbols.csv": "Symbol\nA\n",
            },
        )

        report = run(load_descriptor(path), memory_store)

        prices = report.resource("prices")
        assert prices.status is ResourceStatus.FAILED
        assert prices.error_kind == "SchemaError"
        assert prices.table_status is None
        assert not memory_store.table_exists("prices")
        assert report.resource("symbols").status is ResourceStatus.LOADED
        assert not report.succeeded

    def test_header_mismatch(
        self, make_package: Callable[..., Path], memory_store: MemoryStore
    ) -> None:
        """Test a 3-column header against 4 fields fails only that resource."""
        path = make_package(
            [
                _resource("wide", [{"name": n} for n in ("a", "b", "c", "d")]),
                _resource("symbols", [{"name": "Symbol"}]),
            ],
            {"data/wide.csv": "a,b,c\n1,2,3\n", "data/symbols.csv": "Symbol\nA\nB\n"},
        )

        report = run(load_descriptor(path), memory_store)

        wide = report.resource("wide")
        assert wide.status is ResourceStatus.FAILED
        assert wide.error_kind == "StructuralError"
        assert wide.rows_inserted == 0
        symbols = report.resource("symbols")
        assert symbols.status is ResourceStatus.LOADED
        assert symbols.rows_inserted == 2
        assert [r.resource for r in report.failed] == ["wide"]

    def test_missing_data_file(
        self, make_package: Callable[..., Path], memory_store: MemoryStore
    ) -> None:
        """Test a missing data file fails the resource with StructuralError."""
        path = make_package([_resource("ghost", [{"name": "a"}])], {})

        report = run(load_descriptor(path), memory_store)

        ghost = report.resource("ghost")
        assert ghost.error_kind == "StructuralError"
        assert ghost.source_digest is None

    def test_incompatible_table(
        self, make_package: Callable[..., Path], memory_store: MemoryStore
    ) -> None:
        """Test an incompatible existing table receives no rows."""
        first = make_package(
            [_resource("items", [{"name": "qty", "type": "string"}])],
            {"data/items.csv": "qty\nmany\n"},
            subdir="v1",
        )
        second = make_package(
            [_resource("items", [{"name": "qty", "type": "integer"}])],
            {"data/items.csv": "qty\n3\n"},
            subdir="v2",
        )
        run(load_descriptor(first), memory_store)

        report = run(load_descriptor(second), memory_store)

        entry = report.resource("items")
        assert entry.table_status is TableStatus.INCOMPATIBLE
        assert entry.error_kind == "IncompatibleTableError"
        assert entry.rows_attempted == 0
        assert memory_store.row_count("items") == 1

    def test_duplicate_table_names(
        self, make_package: Callable[..., Path], memory_store: MemoryStore
    ) -> None:
        """Test a later resource mapping to a taken table name fails."""
        path = make_package(
            [
                _resource("Prices", [{"name": "a"}]),
                {**_resource("prices", [{"name": "a"}]), "path": "data/more.csv"},
            ],
            {"data/Prices.csv": "a\n1\n", "data/more.csv": "a\n2\n"},
        )

        report = run(load_descriptor(path), memory_store)

        assert report.resources[0].status is ResourceStatus.LOADED
        assert report.resources[1].error_kind == "SchemaError"
        assert "already used" in (report.resources[1].error or "")
        assert memory_store.row_count("prices") == 1

    def test_resource_timeout(
        self, two_resource_package: PackageDescriptor, memory_store: MemoryStore
    ) -> None:
        """Test an expired resource deadline fails the resource."""
        config = LoaderConfig(
            ingestion=IngestionConfig(batch_size=1, resource_timeout=1e-9)
        )

        report = ImportPipeline(config).run(two_resource_package, memory_store)

        entry = report.resource("constituents")
        assert entry.error_kind == "ResourceTimeoutError"
        assert entry.rows_inserted == 1
        assert entry.rows_attempted == 1

    def test_unknown_type(
        self, make_package: Callable[..., Path], memory_store: MemoryStore
    ) -> None:
        """Test unknown field types load as text with a recorded warning."""
        path = make_package(
            [_resource("places", [{"name": "where", "type": "geopoint"}])],
            {"data/places.csv": "where\n\"52.5,13.4\"\n"},
        )

        report = run(load_descriptor(path), memory_store)

        entry = report.resource("places")
        assert entry.rows_inserted == 1
        assert len(entry.type_warnings) == 1
        assert memory_store.read_frame("places")["where"].tolist() == ["52.5,13.4"]


class TestStoreHandling:
    """Tests for store selection and run-level failures."""

    def test_unavailable_store_aborts(
        self, financials_package: PackageDescriptor, tmp_path: Path
    ) -> None:
        """Test an unreachable store aborts the run."""
        store = SQLStore.from_url(f"sqlite:///{tmp_path / 'missing' / 'x.db'}")
        with pytest.raises(StoreUnavailableError):
            run(financials_package, store)
        store.close()

    def test_default_store(self, financials_package: PackageDescriptor) -> None:
        """Test a run without a store loads into the in-memory default."""
        report = run(financials_package)
        assert report.rows_inserted == 2

    def test_configured_store(
        self, financials_package: PackageDescriptor, tmp_path: Path
    ) -> None:
        """Test a configured URL is used when no store is passed."""
        url = f"sqlite:///{tmp_path / 'load.db'}"
        config = LoaderConfig(store=StoreConfig(url=url))

        ImportPipeline(config).run(financials_package)

        with SQLStore.from_url(url) as store:
            assert len(store.read_frame("constituents_financials")) == 2

    def test_table_prefix(
        self, financials_package: PackageDescriptor, memory_store: MemoryStore
    ) -> None:
        """Test the configured prefix is part of every table name."""
        config = LoaderConfig(ingestion=IngestionConfig(table_prefix="sp500"))

        report = ImportPipeline(config).run(financials_package, memory_store)

        assert report.resources[0].table == "sp500_constituents_financials"
        assert memory_store.table_exists("sp500_constituents_financials")


class TestParallelLoad:
    """Tests for resource-level parallelism."""

    def test_parallel_matches_sequential(
        self, two_resource_package: PackageDescriptor
    ) -> None:
        """Test parallel runs load the same rows and keep declaration order."""
        config = LoaderConfig(
            concurrency=ConcurrencyConfig(parallel=True, max_workers=2),
            ingestion=IngestionConfig(batch_size=1),
        )
        sequential_store = MemoryStore()
        parallel_store = MemoryStore()

        sequential = run(two_resource_package, sequential_store)
        parallel = run(two_resource_package, parallel_store, config)

        assert [r.resource for r in parallel.resources] == [
            "constituents",
            "constituents_financials",
        ]
        assert [r.rows_inserted for r in parallel.resources] == [
            r.rows_inserted for r in sequential.resources
        ]
        for table in ("constituents", "constituents_financials"):
            pd.testing.assert_frame_equal(
                parallel_store.read_frame(table), sequential_store.read_frame(table)
            )

    def test_parallel_sql(
        self, two_resource_package: PackageDescriptor, tmp_path: Path
    ) -> None:
        """Test parallel workers share a file database through pooled connections."""
        url = f"sqlite:///{tmp_path / 'parallel.db'}"
        config = LoaderConfig(
            store=StoreConfig(url=url),
            concurrency=ConcurrencyConfig(parallel=True, max_workers=2),
        )

        report = ImportPipeline(config).run(two_resource_package)

        assert report.succeeded
        assert report.rows_inserted == 5
