"""
Row import.

Streams records from a resource's data file, coerces every cell to its
column's storage type and inserts the rows in batches. Bad values and
bad rows are recorded, never raised: only an unreadable file, a header
that does not match the schema or an expired deadline stop a resource.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path

from tabularload.descriptor.models import ResourceSpec
from tabularload.errors import (
    LoadWarning,
    MalformedRowWarning,
    ResourceTimeoutError,
    RowCoercionWarning,
    RowInsertWarning,
    StoreWriteError,
    StructuralError,
)
from tabularload.ingestion.reader import CSVSource
from tabularload.schema.table import TableDefinition
from tabularload.schema.types import StorageType
from tabularload.store.base import Row, Store
from tabularload.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class ImportStats:
    """
    Counters and issues of one resource import.

    Attributes:
        resource: Resource name.
        rows_attempted: Data rows read from the source, malformed ones included.
        rows_inserted: Rows written to the store.
        skipped: Rows that were not written, with the reason.
        warnings: Cells stored as null because they failed to parse.
    """

    resource: str
    rows_attempted: int = 0
    rows_inserted: int = 0
    skipped: list[LoadWarning] = field(default_factory=list)
    warnings: list[RowCoercionWarning] = field(default_factory=list)

    @property
    def rows_skipped(self) -> int:
        """Number of rows that were not written."""
        return len(self.skipped)


class RowImporter:
    """
    Imports resource files into materialized tables.

    One importer may serve several resources; it keeps no per-resource
    state between calls.
    """

    def __init__(
        self,
        store: Store,
        *,
        batch_size: int = 500,
        encoding: str = "utf-8",
    ) -> None:
        """
        Initialize row importer.

        Args:
            store: Destination store; the table must already exist.
            batch_size: Rows per insert_batch call.
            encoding: Encoding used when a resource declares none.
        """
        if batch_size < 1:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self.store = store
        self.batch_size = batch_size
        self.encoding = encoding

    def import_rows(
        self,
        source: Path,
        resource: ResourceSpec,
        definition: TableDefinition,
        *,
        deadline: float | None = None,
        stats: ImportStats | None = None,
    ) -> ImportStats:
        """
        Load every row of a source file.

        Args:
            source: Local data file.
            resource: Resource spec (dialect, missing values, field order).
            definition: Table definition built from the resource.
            deadline: time.monotonic() value after which the import is
                abandoned between batches.
            stats: Stats object to fill; passed in by callers that need the
                partial counts when the import raises.

        Returns:
            ImportStats of the run.

        Raises:
            StructuralError: If the file cannot be read or parsed, or its
                header width differs from the field count.
            ResourceTimeoutError: If the deadline passes.
            StoreUnavailableError: If the store cannot be reached.
        """
        stats = stats if stats is not None else ImportStats(resource=resource.name)
        columns = definition.data_columns
        expected = len(columns)
        encoding = resource.encoding or self.encoding

        log.info(
            "Importing rows",
            resource=resource.name,
            table=definition.name,
            source=str(source),
        )

        with CSVSource(source, resource.dialect, encoding) as reader:
            if reader.header is not None:
                self._check_header(reader.header, resource, source)

            batch: list[tuple[int, Row]] = []
            for row_number, cells in reader:
                stats.rows_attempted += 1
                if len(cells) != expected:
                    stats.skipped.append(
                        MalformedRowWarning(
                            f"expected {expected} cells, found {len(cells)}",
                            resource=resource.name,
                            row=row_number,
                        )
                    )
                    continue

                row = self._coerce_row(cells, resource, definition, row_number, stats)
                batch.append((row_number, row))
                if len(batch) >= self.batch_size:
                    self._flush(definition.name, batch, stats)
                    batch = []
                    self._check_deadline(deadline, resource, stats)

            if batch:
                self._flush(definition.name, batch, stats)
                self._check_deadline(deadline, resource, stats)

        log.info(
            "Rows imported",
            resource=resource.name,
            attempted=stats.rows_attempted,
            inserted=stats.rows_inserted,
            skipped=stats.rows_skipped,
            coercion_warnings=len(stats.warnings),
        )
        return stats

    @staticmethod
    def _check_header(header: list[str], resource: ResourceSpec, source: Path) -> None:
        """Header is matched by position; only its width must agree."""
        fields = resource.schema_.field_names
        if len(header) != len(fields):
            msg = (
                f"Header of {source} has {len(header)} columns but resource "
                f"'{resource.name}' declares {len(fields)} fields"
            )
            raise StructuralError(msg)

        renamed = [
            (h, f) for h, f in zip(header, fields, strict=True) if h.strip() != f
        ]
        if renamed:
            log.debug(
                "Header names differ from field names, matching by position",
                resource=resource.name,
                differences=renamed,
            )

    @staticmethod
    def _coerce_row(
        cells: list[str],
        resource: ResourceSpec,
        definition: TableDefinition,
        row_number: int,
        stats: ImportStats,
    ) -> Row:
        """Coerce one record; failed cells become None and are recorded."""
        missing_values = resource.schema_.missing_values
        row: Row = {}
        for column, raw in zip(definition.data_columns, cells, strict=True):
            if column.storage_type is not StorageType.TEXT and raw in missing_values:
                row[column.name] = None
                continue
            try:
                row[column.name] = column.coerce(raw) if column.coerce else raw
            except ValueError as e:
                row[column.name] = None
                stats.warnings.append(
                    RowCoercionWarning(
                        str(e),
                        resource=resource.name,
                        row=row_number,
                        field=column.source_field,
                        value=raw,
                    )
                )
        return row

    def _flush(
        self, table: str, batch: list[tuple[int, Row]], stats: ImportStats
    ) -> None:
        """Insert a batch; on rejection retry its rows one at a time, once."""
        try:
            stats.rows_inserted += self.store.insert_batch(
                table, [row for _, row in batch]
            )
            return
        except StoreWriteError as e:
            log.warning(
                "Batch insert failed, retrying rows individually",
                table=table,
                rows=len(batch),
                error=str(e),
            )

        for row_number, row in batch:
            try:
                stats.rows_inserted += self.store.insert_batch(table, [row])
            except StoreWriteError as e:
                stats.skipped.append(
                    RowInsertWarning(str(e), resource=stats.resource, row=row_number)
                )

    @staticmethod
    def _check_deadline(
        deadline: float | None, resource: ResourceSpec, stats: ImportStats
    ) -> None:
        if deadline is not None and time.monotonic() > deadline:
            msg = (
                f"Import of '{resource.name}' exceeded its timeout after "
                f"{stats.rows_attempted} rows"
            )
            raise ResourceTimeoutError(msg)


def import_rows(
    source: Path,
    resource: ResourceSpec,
    definition: TableDefinition,
    store: Store,
    *,
    batch_size: int = 500,
    encoding: str = "utf-8",
    deadline: float | None = None,
) -> ImportStats:
    """
    Convenience function to import one resource file.

    Args:
        source: Local data file.
        resource: Resource spec.
        definition: Materialized table definition.
        store: Destination store.
        batch_size: Rows per insert.
        encoding: Fallback encoding.
        deadline: Optional time.monotonic() deadline.

    Returns:
        ImportStats of the run.
    """
    importer = RowImporter(store, batch_size=batch_size, encoding=encoding)
    return importer.import_rows(source, resource, definition, deadline=deadline)
