"""
Load report model.

The report is the single record of what a run did: every resource
outcome, every skipped row and every coerced-to-null value is in here.
Logs only mirror it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import pandas as pd

from tabularload.errors import LoadWarning, RowCoercionWarning
from tabularload.store.materialize import TableStatus


class ResourceStatus(str, Enum):
    """Overall outcome of one resource."""

    LOADED = "loaded"  # every row inserted with every value parsed
    PARTIAL = "partial"  # rows skipped or values stored as null
    FAILED = "failed"  # resource-scoped error, see error/error_kind


@dataclass
class ResourceReport:
    """Outcome of loading one resource."""

    resource: str
    table: str | None = None
    table_status: TableStatus | None = None
    rows_attempted: int = 0
    rows_inserted: int = 0
    skipped: list[LoadWarning] = field(default_factory=list)
    warnings: list[RowCoercionWarning] = field(default_factory=list)
    type_warnings: list[str] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None
    source_digest: str | None = None
    duration_seconds: float = 0.0

    @property
    def status(self) -> ResourceStatus:
        """Derived outcome."""
        if self.error is not None:
            return ResourceStatus.FAILED
        if self.skipped or self.warnings:
            return ResourceStatus.PARTIAL
        return ResourceStatus.LOADED

    @property
    def rows_skipped(self) -> int:
        """Number of rows not written."""
        return len(self.skipped)

    def record_error(self, error: Exception) -> None:
        """Mark the resource failed with the given error."""
        self.error = str(error)
        self.error_kind = type(error).__name__

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable representation."""
        return {
            "resource": self.resource,
            "table": self.table,
            "status": self.status.value,
            "table_status": self.table_status.value if self.table_status else None,
            "rows_attempted": self.rows_attempted,
            "rows_inserted": self.rows_inserted,
            "rows_skipped": self.rows_skipped,
            "skipped": [w.to_dict() for w in self.skipped],
            "warnings": [w.to_dict() for w in self.warnings],
            "type_warnings": list(self.type_warnings),
            "error": self.error,
            "error_kind": self.error_kind,
            "source_digest": self.source_digest,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class LoadReport:
    """Aggregate outcome of one package load."""

    package: str
    descriptor_hash: str
    started_at: datetime
    finished_at: datetime | None = None
    resources: list[ResourceReport] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """True if no resource failed."""
        return all(r.status is not ResourceStatus.FAILED for r in self.resources)

    @property
    def failed(self) -> list[ResourceReport]:
        """Resources that failed."""
        return [r for r in self.resources if r.status is ResourceStatus.FAILED]

    @property
    def rows_inserted(self) -> int:
        """Rows written across all resources."""
        return sum(r.rows_inserted for r in self.resources)

    def resource(self, name: str) -> ResourceReport:
        """
        Report of one resource.

        Raises:
            KeyError: If the resource was not part of the run.
        """
        for report in self.resources:
            if report.resource == name:
                return report
        raise KeyError(name)

    def to_frame(self) -> pd.DataFrame:
        """One summary row per resource, in declaration order."""
        columns = [
            "resource",
            "table",
            "status",
            "table_status",
            "rows_attempted",
            "rows_inserted",
            "rows_skipped",
            "coercion_warnings",
            "error_kind",
            "error",
        ]
        records = [
            {
                "resource": r.resource,
                "table": r.table,
                "status": r.status.value,
                "table_status": r.table_status.value if r.table_status else None,
                "rows_attempted": r.rows_attempted,
                "rows_inserted": r.rows_inserted,
                "rows_skipped": r.rows_skipped,
                "coercion_warnings": len(r.warnings),
                "error_kind": r.error_kind,
                "error": r.error,
            }
            for r in self.resources
        ]
        return pd.DataFrame.from_records(records, columns=columns)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable representation."""
        return {
            "package": self.package,
            "descriptor_hash": self.descriptor_hash,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "succeeded": self.succeeded,
            "resources": [r.to_dict() for r in self.resources],
        }
