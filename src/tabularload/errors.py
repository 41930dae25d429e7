"""
Error and warning types raised or recorded while loading a package.

Resource-scoped errors stop only the resource they occur in. Row-scoped
warnings are never raised by the importer; they are collected on the
load report instead.
"""

from typing import Any


class TabularLoadError(Exception):
    """Base class for all loader errors."""


class DescriptorError(TabularLoadError):
    """Package descriptor cannot be read or parsed."""


class SchemaError(TabularLoadError):
    """Resource schema cannot be mapped to a table (collision, empty name)."""


class StructuralError(TabularLoadError):
    """Source file is unreadable or its header does not match the schema."""


class IncompatibleTableError(TabularLoadError):
    """Existing destination table does not match the table definition."""

    def __init__(self, table: str, mismatches: list[str]) -> None:
        self.table = table
        self.mismatches = mismatches
        super().__init__(
            f"Table '{table}' exists with an incompatible schema: "
            + "; ".join(mismatches)
        )


class ResourceTimeoutError(TabularLoadError):
    """Resource import exceeded its deadline and was abandoned."""


class StoreWriteError(TabularLoadError):
    """Store rejected an insert (constraint violation, bad value, lock timeout)."""


class StoreUnavailableError(TabularLoadError):
    """Store cannot be reached. Aborts the whole run."""


class LoadWarning(UserWarning):
    """
    Row-scoped issue recorded on the load report.

    Attributes:
        resource: Resource name.
        row: 1-based data row number (header excluded).
        field: Raw field name, if the issue concerns one cell.
        value: Offending raw value, if any.
        message: Human-readable description.
    """

    kind = "warning"

    def __init__(
        self,
        message: str,
        *,
        resource: str,
        row: int,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.resource = resource
        self.row = row
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        """Serialisable representation."""
        return {
            "kind": self.kind,
            "resource": self.resource,
            "row": self.row,
            "field": self.field,
            "value": self.value,
            "message": self.message,
        }


class RowCoercionWarning(LoadWarning):
    """A single value failed to parse; stored as null, row still inserted."""

    kind = "coercion"


class MalformedRowWarning(LoadWarning):
    """Row has the wrong number of cells and was dropped."""

    kind = "malformed_row"


class RowInsertWarning(LoadWarning):
    """Store rejected the row even when inserted on its own."""

    kind = "insert_failed"
