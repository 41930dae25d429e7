"""
Post-load verification of loaded tables.

Builds a Pandera schema from a TableDefinition and validates what the
store actually holds against it.
"""

from dataclasses import dataclass

import pandera.pandas as pa
from pandera.errors import SchemaErrors

from tabularload.errors import StoreWriteError
from tabularload.schema.table import TableDefinition
from tabularload.schema.types import StorageType
from tabularload.store.base import Store
from tabularload.utils.logging import get_logger

log = get_logger(__name__)

# Only types that round-trip reliably through every store get a dtype check
PANDERA_DTYPES: dict[StorageType, str | None] = {
    StorageType.TEXT: None,
    StorageType.INTEGER: "Int64",
    StorageType.FLOAT: "float64",
    StorageType.BOOLEAN: "boolean",
    StorageType.DATE: None,
    StorageType.DATETIME: None,
}


@dataclass
class VerificationResult:
    """Result of verifying one loaded table."""

    table: str
    exists: bool
    valid: bool | None
    row_count: int | None
    error_message: str | None


def dataframe_schema(definition: TableDefinition) -> pa.DataFrameSchema:
    """
    Pandera schema equivalent of a table definition.

    The identity column must be present, non-null and unique; data
    columns must be present and coercible to their storage type.
    """
    columns = {}
    for column in definition.columns:
        if column.identity:
            columns[column.name] = pa.Column(
                "Int64", nullable=False, unique=True, coerce=True
            )
        else:
            dtype = PANDERA_DTYPES[column.storage_type]
            columns[column.name] = pa.Column(
                dtype, nullable=True, coerce=dtype is not None
            )
    return pa.DataFrameSchema(columns, name=definition.name, strict=False)


def verify_table(store: Store, definition: TableDefinition) -> VerificationResult:
    """
    Validate a loaded table against its definition.

    Args:
        store: Store holding the table.
        definition: Definition the table was loaded from.

    Returns:
        VerificationResult; valid is None when the table does not exist.
    """
    if not store.table_exists(definition.name):
        return VerificationResult(
            table=definition.name,
            exists=False,
            valid=None,
            row_count=None,
            error_message="Table does not exist",
        )

    try:
        df = store.read_frame(definition.name)
    except StoreWriteError as e:
        return VerificationResult(definition.name, True, False, None, str(e))

    try:
        dataframe_schema(definition).validate(df, lazy=True)
    except SchemaErrors as e:
        failures = e.failure_cases
        log.warning(
            "Table failed verification",
            table=definition.name,
            failures=len(failures),
        )
        checks = sorted({str(c) for c in failures["check"].tolist()})
        message = f"{len(failures)} failure case(s): " + ", ".join(checks[:5])
        return VerificationResult(definition.name, True, False, len(df), message)

    log.info("Table verified", table=definition.name, rows=len(df))
    return VerificationResult(definition.name, True, True, len(df), None)
