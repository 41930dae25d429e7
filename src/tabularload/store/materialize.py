"""
Schema materialization.

Ensures a destination table matching a TableDefinition exists. Existing
tables are compared, never altered: a mismatch is reported and the
resource is left alone so a rerun against a changed descriptor cannot
silently lose data.
"""

from dataclasses import dataclass
from enum import Enum

from tabularload.errors import IncompatibleTableError
from tabularload.schema.table import TableDefinition
from tabularload.schema.types import StorageType
from tabularload.store.base import Store
from tabularload.utils.logging import get_logger

log = get_logger(__name__)


class TableStatus(str, Enum):
    """Outcome of materializing one table."""

    CREATED = "created"
    COMPATIBLE = "already-existed-compatible"
    INCOMPATIBLE = "already-existed-incompatible"


# (declared, existing) pairs accepted in addition to identical types
_WIDENING: frozenset[tuple[StorageType, StorageType]] = frozenset(
    {
        (StorageType.INTEGER, StorageType.FLOAT),
        (StorageType.BOOLEAN, StorageType.INTEGER),
    }
)


def is_compatible(declared: StorageType, existing: StorageType | None) -> bool:
    """Whether values of the declared type can be stored in the existing column."""
    if existing is None:
        return False
    return declared == existing or (declared, existing) in _WIDENING


@dataclass(frozen=True)
class MaterializeOutcome:
    """Materialization status plus the mismatches behind an incompatible one."""

    table: str
    status: TableStatus
    mismatches: tuple[str, ...] = ()

    @property
    def usable(self) -> bool:
        """True if rows may be written to the table."""
        return self.status is not TableStatus.INCOMPATIBLE

    def raise_for_status(self) -> None:
        """
        Raise if the table cannot be used.

        Raises:
            IncompatibleTableError: For an incompatible existing table.
        """
        if not self.usable:
            raise IncompatibleTableError(self.table, list(self.mismatches))


def compare_columns(
    definition: TableDefinition, existing: dict[str, StorageType | None]
) -> list[str]:
    """
    List every way an existing column set fails the definition.

    Extra columns in the existing table are allowed.
    """
    mismatches = []
    for column in definition.columns:
        if column.name not in existing:
            mismatches.append(f"missing column '{column.name}'")
            continue
        found = existing[column.name]
        if not is_compatible(column.storage_type, found):
            found_name = found.value if found is not None else "unsupported type"
            mismatches.append(
                f"column '{column.name}' is {found_name}, "
                f"expected {column.storage_type.value}"
            )
    return mismatches


def materialize(definition: TableDefinition, store: Store) -> MaterializeOutcome:
    """
    Create the table if absent, otherwise check the existing one.

    Args:
        definition: Table to materialize.
        store: Destination store.

    Returns:
        MaterializeOutcome; incompatible tables are reported, not raised.
    """
    if not store.table_exists(definition.name):
        store.create_table(definition)
        log.info("Table created", table=definition.name)
        return MaterializeOutcome(definition.name, TableStatus.CREATED)

    mismatches = compare_columns(definition, store.describe_table(definition.name))
    if mismatches:
        log.warning(
            "Existing table is incompatible",
            table=definition.name,
            mismatches=mismatches,
        )
        return MaterializeOutcome(
            definition.name, TableStatus.INCOMPATIBLE, tuple(mismatches)
        )

    log.info("Reusing existing table", table=definition.name)
    return MaterializeOutcome(definition.name, TableStatus.COMPATIBLE)
