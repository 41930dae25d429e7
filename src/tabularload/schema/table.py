"""
Table definitions derived from resource schemas.

A TableDefinition is the only description of a destination table the
rest of the pipeline sees; consumers use its sanitized names to query
the store after a load.
"""

from dataclasses import dataclass, field

from tabularload.descriptor.models import ResourceSpec
from tabularload.errors import SchemaError
from tabularload.schema.identifiers import sanitize, sanitize_all
from tabularload.schema.types import Coercer, StorageType, map_field
from tabularload.utils.logging import get_logger

log = get_logger(__name__)

# Leading underscore followed by a letter: no sanitized field name can match
IDENTITY_COLUMN = "_row_id"


@dataclass(frozen=True)
class ColumnSpec:
    """
    One destination column.

    Attributes:
        name: Sanitized identifier.
        storage_type: Column type in the store.
        nullable: False only for the identity column.
        source_field: Raw field name, None for the identity column.
        identity: True for the synthetic auto-increment column.
        coerce: Cell parser, None for the identity column.
    """

    name: str
    storage_type: StorageType
    nullable: bool = True
    source_field: str | None = None
    identity: bool = False
    coerce: Coercer | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class TableDefinition:
    """Ordered column model of one destination table."""

    name: str
    columns: tuple[ColumnSpec, ...]
    type_warnings: tuple[str, ...] = ()

    @property
    def identity_column(self) -> ColumnSpec:
        """The synthetic row identity column."""
        return self.columns[0]

    @property
    def data_columns(self) -> tuple[ColumnSpec, ...]:
        """Columns fed from the source file, in field order."""
        return tuple(c for c in self.columns if not c.identity)

    @property
    def column_names(self) -> list[str]:
        """All column names, identity first."""
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnSpec:
        """
        Look up a column by sanitized name.

        Raises:
            KeyError: If the table has no such column.
        """
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(name)


def build_table_definition(
    resource: ResourceSpec, *, table_prefix: str = ""
) -> TableDefinition:
    """
    Build the table definition for a resource.

    Args:
        resource: Resource whose schema drives the columns.
        table_prefix: Optional prefix joined to the resource name before
            sanitization (e.g. a package name).

    Returns:
        TableDefinition with the identity column first.

    Raises:
        SchemaError: If the table name or any field name is empty after
            sanitization, or two field names collide.
    """
    raw_table = f"{table_prefix}_{resource.name}" if table_prefix else resource.name
    table_name = sanitize(raw_table)

    if not resource.fields:
        msg = f"Resource '{resource.name}' declares no fields"
        raise SchemaError(msg)

    column_names = sanitize_all(f.name for f in resource.fields)

    columns = [
        ColumnSpec(
            name=IDENTITY_COLUMN,
            storage_type=StorageType.INTEGER,
            nullable=False,
            identity=True,
        )
    ]
    type_warnings = []
    for name, spec in zip(column_names, resource.fields, strict=True):
        mapping = map_field(spec)
        if mapping.is_fallback:
            warning = (
                f"Field '{spec.name}' has unrecognized type "
                f"'{mapping.raw_type}', stored as text"
            )
            type_warnings.append(warning)
            log.warning(
                "Unrecognized field type, falling back to text",
                resource=resource.name,
                field=spec.name,
                declared_type=mapping.raw_type,
            )
        columns.append(
            ColumnSpec(
                name=name,
                storage_type=mapping.storage_type,
                source_field=spec.name,
                coerce=mapping.coerce,
            )
        )

    definition = TableDefinition(
        name=table_name, columns=tuple(columns), type_warnings=tuple(type_warnings)
    )
    log.debug(
        "Built table definition",
        table=definition.name,
        columns=definition.column_names,
    )
    return definition
