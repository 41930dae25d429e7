"""
Schema mapping: identifier sanitization, type mapping and table
definitions.
"""

from tabularload.schema.identifiers import sanitize, sanitize_all
from tabularload.schema.table import (
    IDENTITY_COLUMN,
    ColumnSpec,
    TableDefinition,
    build_table_definition,
)
from tabularload.schema.types import DeclaredType, StorageType, TypeMapping, map_type

__all__ = [
    "IDENTITY_COLUMN",
    "ColumnSpec",
    "DeclaredType",
    "StorageType",
    "TableDefinition",
    "TypeMapping",
    "build_table_definition",
    "map_type",
    "sanitize",
    "sanitize_all",
]
