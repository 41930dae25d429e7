"""
Package descriptor model, parsing and local package sources.
"""

from tabularload.descriptor.loader import load_descriptor, parse_descriptor
from tabularload.descriptor.models import (
    Dialect,
    FieldSpec,
    PackageDescriptor,
    ResourceSpec,
    TableSchema,
)
from tabularload.descriptor.source import LocalPackageSource, PackageSource

__all__ = [
    "Dialect",
    "FieldSpec",
    "LocalPackageSource",
    "PackageDescriptor",
    "PackageSource",
    "ResourceSpec",
    "TableSchema",
    "load_descriptor",
    "parse_descriptor",
]
