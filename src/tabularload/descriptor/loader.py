"""
Descriptor parsing.

Reads a ``datapackage.json`` document into a PackageDescriptor. Field
types the loader does not know are accepted here; they are degraded to
text later by the type mapper.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tabularload.descriptor.models import PackageDescriptor
from tabularload.errors import DescriptorError
from tabularload.utils.logging import get_logger

log = get_logger(__name__)

DESCRIPTOR_FILENAME = "datapackage.json"


def _read_json(path: Path) -> Any:
    """Read a JSON document, translating failures into DescriptorError."""
    try:
        with path.open(encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        msg = f"Descriptor file not found: {path}"
        raise DescriptorError(msg) from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        msg = f"Cannot read descriptor {path}: {e}"
        raise DescriptorError(msg) from e


def _inline_external_schemas(
    resources: list[Any], base_path: Path
) -> list[Any]:
    """Replace ``"schema": "<file>"`` references with the referenced document."""
    inlined = []
    for resource in resources:
        if isinstance(resource, dict) and isinstance(resource.get("schema"), str):
            schema_path = base_path / resource["schema"]
            log.debug("Loading external schema", path=str(schema_path))
            resource = {**resource, "schema": _read_json(schema_path)}
        inlined.append(resource)
    return inlined


def parse_descriptor(
    data: dict[str, Any],
    base_path: Path,
    *,
    default_name: str | None = None,
) -> PackageDescriptor:
    """
    Build a PackageDescriptor from a decoded descriptor document.

    Args:
        data: Decoded JSON document.
        base_path: Package root used to resolve resource and schema paths.
        default_name: Package name to use when the document has none.

    Returns:
        Parsed descriptor.

    Raises:
        DescriptorError: If the document does not describe a package.
    """
    if not isinstance(data, dict):
        msg = "Descriptor must be a JSON object"
        raise DescriptorError(msg)

    resources = data.get("resources")
    if not isinstance(resources, list):
        msg = "Descriptor must contain a 'resources' list"
        raise DescriptorError(msg)

    payload = {
        **data,
        "name": data.get("name") or default_name or base_path.resolve().name,
        "resources": _inline_external_schemas(resources, base_path),
        "base_path": base_path,
    }

    try:
        descriptor = PackageDescriptor.model_validate(payload)
    except ValidationError as e:
        msg = f"Invalid package descriptor: {e}"
        raise DescriptorError(msg) from e

    log.info(
        "Parsed package descriptor",
        package=descriptor.name,
        resources=[r.name for r in descriptor.resources],
    )
    return descriptor


def load_descriptor(path: Path) -> PackageDescriptor:
    """
    Load a descriptor from disk.

    Args:
        path: Path to a descriptor file, or a package directory
            containing ``datapackage.json``.

    Returns:
        Parsed descriptor whose base path is the descriptor's directory.
    """
    if path.is_dir():
        path = path / DESCRIPTOR_FILENAME

    return parse_descriptor(
        _read_json(path),
        base_path=path.parent,
        default_name=path.parent.resolve().name,
    )
