"""
Deterministic hashing utilities.

Fingerprints descriptors and resource files so a load report can be tied
to the exact inputs it was produced from.
"""

import json
from pathlib import Path
from typing import TYPE_CHECKING

import xxhash

if TYPE_CHECKING:
    from tabularload.descriptor.models import PackageDescriptor


def hash_descriptor(descriptor: "PackageDescriptor") -> str:
    """
    Compute a fingerprint of a parsed descriptor.

    Only the loadable content counts (names, paths, fields), so two
    descriptors that differ in unrelated metadata hash equally.

    Args:
        descriptor: Parsed package descriptor.

    Returns:
        16-character hex digest.
    """
    payload = {
        "name": descriptor.name,
        "resources": [
            {
                "name": resource.name,
                "path": resource.path,
                "fields": [
                    [f.name, f.type, f.format] for f in resource.schema_.fields
                ],
            }
            for resource in descriptor.resources
        ],
    }
    encoded = json.dumps(payload, sort_keys=True).encode("utf-8")
    return xxhash.xxh64(encoded).hexdigest()


def hash_file_content(path: str | Path, chunk_size: int = 65536) -> str:
    """
    Compute hash of file contents.

    Args:
        path: Path to file.
        chunk_size: Chunk size for reading.

    Returns:
        Hex digest string, or "missing" if the file does not exist.
    """
    p = Path(path)
    if not p.exists():
        return "missing"

    hasher = xxhash.xxh64()
    with p.open("rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)

    return hasher.hexdigest()
