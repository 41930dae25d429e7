"""
Package source collaborators.

A package source turns a package identifier into a descriptor whose
resource files are already available locally. Downloading and caching
remote packages is the job of other PackageSource implementations.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from tabularload.descriptor.loader import DESCRIPTOR_FILENAME, load_descriptor
from tabularload.descriptor.models import PackageDescriptor
from tabularload.errors import DescriptorError


class PackageSource(ABC):
    """Resolves a package identifier to a descriptor with local data files."""

    @abstractmethod
    def fetch(self, identifier: str) -> PackageDescriptor:
        """Return the descriptor of the identified package."""
        ...


class LocalPackageSource(PackageSource):
    """
    Packages stored on the local filesystem.

    Identifiers resolve, in order, to:
    1. ``<root>/<identifier>/datapackage.json``
    2. ``<root>/<identifier>`` when it is a descriptor file
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def fetch(self, identifier: str) -> PackageDescriptor:
        """
        Load the identified package.

        Raises:
            DescriptorError: If no descriptor is found or it fails to parse.
        """
        candidate = self.root / identifier
        if candidate.is_dir() and (candidate / DESCRIPTOR_FILENAME).is_file():
            return load_descriptor(candidate)
        if candidate.is_file():
            return load_descriptor(candidate)

        msg = f"Package '{identifier}' not found under {self.root}"
        raise DescriptorError(msg)
