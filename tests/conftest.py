"""Pytest configuration and shared fixtures."""

import json
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog

from tabularload.descriptor import PackageDescriptor, load_descriptor
from tabularload.store import MemoryStore, SQLStore

FINANCIALS_RESOURCE: dict[str, Any] = {
    "name": "constituents_financials",
    "path": "data/constituents-financials.csv",
    "schema": {
        "fields": [
            {"name": "Symbol", "type": "string"},
            {"name": "Price", "type": "number"},
            {"name": "52 Week Low", "type": "number"},
        ]
    },
}

FINANCIALS_CSV = "Symbol,Price,52 Week Low\nMMM,162.27,123.61\nBAD,notanumber,99.1\n"

CONSTITUENTS_RESOURCE: dict[str, Any] = {
    "name": "constituents",
    "path": "data/constituents.csv",
    "schema": {
        "fields": [
            {"name": "Symbol", "type": "string"},
            {"name": "Name", "type": "string"},
            {"name": "Sector", "type": "string"},
        ]
    },
}

CONSTITUENTS_CSV = (
    "Symbol,Name,Sector\n"
    "MMM,3M Company,Industrials\n"
    "AOS,A.O. Smith Corp,Industrials\n"
    "ABT,Abbott Laboratories,Health Care\n"
)


def write_package(
    root: Path,
    resources: list[dict[str, Any]],
    files: dict[str, str],
    name: str | None = "s-and-p-500-companies",
) -> Path:
    """Write a descriptor and its data files; return the descriptor path."""
    root.mkdir(parents=True, exist_ok=True)
    descriptor: dict[str, Any] = {"resources": resources}
    if name is not None:
        descriptor["name"] = name
    descriptor_path = root / "datapackage.json"
    descriptor_path.write_text(json.dumps(descriptor), encoding="utf-8")
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return descriptor_path


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """Undo logging configuration done by a test (e.g. through the CLI)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a package below tmp_path."""

    def factory(
        resources: list[dict[str, Any]],
        files: dict[str, str],
        name: str | None = "s-and-p-500-companies",
        subdir: str = "package",
    ) -> Path:
        return write_package(tmp_path / subdir, resources, files, name)

    return factory


@pytest.fixture
def financials_path(make_package: Callable[..., Path]) -> Path:
    """Package with the constituents_financials resource only."""
    return make_package(
        [FINANCIALS_RESOURCE],
        {"data/constituents-financials.csv": FINANCIALS_CSV},
    )


@pytest.fixture
def financials_package(financials_path: Path) -> PackageDescriptor:
    """Parsed constituents_financials package."""
    return load_descriptor(financials_path)


@pytest.fixture
def two_resource_package(make_package: Callable[..., Path]) -> PackageDescriptor:
    """Package with constituents and constituents_financials."""
    path = make_package(
        [CONSTITUENTS_RESOURCE, FINANCIALS_RESOURCE],
        {
            "data/constituents.csv": CONSTITUENTS_CSV,
            "data/constituents-financials.csv": FINANCIALS_CSV,
        },
    )
    return load_descriptor(path)


@pytest.fixture
def memory_store() -> MemoryStore:
    """Fresh in-memory store."""
    return MemoryStore()


@pytest.fixture
def sql_store() -> Iterator[SQLStore]:
    """SQL store on an in-memory SQLite database."""
    store = SQLStore.from_url("sqlite://", timeout=5)
    yield store
    store.close()


@pytest.fixture
def financials_inputs() -> tuple[list[dict[str, Any]], dict[str, str]]:
    """Resource list and data files of the financials package."""
    return [FINANCIALS_RESOURCE], {"data/constituents-financials.csv": FINANCIALS_CSV}
