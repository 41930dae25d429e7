"""
Destination stores and schema materialization.
"""

from tabularload.config.settings import StoreConfig
from tabularload.store.base import Row, Store
from tabularload.store.materialize import (
    MaterializeOutcome,
    TableStatus,
    materialize,
)
from tabularload.store.memory import MemoryStore
from tabularload.store.sql import SQLStore


def default_store() -> Store:
    """Store used when the caller supplies none: a fresh in-memory store."""
    return MemoryStore()


def create_store(config: StoreConfig) -> Store:
    """
    Create the store described by a configuration.

    Args:
        config: Store configuration; without a URL the default store is used.

    Returns:
        SQLStore for a configured URL, otherwise a MemoryStore.
    """
    if config.url:
        return SQLStore.from_url(config.url, timeout=config.timeout, echo=config.echo)
    return default_store()


__all__ = [
    "MaterializeOutcome",
    "MemoryStore",
    "Row",
    "SQLStore",
    "Store",
    "TableStatus",
    "create_store",
    "default_store",
    "materialize",
]
