"""
Configuration management with typed Pydantic models.

Provides YAML loading with environment interpolation.
"""

from tabularload.config.loader import load_config
from tabularload.config.settings import (
    ConcurrencyConfig,
    IngestionConfig,
    LoaderConfig,
    LoggingConfig,
    StoreConfig,
)

__all__ = [
    "ConcurrencyConfig",
    "IngestionConfig",
    "LoaderConfig",
    "LoggingConfig",
    "StoreConfig",
    "load_config",
]
