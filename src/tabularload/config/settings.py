"""
Typed configuration models using Pydantic.

Every setting has a default, so ``LoaderConfig()`` is a valid
configuration that loads into the in-memory store sequentially.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StoreConfig(BaseModel):
    """Destination store configuration."""

    model_config = ConfigDict(frozen=True)

    url: str | None = Field(
        default=None,
        description="SQLAlchemy database URL; None selects the in-memory store",
    )
    timeout: float | None = Field(
        default=30.0,
        gt=0,
        description="Seconds a single store call may block before failing",
    )
    echo: bool = Field(default=False, description="Log emitted SQL statements")


class IngestionConfig(BaseModel):
    """Row import configuration."""

    model_config = ConfigDict(frozen=True)

    batch_size: int = Field(default=500, ge=1, le=100_000)
    encoding: str = Field(
        default="utf-8",
        description="Fallback source encoding when a resource declares none",
    )
    resource_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds after which a resource import is abandoned",
    )
    table_prefix: str = Field(
        default="",
        description="Prefix prepended to every table name before sanitization",
    )

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Ensure the encoding name is known to the codec registry."""
        import codecs

        try:
            codecs.lookup(v)
        except LookupError as e:
            msg = f"Unknown encoding: {v!r}"
            raise ValueError(msg) from e
        return v


class ConcurrencyConfig(BaseModel):
    """Resource-level parallelism."""

    model_config = ConfigDict(frozen=True)

    parallel: bool = Field(
        default=False, description="Import independent resources concurrently"
    )
    max_workers: int = Field(default=4, ge=1, le=64)


class LoggingConfig(BaseModel):
    """Logging output configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and check the level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Invalid log level: {v!r}"
            raise ValueError(msg)
        return level


class LoaderConfig(BaseModel):
    """Complete loader configuration."""

    model_config = ConfigDict(frozen=True)

    store: StoreConfig = Field(default_factory=StoreConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def batch_size(self) -> int:
        """Convenience accessor for the insert batch size."""
        return self.ingestion.batch_size
