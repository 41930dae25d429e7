"""
In-memory model of a tabular data package descriptor.

The models are frozen: a parsed descriptor is a value that the pipeline
reads but never mutates. Keys the loader does not interpret are kept as
extra attributes so nothing in the descriptor is lost.
"""

from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FieldSpec(BaseModel):
    """One declared column of a resource schema."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    type: str = Field(default="string", description="Declared type, verbatim")
    format: str | None = Field(default=None, description="Declared format")

    # Optional parse options for number and boolean fields
    decimal_char: str = Field(default=".", alias="decimalChar", min_length=1)
    group_char: str | None = Field(default=None, alias="groupChar")
    true_values: tuple[str, ...] | None = Field(default=None, alias="trueValues")
    false_values: tuple[str, ...] | None = Field(default=None, alias="falseValues")

    @property
    def declared_format(self) -> str | None:
        """Format with the descriptor's "default" placeholder treated as unset."""
        if self.format in (None, "", "default"):
            return None
        return self.format


class TableSchema(BaseModel):
    """Field list of a resource plus schema-wide parse options."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    fields: tuple[FieldSpec, ...] = Field(default=())
    missing_values: tuple[str, ...] = Field(default=("",), alias="missingValues")

    @property
    def field_names(self) -> list[str]:
        """Raw field names in declaration order."""
        return [f.name for f in self.fields]


class Dialect(BaseModel):
    """CSV dialect of a resource's data file."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    delimiter: str = Field(default=",", min_length=1, max_length=1)
    quote_char: str = Field(default='"', alias="quoteChar", min_length=1, max_length=1)
    double_quote: bool = Field(default=True, alias="doubleQuote")
    skip_initial_space: bool = Field(default=False, alias="skipInitialSpace")
    header: bool = Field(default=True)


class ResourceSpec(BaseModel):
    """One tabular resource: a data file and the schema describing it."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    path: str = Field(min_length=1, description="Data file, relative to package root")
    schema_: TableSchema = Field(default_factory=TableSchema, alias="schema")
    dialect: Dialect = Field(default_factory=Dialect)
    encoding: str | None = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def default_name_from_path(cls, data: object) -> object:
        """Resources without a name are named after their file stem."""
        if isinstance(data, dict) and not data.get("name") and data.get("path"):
            data = {**data, "name": PurePosixPath(str(data["path"])).stem}
        return data

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        """Declared fields in order."""
        return self.schema_.fields

    def resolve_path(self, base_path: Path) -> Path:
        """
        Resolve the data file against the package root.

        Args:
            base_path: Package root directory.

        Returns:
            Local path of the data file.
        """
        return base_path / PurePosixPath(self.path)


class PackageDescriptor(BaseModel):
    """A parsed package: its name, root directory and resources."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    resources: tuple[ResourceSpec, ...] = Field(default=())
    base_path: Path = Field(default=Path("."), exclude=True)

    def resource(self, name: str) -> ResourceSpec:
        """
        Look up a resource by name.

        Raises:
            KeyError: If no resource has that name.
        """
        for resource in self.resources:
            if resource.name == name:
                return resource
        raise KeyError(name)

    def data_path(self, resource: ResourceSpec) -> Path:
        """Local path of a resource's data file."""
        return resource.resolve_path(self.base_path)
