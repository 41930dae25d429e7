"""
Declared type to storage type mapping.

Every declared field type maps to a storage type and a coercion
function. Coercion functions take the raw cell text and either return
the parsed value or raise ValueError; the importer turns a ValueError
into a null plus a recorded warning.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

import pandas as pd

from tabularload.descriptor.models import FieldSpec

Coercer = Callable[[str], Any]


class DeclaredType(str, Enum):
    """Field types the loader understands. Anything else is UNKNOWN."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> "DeclaredType":
        """Map a declared type string, case-insensitively, to a member."""
        key = (raw or "string").strip().lower()
        if key == "float":
            return cls.NUMBER
        try:
            member = cls(key)
        except ValueError:
            return cls.UNKNOWN
        return member


class StorageType(str, Enum):
    """Column types created in the destination store."""

    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"


@dataclass(frozen=True)
class TypeMapping:
    """Result of mapping one declared field type."""

    declared: DeclaredType
    storage_type: StorageType
    coerce: Coercer
    raw_type: str

    @property
    def is_fallback(self) -> bool:
        """True if the declared type was not recognized."""
        return self.declared is DeclaredType.UNKNOWN


_INTEGER = re.compile(r"[+-]?[0-9]+")
_NUMBER = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

# Range of a signed 64-bit integer column
INTEGER_MIN = -(2**63)
INTEGER_MAX = 2**63 - 1

DEFAULT_TRUE_VALUES = frozenset({"true", "yes", "1"})
DEFAULT_FALSE_VALUES = frozenset({"false", "no", "0"})


def _coerce_text(raw: str) -> str:
    return raw


def _coerce_integer(raw: str) -> int:
    value = raw.strip()
    if not _INTEGER.fullmatch(value):
        msg = f"not an integer: {raw!r}"
        raise ValueError(msg)
    result = int(value, 10)
    if not INTEGER_MIN <= result <= INTEGER_MAX:
        msg = f"integer out of 64-bit range: {raw!r}"
        raise ValueError(msg)
    return result


def _number_coercer(decimal_char: str, group_char: str | None) -> Coercer:
    def coerce(raw: str) -> float:
        value = raw.strip()
        if group_char:
            value = value.replace(group_char, "")
        if decimal_char != ".":
            value = value.replace(decimal_char, ".")
        if not _NUMBER.fullmatch(value):
            msg = f"not a number: {raw!r}"
            raise ValueError(msg)
        return float(value)

    return coerce


def _boolean_coercer(
    true_values: tuple[str, ...] | None, false_values: tuple[str, ...] | None
) -> Coercer:
    truthy = (
        frozenset(v.lower() for v in true_values)
        if true_values
        else DEFAULT_TRUE_VALUES
    )
    falsy = (
        frozenset(v.lower() for v in false_values)
        if false_values
        else DEFAULT_FALSE_VALUES
    )

    def coerce(raw: str) -> bool:
        value = raw.strip().lower()
        if value in truthy:
            return True
        if value in falsy:
            return False
        msg = f"not a boolean: {raw!r}"
        raise ValueError(msg)

    return coerce


def _strptime_pattern(declared_format: str) -> str:
    """Strip the optional ``fmt:`` prefix of a date pattern."""
    if declared_format.startswith("fmt:"):
        return declared_format[4:]
    return declared_format


def _lenient_timestamp(raw: str) -> pd.Timestamp:
    try:
        ts = pd.Timestamp(raw.strip())
    except (ValueError, TypeError) as e:
        msg = f"unparseable timestamp: {raw!r}"
        raise ValueError(msg) from e
    if pd.isna(ts):
        msg = f"unparseable timestamp: {raw!r}"
        raise ValueError(msg)
    return ts


def _date_coercer(declared_format: str | None) -> Coercer:
    if declared_format is None:
        return lambda raw: date.fromisoformat(raw.strip())
    if declared_format == "any":
        return lambda raw: _lenient_timestamp(raw).date()
    pattern = _strptime_pattern(declared_format)
    return lambda raw: datetime.strptime(raw.strip(), pattern).date()


def _datetime_coercer(declared_format: str | None) -> Coercer:
    if declared_format is None:
        return lambda raw: datetime.fromisoformat(raw.strip())
    if declared_format == "any":
        return lambda raw: _lenient_timestamp(raw).to_pydatetime()
    pattern = _strptime_pattern(declared_format)
    return lambda raw: datetime.strptime(raw.strip(), pattern)


def map_type(
    declared_type: str | None,
    declared_format: str | None = None,
    field: FieldSpec | None = None,
) -> TypeMapping:
    """
    Map a declared type and format to a storage type and coercer.

    Args:
        declared_type: Type string from the descriptor (e.g. "integer").
        declared_format: Format string, e.g. "%d.%m.%Y" for dates.
        field: Full field spec, consulted for number and boolean options.

    Returns:
        TypeMapping. Unrecognized types map to text with a verbatim coercer.
    """
    declared = DeclaredType.parse(declared_type)
    raw_type = declared_type or DeclaredType.STRING.value

    if declared is DeclaredType.INTEGER:
        return TypeMapping(declared, StorageType.INTEGER, _coerce_integer, raw_type)

    if declared is DeclaredType.NUMBER:
        coerce = _number_coercer(
            field.decimal_char if field else ".",
            field.group_char if field else None,
        )
        return TypeMapping(declared, StorageType.FLOAT, coerce, raw_type)

    if declared is DeclaredType.BOOLEAN:
        coerce = _boolean_coercer(
            field.true_values if field else None,
            field.false_values if field else None,
        )
        return TypeMapping(declared, StorageType.BOOLEAN, coerce, raw_type)

    if declared is DeclaredType.DATE:
        return TypeMapping(
            declared, StorageType.DATE, _date_coercer(declared_format), raw_type
        )

    if declared is DeclaredType.DATETIME:
        return TypeMapping(
            declared, StorageType.DATETIME, _datetime_coercer(declared_format), raw_type
        )

    # STRING and UNKNOWN both store the raw text
    return TypeMapping(declared, StorageType.TEXT, _coerce_text, raw_type)


def map_field(field: FieldSpec) -> TypeMapping:
    """Map a field spec using its declared type and format."""
    return map_type(field.type, field.declared_format, field)
