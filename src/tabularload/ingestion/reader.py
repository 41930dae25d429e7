"""
Streaming CSV source reader.

Reads one record at a time so files of any size load with constant
memory. Records keep their raw cell lists: field-count checks and
coercion happen in the importer.
"""

import codecs
import csv
from collections.abc import Iterator
from pathlib import Path
from types import TracebackType
from typing import TextIO

from tabularload.descriptor.models import Dialect
from tabularload.errors import StructuralError
from tabularload.utils.logging import get_logger

log = get_logger(__name__)


def _normalize_encoding(encoding: str) -> str:
    """Read UTF-8 files through utf-8-sig so a byte order mark is dropped."""
    try:
        name = codecs.lookup(encoding).name
    except LookupError as e:
        msg = f"Unknown source encoding: {encoding!r}"
        raise StructuralError(msg) from e
    return "utf-8-sig" if name == "utf-8" else encoding


class CSVSource:
    """
    Context manager over one delimited data file.

    Usage:
        with CSVSource(path, dialect) as source:
            header = source.header
            for row_number, cells in source:
                ...

    Row numbers are 1-based and count data rows only. Blank lines are
    skipped and not numbered.
    """

    def __init__(
        self, path: Path, dialect: Dialect | None = None, encoding: str = "utf-8"
    ) -> None:
        self.path = path
        self.dialect = dialect or Dialect()
        self.encoding = _normalize_encoding(encoding)
        self.header: list[str] | None = None
        self._file: TextIO | None = None
        self._reader: Iterator[list[str]] | None = None

    def __enter__(self) -> "CSVSource":
        try:
            self._file = self.path.open(encoding=self.encoding, newline="")
        except OSError as e:
            msg = f"Cannot open source file {self.path}: {e}"
            raise StructuralError(msg) from e

        self._reader = csv.reader(
            self._file,
            delimiter=self.dialect.delimiter,
            quotechar=self.dialect.quote_char,
            doublequote=self.dialect.double_quote,
            skipinitialspace=self.dialect.skip_initial_space,
            strict=True,
        )

        if self.dialect.header:
            try:
                self.header = self._next_record()
            except BaseException:
                self.close()
                raise
            if self.header is None:
                self.close()
                msg = f"Source file {self.path} is empty, expected a header row"
                raise StructuralError(msg)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __iter__(self) -> Iterator[tuple[int, list[str]]]:
        row_number = 0
        while (cells := self._next_record()) is not None:
            row_number += 1
            yield row_number, cells

    def close(self) -> None:
        """Close the underlying file."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def _next_record(self) -> list[str] | None:
        """Next non-blank record, or None at end of file."""
        if self._reader is None:
            msg = "CSVSource must be used as a context manager"
            raise RuntimeError(msg)
        try:
            for cells in self._reader:
                if cells:
                    return cells
        except (csv.Error, UnicodeDecodeError) as e:
            line = getattr(self._reader, "line_num", "?")
            msg = f"Cannot parse {self.path} near line {line}: {e}"
            raise StructuralError(msg) from e
        return None
