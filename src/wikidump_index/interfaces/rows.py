"""Protocol definition for tabular record storage."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Protocol

from ..core.types import ArticleRecord


class RowStore(Protocol):
    """Reads and writes all rows of a record file."""

    def read_rows(self, path: str | Path) -> Iterator[ArticleRecord]:
        """Iterate the records stored in the file."""
        ...

    def write_rows(self, path: str | Path, rows: Iterable[ArticleRecord]) -> int:
        """Write all records to the file, returning the number written."""
        ...
