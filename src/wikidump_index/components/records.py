"""Article index records and their CSV storage.

Uses sortedcontainers.SortedDict to keep records ordered by page id.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from sortedcontainers import SortedDict

from ..core.errors import DataFormatError
from ..core.types import ArticleRecord

if TYPE_CHECKING:
    from ..interfaces.rows import RowStore
    from .slices import IndexSlice

logger = logging.getLogger(__name__)

COLUMNS = ("pageId", "streamId", "title", "bytecount", "revision", "timestamp")
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(ts: datetime) -> str:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    return datetime.strptime(text, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class CsvRowStore:
    """Reads and writes ArticleRecords as CSV with a header row.

    Column order on read is taken from the header, so files with
    reordered columns load correctly.
    """

    def read_rows(self, path: str | Path) -> Iterator[ArticleRecord]:
        path = Path(path)
        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            missing = set(COLUMNS) - set(reader.fieldnames or ())
            if missing:
                raise DataFormatError(f"{path}: missing columns {sorted(missing)}")
            for row in reader:
                try:
                    yield ArticleRecord(
                        page_id=int(row["pageId"]),
                        stream_id=int(row["streamId"]),
                        title=row["title"],
                        byte_count=int(row["bytecount"]),
                        revision_id=int(row["revision"]),
                        timestamp=parse_timestamp(row["timestamp"]),
                    )
                except (TypeError, ValueError) as e:
                    raise DataFormatError(f"{path}:{reader.line_num}: bad row: {e}") from e

    def write_rows(self, path: str | Path, rows: Iterable[ArticleRecord]) -> int:
        count = 0
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(COLUMNS)
            for record in rows:
                writer.writerow(
                    (
                        record.page_id,
                        record.stream_id,
                        record.title,
                        record.byte_count,
                        record.revision_id,
                        format_timestamp(record.timestamp),
                    )
                )
                count += 1
        return count


class ArticleIndex:
    """Table of article records keyed by page id.

    Args:
        rows: Row storage used by import and save (CSV by default)

    Invariants:
        - At most one record per page id; later puts replace earlier ones
        - Records are kept in page id order
    """

    def __init__(self, rows: RowStore | None = None):
        self._rows_by_id: SortedDict = SortedDict()
        self._row_store = rows if rows is not None else CsvRowStore()

    @classmethod
    def from_slice(cls, index_slice: IndexSlice, rows: RowStore | None = None) -> ArticleIndex:
        """Create an ArticleIndex loaded with one slice."""
        index = cls(rows)
        index.import_slice(index_slice)
        return index

    def put(self, record: ArticleRecord) -> None:
        """Insert or replace a record."""
        self._rows_by_id[record.page_id] = record

    def find_by_id(self, page_id: int) -> ArticleRecord | None:
        return self._rows_by_id.get(page_id)

    def find_matching_titles(self, title: str, exact: bool) -> Iterator[ArticleRecord]:
        """Yield records whose title matches, ignoring case.

        If exact is True the whole title must match, otherwise the text
        may appear anywhere in the title.
        """
        needle = title.casefold()
        for record in self._rows_by_id.values():
            candidate = record.title.casefold()
            if (candidate == needle) if exact else (needle in candidate):
                yield record

    @property
    def rows(self) -> tuple[ArticleRecord, ...]:
        """Snapshot of all records in page id order."""
        return tuple(self._rows_by_id.values())

    def __len__(self) -> int:
        return len(self._rows_by_id)

    def __contains__(self, page_id: int) -> bool:
        return page_id in self._rows_by_id

    def import_file(self, path: str | Path) -> int:
        """Merge the records of a (full or partial) index file into this index."""
        count = 0
        for record in self._row_store.read_rows(path):
            self.put(record)
            count += 1
        logger.debug(f"Imported {count} records from {path}")
        return count

    def import_slice(self, index_slice: IndexSlice) -> int:
        return self.import_file(index_slice.path)

    def save(self, path: str | Path) -> int:
        """Write all records to a file, returning the number written."""
        return self._row_store.write_rows(path, self._rows_by_id.values())
