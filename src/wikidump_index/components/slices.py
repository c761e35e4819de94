"""Partial article index slices and their merge protocol.

A slice holds the records found in a contiguous range of substreams
(logical blocks) of one dump. Slices are written as scanning progresses
and later merged into larger slices.

Slice file name: ``{dumpid}.i-{start}-{end}.partidx.{ext}``
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..core.config import IndexConfig
from ..core.errors import ArgumentRangeError, ContiguityError, DataFormatError
from ..core.types import ArticleRecord, BlockId, DumpId
from ..interfaces.rows import RowStore
from .records import ArticleIndex, CsvRowStore

logger = logging.getLogger(__name__)

SLICE_MARKER = "i"
SLICE_TAG = "partidx"

Lister = Callable[[Path, str], Iterable[Path]]


@dataclass(frozen=True)
class IndexSlice:
    """Descriptor of one persisted slice of an article index.

    This describes the file, not its content; the file may not exist yet.

    Attributes:
        folder: Directory holding the slice file
        dump_id: The dump the slice belongs to
        start: First block covered
        end: Last block covered (inclusive, may equal start)
        extension: File extension of the slice file
    """

    folder: Path
    dump_id: DumpId
    start: BlockId
    end: BlockId
    extension: str = "csv"

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ArgumentRangeError(f"start cannot be negative: {self.start}")
        if self.start > self.end:
            raise ArgumentRangeError(f"Expecting end >= start, got {self.start}-{self.end}")
        object.__setattr__(self, "folder", Path(self.folder))

    @property
    def file_name(self) -> str:
        return f"{self.dump_id}.{SLICE_MARKER}-{self.start}-{self.end}.{SLICE_TAG}.{self.extension}"

    @property
    def path(self) -> Path:
        return self.folder / self.file_name

    def precedes(self, other: IndexSlice) -> bool:
        """True if other starts right after this slice ends."""
        return self.end + 1 == other.start

    @classmethod
    def parse_file_name(cls, path: str | Path, extension: str = "csv") -> IndexSlice:
        """Parse a slice file path back into an IndexSlice."""
        path = Path(path).absolute()
        name = path.name
        shape = f"<dumpid>.{SLICE_MARKER}-<start>-<end>.{SLICE_TAG}.{extension}"

        parts = name.split(".")
        if len(parts) != 4:
            raise DataFormatError(f"Expecting shape {shape} (incorrect segments): {name}")
        try:
            dump_id = DumpId.parse(parts[0])
        except DataFormatError as e:
            raise DataFormatError(f"Expecting shape {shape} (bad dump id): {name}") from e

        range_parts = parts[1].split("-")
        if len(range_parts) != 3:
            raise DataFormatError(
                f"Expecting shape {shape} (incorrect start-end segment): {name}"
            )
        if range_parts[0] != SLICE_MARKER:
            raise DataFormatError(
                f"Expecting shape {shape} (missing '{SLICE_MARKER}' at start-end segment): {name}"
            )
        if not (range_parts[1].isdecimal() and range_parts[2].isdecimal()):
            raise DataFormatError(f"Expecting shape {shape} (non-numeric bounds): {name}")
        if parts[2] != SLICE_TAG or parts[3] != extension:
            raise DataFormatError(
                f"Expecting shape {shape} (not ending with .{SLICE_TAG}.{extension}): {name}"
            )

        start, end = int(range_parts[1]), int(range_parts[2])
        if start > end:
            raise DataFormatError(f"Expecting shape {shape} (start after end): {name}")
        return cls(path.parent, dump_id, start, end, extension)


def _glob(folder: Path, pattern: str) -> Iterable[Path]:
    return folder.glob(pattern)


class IndexSliceStore:
    """Manages the article index slices of one dump in one folder.

    Args:
        folder: Directory holding the slice files
        dump_id: The dump whose slices are managed
        rows: Row storage for slice content (CSV by default)
        lister: Returns the paths in a folder matching a glob pattern
        config: Supplies the slice extension and temp/backup suffixes

    Invariants:
        - Merges either commit completely or leave the slice files as they were
        - Replaced slice files are renamed to a backup name, never deleted
    """

    def __init__(
        self,
        folder: str | Path,
        dump_id: DumpId,
        rows: RowStore | None = None,
        lister: Lister | None = None,
        config: IndexConfig | None = None,
    ):
        self.folder = Path(folder).absolute()
        self.dump_id = dump_id
        self._rows = rows if rows is not None else CsvRowStore()
        self._lister = lister if lister is not None else _glob
        self.extension = config.slice_extension if config else "csv"
        self.temp_suffix = config.temp_suffix if config else ".tmp"
        self.backup_suffix = config.backup_suffix if config else ".bak"

    @property
    def pattern(self) -> str:
        return f"{self.dump_id}.{SLICE_MARKER}-*-*.{SLICE_TAG}.{self.extension}"

    def slices(self) -> tuple[IndexSlice, ...]:
        """Return the slices currently on disk, sorted by start block."""
        found = []
        for path in self._lister(self.folder, self.pattern):
            try:
                found.append(IndexSlice.parse_file_name(self.folder / Path(path).name, self.extension))
            except DataFormatError as e:
                logger.warning(f"Ignoring file that is not a slice: {e}")
        return tuple(sorted(found, key=lambda s: (s.start, s.end)))

    @property
    def final_slice(self) -> IndexSlice | None:
        found = self.slices()
        return found[-1] if found else None

    @property
    def indexed_stream_count(self) -> int:
        """Number of streams indexed, assuming block 0 is the header stream."""
        final = self.final_slice
        return 0 if final is None else final.end

    def new_slice(self, start: BlockId, end: BlockId) -> IndexSlice:
        return IndexSlice(self.folder, self.dump_id, start, end, self.extension)

    def save_slice(self, start: BlockId, end: BlockId, records: Iterable[ArticleRecord]) -> IndexSlice:
        """Persist records found in blocks start..end as a new slice."""
        index_slice = self.new_slice(start, end)
        self.folder.mkdir(parents=True, exist_ok=True)
        temp_path = self._temp_path(index_slice)
        count = self._rows.write_rows(temp_path, records)
        os.replace(temp_path, index_slice.path)
        logger.info(f"Saved slice {index_slice.file_name} with {count} records")
        return index_slice

    def validate(self, slices: Sequence[IndexSlice]) -> list[IndexSlice]:
        """Check that the slices form one gapless, non-overlapping run.

        Returns the slices sorted by start block.
        """
        ordered = sorted(slices, key=lambda s: s.start)
        for index_slice in ordered:
            if index_slice.dump_id != self.dump_id:
                raise ContiguityError(
                    f"Slice {index_slice.file_name} does not belong to dump {self.dump_id}"
                )
        for left, right in zip(ordered, ordered[1:]):
            if not left.precedes(right):
                raise ContiguityError(
                    f"Slices are not contiguous: {left.start}-{left.end} "
                    f"is followed by {right.start}-{right.end}"
                )
        return ordered

    def combine(self, slices: Sequence[IndexSlice]) -> ArticleIndex:
        """Import every slice, in order, into one ArticleIndex."""
        index = ArticleIndex(self._rows)
        for index_slice in slices:
            index.import_slice(index_slice)
        return index

    def load_all(self) -> ArticleIndex:
        """Return the union of all slices currently on disk."""
        return self.combine(self.slices())

    def merge(self, slices: Sequence[IndexSlice] | None = None) -> IndexSlice:
        """Merge contiguous slices into one slice spanning their combined range.

        With no argument, every slice currently on disk is merged. A
        single slice is returned unchanged. The merged content is written
        to a temporary file, the source files are renamed to backups, and
        only then is the temporary file renamed to the merged slice name.

        Raises:
            ArgumentRangeError: if there is nothing to merge
            ContiguityError: if the slices do not abut; no file is touched
        """
        collected = list(self.slices() if slices is None else slices)
        if not collected:
            raise ArgumentRangeError(f"No slices to merge for {self.dump_id}")
        if len(collected) == 1:
            return collected[0]

        ordered = self.validate(collected)
        target = self.new_slice(ordered[0].start, ordered[-1].end)
        logger.info(f"Merging {len(ordered)} slices into {target.file_name}")

        combined = self.combine(ordered)
        temp_path = self._temp_path(target)
        try:
            count = combined.save(temp_path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

        self._backup_sources(ordered, temp_path)
        try:
            os.replace(temp_path, target.path)
        except OSError:
            logger.error(f"Commit of {target.file_name} failed, restoring {len(ordered)} slice files")
            self._restore_sources(ordered)
            temp_path.unlink(missing_ok=True)
            raise
        logger.info(f"Committed {target.file_name} with {count} records")
        return target

    def _backup_sources(self, ordered: Sequence[IndexSlice], temp_path: Path) -> None:
        """Rename each source to its backup name, undoing all renames on failure."""
        moved: list[IndexSlice] = []
        try:
            for index_slice in ordered:
                os.replace(index_slice.path, self._backup_path(index_slice))
                moved.append(index_slice)
        except OSError:
            logger.error(f"Backup of slice files failed, restoring {len(moved)} renamed files")
            self._restore_sources(moved)
            temp_path.unlink(missing_ok=True)
            raise

    def _restore_sources(self, moved: Sequence[IndexSlice]) -> None:
        for index_slice in reversed(moved):
            os.replace(self._backup_path(index_slice), index_slice.path)

    def _temp_path(self, index_slice: IndexSlice) -> Path:
        return index_slice.path.with_name(index_slice.file_name + self.temp_suffix)

    def _backup_path(self, index_slice: IndexSlice) -> Path:
        return index_slice.path.with_name(index_slice.file_name + self.backup_suffix)
