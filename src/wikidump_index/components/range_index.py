"""Substream range index.

Loads the offset/length table of the substreams in a dump file and
answers point and containment queries with binary search.

Index file format: one ``offset,length[,...]`` line per substream.
Lines that do not start with two decimal fields (a header, for example)
are ignored.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO

from ..core.errors import ArgumentRangeError, DataFormatError
from ..core.types import BlockId, ByteRange, Offset
from .concat import ConcatenatedStream
from .substream import BoundedSubstream

logger = logging.getLogger(__name__)

INDEX_HEADER = "offset,length"


class RangeIndex:
    """In-memory index of the substreams of a target file.

    Args:
        index_path: Path to the range index file
        target_path: Path to the file the index describes (informational)

    Invariants:
        - Ranges are sorted by offset, one range per offset
        - The index is never empty after a successful load
        - reload() is the only mutation; queries return immutable values
    """

    def __init__(self, index_path: str | Path, target_path: str | Path | None = None):
        self.index_path = Path(index_path).absolute()
        self.target_path = Path(target_path).absolute() if target_path is not None else None
        self._ranges: tuple[ByteRange, ...] = ()
        self.reload()

    def reload(self) -> None:
        """Re-read the index file, replacing the current content entirely."""
        by_offset: dict[Offset, ByteRange] = {}
        skipped = 0
        with open(self.index_path, encoding="utf-8") as f:
            for line in f:
                byte_range = parse_index_line(line)
                if byte_range is None:
                    skipped += 1
                    continue
                by_offset[byte_range.offset] = byte_range

        if not by_offset:
            raise DataFormatError(f"No index entries found in {self.index_path}")

        self._ranges = tuple(sorted(by_offset.values(), key=lambda r: r.offset))
        logger.info(
            f"Loaded {len(self._ranges)} ranges from {self.index_path} ({skipped} lines skipped)"
        )

    @property
    def ranges(self) -> tuple[ByteRange, ...]:
        """Snapshot of all ranges in offset order."""
        return self._ranges

    @property
    def first_offset(self) -> Offset:
        return self._ranges[0].offset

    @property
    def last_offset(self) -> Offset:
        return self._ranges[-1].offset

    @property
    def target_length(self) -> int:
        """Tail of the final range; the expected length of the target file."""
        return self._ranges[-1].tail

    def __len__(self) -> int:
        return len(self._ranges)

    def __getitem__(self, block: BlockId) -> ByteRange:
        return self._ranges[block]

    def find_range_index(self, position: Offset, exact: bool, inclusive: bool) -> int | None:
        """Return the block number for a position, or None.

        Args:
            position: File offset to resolve
            exact: If True, position must equal a range offset. If False,
                the range with the greatest offset <= position is returned,
                unless position is at or beyond the end of the last range.
            inclusive: If False, the first and last ranges are never returned
        """
        if position < self.first_offset:
            return None
        if not exact and position >= self.target_length:
            return None  # beyond the end of the file

        # Binary search for the greatest offset <= position
        left, right = 0, len(self._ranges) - 1
        result = 0
        while left <= right:
            mid = (left + right) // 2
            if self._ranges[mid].offset <= position:
                result = mid
                left = mid + 1
            else:
                right = mid - 1

        if exact and self._ranges[result].offset != position:
            return None
        if not inclusive and (result == 0 or result == len(self._ranges) - 1):
            return None
        return result

    def find_range(self, position: Offset, exact: bool, inclusive: bool) -> ByteRange | None:
        """Return the range resolved by find_range_index(), or None."""
        block = self.find_range_index(position, exact, inclusive)
        return None if block is None else self._ranges[block]

    def open(
        self, host: BinaryIO, position: Offset, exact: bool = True, inclusive: bool = False
    ) -> BoundedSubstream | None:
        """Open a view on the host over the range at the given position.

        Returns None if the position does not resolve to a range.
        """
        byte_range = self.find_range(position, exact, inclusive)
        if byte_range is None:
            return None
        return BoundedSubstream.from_host_slice(host, byte_range)

    def open_block(self, host: BinaryIO, block: BlockId) -> BoundedSubstream:
        """Open a view on the host over one block."""
        self._check_block(block)
        return BoundedSubstream.from_host_slice(host, self._ranges[block])

    def open_blocks(self, host: BinaryIO, first: BlockId, last: BlockId) -> ConcatenatedStream:
        """Open one stream over the blocks first..last (inclusive) of the host."""
        self._check_block(first)
        self._check_block(last)
        if first > last:
            raise ArgumentRangeError(f"Expecting first <= last, got {first} > {last}")
        return ConcatenatedStream.from_slices(host, self._ranges[first:last + 1])

    def _check_block(self, block: BlockId) -> None:
        if not 0 <= block < len(self._ranges):
            raise ArgumentRangeError(
                f"Block {block} out of range (index has {len(self._ranges)} blocks)"
            )


def parse_index_line(line: str) -> ByteRange | None:
    """Parse ``offset,length[,...]``, returning None for any other shape."""
    parts = line.split(",", 2)
    if len(parts) < 2:
        return None
    offset_text = parts[0].strip()
    length_text = parts[1].strip()
    if not (offset_text.isdecimal() and length_text.isdecimal()):
        return None
    return ByteRange(int(offset_text), int(length_text))


def write_range_index(
    path: str | Path, ranges: Iterable[ByteRange], temp_suffix: str = ".tmp"
) -> int:
    """Write ranges to an index file atomically.

    Returns the number of ranges written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + temp_suffix)
    count = 0
    try:
        with open(temp_path, "w", encoding="utf-8", newline="\n") as f:
            f.write(INDEX_HEADER + "\n")
            for byte_range in ranges:
                f.write(f"{byte_range.offset},{byte_range.length}\n")
                count += 1
            f.flush()
            os.fsync(f.fileno())
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    # Atomic rename
    os.replace(temp_path, path)
    logger.debug(f"Wrote {count} ranges to {path}")
    return count
