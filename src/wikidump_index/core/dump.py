"""Wiki dump folder - main public API.

Orchestrates scanning, the substream range index, block views and the
article index slices of one dump.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import BinaryIO

from ..components.concat import ConcatenatedStream, open_slices
from ..components.range_index import RangeIndex, write_range_index
from ..components.scanner import scan_ranges
from ..components.slices import IndexSliceStore
from .config import IndexConfig
from .errors import ArgumentRangeError
from .types import BlockId, ByteRange, DumpId, Offset

logger = logging.getLogger(__name__)


class WikiDump:
    """Files of one dump of one wiki, kept together in one folder.

    Args:
        folder: Directory holding the dump files (created if missing)
        dump_id: Identity of the dump
        config: Index configuration (defaults are used if omitted)

    Public API:
        - build_stream_index(): scan the dump and persist its range index
        - stream_index(): the loaded range index
        - open_block(block) / open_blocks(first, last) / open_at(offset)
        - slice_store(): the article index slices of this dump

    Invariants:
        - The stream index file only appears once a scan has completed;
          partial scans only ever touch the intermediate file
        - Views returned by the open_* methods own the file handle they
          opened and close it when closed or exhausted
    """

    def __init__(self, folder: str | Path, dump_id: DumpId, config: IndexConfig | None = None):
        self.config = config if config is not None else IndexConfig(repo_dir=str(folder))
        self.id = dump_id
        self.folder = Path(folder).absolute()
        self.folder.mkdir(parents=True, exist_ok=True)

        self.main_dump_file = self.folder / f"{dump_id}-pages-articles-multistream.xml.bz2"
        self.main_index_file = self.folder / f"{dump_id}-pages-articles-multistream-index.txt"
        self.stream_index_file = self.folder / f"{dump_id}-stream-index.csv"
        self.stream_index_intermediate_file = self.folder / f"{dump_id}-stream-index.tmp.csv"

        self._stream_index: RangeIndex | None = None

    @classmethod
    def in_repo(cls, config: IndexConfig, dump_id: DumpId) -> WikiDump:
        """Return the dump stored at ``{repo}/{wikitag}/{dumptag}``."""
        folder = Path(config.repo_dir) / dump_id.wiki_tag / dump_id.dump_tag
        return cls(folder, dump_id, config)

    @property
    def has_main_file(self) -> bool:
        return self.main_dump_file.exists()

    @property
    def has_stream_index(self) -> bool:
        return self.stream_index_file.exists()

    @property
    def has_intermediate_stream_index(self) -> bool:
        return self.stream_index_intermediate_file.exists()

    def build_stream_index(self) -> int:
        """Scan the main dump file and write its stream index.

        Returns the number of substreams found.
        """
        if not self.has_main_file:
            raise FileNotFoundError(f"Dump file not found: {self.main_dump_file}")

        logger.info(f"Scanning {self.main_dump_file}")
        with open(self.main_dump_file, "rb") as f:
            count = write_range_index(
                self.stream_index_intermediate_file,
                scan_ranges(f, self.config.scan_buffer_size),
                temp_suffix=self.config.temp_suffix,
            )
        os.replace(self.stream_index_intermediate_file, self.stream_index_file)
        self._stream_index = None
        logger.info(f"Wrote stream index {self.stream_index_file} ({count} substreams)")
        return count

    def stream_index(self) -> RangeIndex:
        """Return the range index of the dump, loading it on first use."""
        if self._stream_index is None:
            self._stream_index = RangeIndex(self.stream_index_file, self.main_dump_file)
        return self._stream_index

    def reload_stream_index(self) -> RangeIndex:
        """Re-read the stream index file (after it was rebuilt elsewhere)."""
        if self._stream_index is None:
            return self.stream_index()
        self._stream_index.reload()
        return self._stream_index

    def open_block(self, block: BlockId) -> ConcatenatedStream:
        """Open a stream over one substream of the dump."""
        return self.open_blocks(block, block)

    def open_blocks(self, first: BlockId, last: BlockId) -> ConcatenatedStream:
        """Open one stream over the substreams first..last (inclusive)."""
        index = self.stream_index()
        if not 0 <= first <= last < len(index):
            raise ArgumentRangeError(
                f"Invalid block span {first}-{last} (index has {len(index)} blocks)"
            )
        return self._open_ranges(index.ranges[first:last + 1])

    def open_at(self, offset: Offset, inclusive: bool = False) -> ConcatenatedStream | None:
        """Open the substream starting exactly at offset, or return None."""
        byte_range = self.stream_index().find_range(offset, exact=True, inclusive=inclusive)
        if byte_range is None:
            return None
        return self._open_ranges([byte_range])

    def slice_store(self) -> IndexSliceStore:
        return IndexSliceStore(self.folder, self.id, config=self.config)

    def _open_ranges(self, ranges: Iterable[ByteRange]) -> ConcatenatedStream:
        host = open(self.main_dump_file, "rb")
        return ConcatenatedStream(_owned_slices(host, ranges))


def _owned_slices(host: BinaryIO, ranges: Iterable[ByteRange]) -> Iterator[BinaryIO]:
    with host:
        yield from open_slices(host, ranges)
