"""wikidump_index - random access into multi-stream bzip2 wiki dumps."""

from .core.config import IndexConfig, load_config
from .core.errors import (
    WikiDumpIndexError,
    ArgumentRangeError,
    DataFormatError,
    UnexpectedEndOfDataError,
    NotSupportedError,
    DisposedError,
    ContiguityError,
)
from .core.types import ArticleRecord, BoundaryMatch, ByteRange, DumpId
from .core.dump import WikiDump
from .components.concat import ConcatenatedStream
from .components.range_index import RangeIndex, write_range_index
from .components.records import ArticleIndex, CsvRowStore
from .components.scanner import BoundaryScanner, scan_ranges
from .components.slices import IndexSlice, IndexSliceStore
from .components.substream import BoundedSubstream

__all__ = [
    "ArticleIndex",
    "ArticleRecord",
    "BoundaryMatch",
    "BoundaryScanner",
    "BoundedSubstream",
    "ByteRange",
    "ConcatenatedStream",
    "CsvRowStore",
    "DumpId",
    "IndexConfig",
    "IndexSlice",
    "IndexSliceStore",
    "RangeIndex",
    "WikiDump",
    "load_config",
    "scan_ranges",
    "write_range_index",
    "WikiDumpIndexError",
    "ArgumentRangeError",
    "DataFormatError",
    "UnexpectedEndOfDataError",
    "NotSupportedError",
    "DisposedError",
    "ContiguityError",
]
