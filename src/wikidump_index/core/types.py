"""Common type definitions for wikidump_index.

Defines fundamental value types used across all components.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .errors import ArgumentRangeError, DataFormatError

# Core primitive types
Offset = int
BlockId = int

WIKI_TAG_PATTERN = re.compile(r"[a-z]+")
DUMP_TAG_PATTERN = re.compile(r"2[0-9]{3}(0[1-9]|1[0-2])(0[1-9]|[12][0-9]|3[01])")


@dataclass(frozen=True)
class ByteRange:
    """A range of bytes defined by an offset and a length.

    Invariants:
        - offset and length are non-negative
        - tail (offset + length) is the exclusive end
    """

    offset: Offset
    length: int

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ArgumentRangeError(f"offset cannot be negative: {self.offset}")
        if self.length < 0:
            raise ArgumentRangeError(f"length cannot be negative: {self.length}")

    @property
    def tail(self) -> Offset:
        """The first position after the range."""
        return self.offset + self.length

    def __contains__(self, position: Offset) -> bool:
        return self.offset <= position < self.tail


@dataclass(frozen=True)
class BoundaryMatch:
    """Snapshot of one substream signature found by the scanner.

    Attributes:
        start: Position of the first signature byte
        level: Decoded compression level (1..9) from the wildcard byte
    """

    start: Offset
    level: int


@dataclass(frozen=True)
class DumpId:
    """Identifies one dump of one wiki, rendered as ``{wiki_tag}-{dump_tag}``."""

    wiki_tag: str
    dump_tag: str

    def __post_init__(self) -> None:
        if not is_valid_wiki_tag(self.wiki_tag):
            raise ArgumentRangeError(f"'{self.wiki_tag}' is not a valid wiki tag")
        if not is_valid_dump_tag(self.dump_tag):
            raise ArgumentRangeError(f"'{self.dump_tag}' is not a valid wiki dump tag")

    def __str__(self) -> str:
        return f"{self.wiki_tag}-{self.dump_tag}"

    @classmethod
    def parse(cls, text: str) -> DumpId:
        """Parse ``enwiki-20230920`` style text."""
        parts = text.split("-")
        if len(parts) != 2 or not is_valid_wiki_tag(parts[0]) or not is_valid_dump_tag(parts[1]):
            raise DataFormatError(f"Expecting '<wikitag>-<yyyyMMdd>', got '{text}'")
        return cls(parts[0], parts[1])

    @classmethod
    def try_from_file(cls, file_path: str | Path) -> DumpId | None:
        """Derive an id from a file name starting with ``{wikitag}-{yyyyMMdd}``.

        Directory parts of the path are ignored. Returns None if the file
        name does not start that way.
        """
        parts = Path(file_path).name.split("-")
        if len(parts) >= 2 and is_valid_wiki_tag(parts[0]) and is_valid_dump_tag(parts[1]):
            return cls(parts[0], parts[1])
        return None


def is_valid_wiki_tag(tag: str) -> bool:
    return WIKI_TAG_PATTERN.fullmatch(tag) is not None


def is_valid_dump_tag(tag: str) -> bool:
    return DUMP_TAG_PATTERN.fullmatch(tag) is not None


@dataclass(frozen=True)
class ArticleRecord:
    """One row of an article index.

    Attributes:
        page_id: Stable page identifier (the record key)
        stream_id: Logical block number of the substream holding the page
        title: Page title
        byte_count: Size of the page content in bytes
        revision_id: Current revision of the page
        timestamp: UTC time of the current revision
    """

    page_id: int
    stream_id: BlockId
    title: str
    byte_count: int
    revision_id: int
    timestamp: datetime
