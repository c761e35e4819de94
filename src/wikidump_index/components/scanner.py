"""Substream boundary scanner for multi-stream bzip2 files.

Recognizes the signature that starts every bzip2 stream:

    42 5A 68 3? 31 41 59 26 53 59    ("BZh" + level digit + block magic)

The fourth byte is a wildcard in the range 0x31..0x39 and encodes the
compression level (1..9).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from enum import IntEnum
from typing import BinaryIO

from ..core.errors import ArgumentRangeError
from ..core.types import BoundaryMatch, ByteRange, Offset

logger = logging.getLogger(__name__)

SIGNATURE_FIRST = 0x42
LEVEL_MIN = 0x31
LEVEL_MAX = 0x39


class ScanState(IntEnum):
    """Number of signature bytes matched so far."""

    IDLE = 0
    FIRST = 1  # 42
    Z = 2  # 42.5A
    H = 3  # 42.5A.68
    LEVEL = 4  # 42.5A.68.3*
    MAGIC_1 = 5  # ...31
    MAGIC_2 = 6  # ...31.41
    MAGIC_3 = 7  # ...31.41.59
    MAGIC_4 = 8  # ...31.41.59.26
    MAGIC_5 = 9  # ...31.41.59.26.53
    MATCHED = 10  # ...31.41.59.26.53.59


# Byte expected in each state to advance to the next one. LEVEL is
# entered through the wildcard check in next_state instead.
_EXPECTED: dict[ScanState, int] = {
    ScanState.FIRST: 0x5A,
    ScanState.Z: 0x68,
    ScanState.LEVEL: 0x31,
    ScanState.MAGIC_1: 0x41,
    ScanState.MAGIC_2: 0x59,
    ScanState.MAGIC_3: 0x26,
    ScanState.MAGIC_4: 0x53,
    ScanState.MAGIC_5: 0x59,
}


def next_state(state: ScanState, value: int) -> ScanState:
    """Transition function of the signature recognizer.

    0x42 occurs only as the first signature byte, so it restarts the
    match from any state, including in the middle of a partial match and
    right after a complete one. Any other byte that does not continue
    the signature drops back to IDLE.
    """
    if value == SIGNATURE_FIRST:
        return ScanState.FIRST
    if state == ScanState.H:
        return ScanState.LEVEL if LEVEL_MIN <= value <= LEVEL_MAX else ScanState.IDLE
    if _EXPECTED.get(state) == value:
        return ScanState(state + 1)
    return ScanState.IDLE


class BoundaryScanner:
    """Finite-state machine locating substream starts in a byte stream.

    Args:
        position: Position of the first byte that will be pushed

    Invariants:
        - substream_start and compression_level are only meaningful
          while valid is True
        - Never looks ahead or backtracks; O(1) extra space
    """

    def __init__(self, position: Offset = 0):
        self.reset(position)

    def reset(self, position: Offset = 0) -> None:
        """Reset to the idle state, optionally offsetting the start position."""
        if position < 0:
            raise ArgumentRangeError(f"position cannot be negative: {position}")
        self._state = ScanState.IDLE
        self.position = position
        self._candidate_start = 0
        self._candidate_level = 0
        self.substream_start = 0
        self.compression_level = 0

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def valid(self) -> bool:
        """True right after the last signature byte was recognized."""
        return self._state == ScanState.MATCHED

    def push_byte(self, value: int) -> bool:
        """Push the next byte and advance the tracked position.

        Returns True if this byte completed the signature; in that case
        substream_start and compression_level describe the match.
        """
        state = next_state(self._state, value)
        if state == ScanState.FIRST:
            self._candidate_start = self.position
        elif state == ScanState.LEVEL:
            self._candidate_level = value - 0x30
        elif state == ScanState.MATCHED:
            self.substream_start = self._candidate_start
            self.compression_level = self._candidate_level
        self._state = state
        self.position += 1
        return state == ScanState.MATCHED

    def match(self) -> BoundaryMatch | None:
        """Return a snapshot of the current match, or None if not valid."""
        if not self.valid:
            return None
        return BoundaryMatch(self.substream_start, self.compression_level)

    def find_starts(self, stream: BinaryIO, buffer_size: int = 1024) -> Iterator[BoundaryScanner]:
        """Enumerate substream starts in the stream.

        The scanner is reset to the current position of the stream. Each
        time a start is found this scanner itself is yielded; it keeps
        changing as scanning continues, so copy what you need (or call
        match()) before advancing the iterator.
        """
        if buffer_size <= 0:
            raise ArgumentRangeError(f"buffer_size must be positive: {buffer_size}")
        self.reset(stream.tell())
        while True:
            chunk = stream.read(buffer_size)
            if not chunk:
                break
            for value in chunk:
                if self.push_byte(value):
                    yield self


def scan_ranges(stream: BinaryIO, buffer_size: int = 1024) -> Iterator[ByteRange]:
    """Yield one ByteRange per substream found in the stream.

    A range runs from one signature start to the next; the last one runs
    to the end of the stream. Bytes before the first signature are not
    covered by any range.
    """
    scanner = BoundaryScanner()
    previous: BoundaryMatch | None = None
    count = 0
    for found in scanner.find_starts(stream, buffer_size):
        current = found.match()
        assert current is not None
        if previous is not None:
            yield ByteRange(previous.start, current.start - previous.start)
            count += 1
        previous = current

    if previous is not None:
        yield ByteRange(previous.start, scanner.position - previous.start)
        count += 1
    logger.info(f"Scanned {scanner.position} bytes, found {count} substreams")
