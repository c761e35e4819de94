"""Bounded, read-only view over part of a host stream."""

from __future__ import annotations

import io
import logging
from typing import BinaryIO

from ..core.errors import ArgumentRangeError, DisposedError, NotSupportedError, UnexpectedEndOfDataError
from ..core.types import ByteRange

logger = logging.getLogger(__name__)


class BoundedSubstream(io.RawIOBase):
    """Exposes the next ``length`` bytes of a host stream.

    Args:
        host: Readable host stream, positioned at the start of the view
        length: Number of bytes exposed by the view

    Invariants:
        - The view starts at the host's position at construction time;
          the constructor never seeks the host
        - The host is borrowed: closing the view never closes the host
        - Nobody else reads the host while the view is in use
    """

    def __init__(self, host: BinaryIO, length: int):
        super().__init__()
        if length < 0:
            raise ArgumentRangeError(f"length cannot be negative: {length}")
        if not host.readable():
            raise ArgumentRangeError("Expecting a readable host stream")
        self.host = host
        self.length = length
        self._position = 0

    @classmethod
    def from_host_slice(cls, host: BinaryIO, byte_range: ByteRange) -> BoundedSubstream:
        """Seek the host to the start of the range and open a view over it."""
        host.seek(byte_range.offset)
        return cls(host, byte_range.length)

    @property
    def position(self) -> int:
        """Number of bytes delivered so far."""
        return self._position

    @position.setter
    def position(self, value: int) -> None:
        raise NotSupportedError("BoundedSubstream is not seekable")

    @property
    def remaining(self) -> int:
        return self.length - self._position

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def tell(self) -> int:
        self._check_open()
        return self._position

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        raise NotSupportedError("BoundedSubstream is not seekable")

    def truncate(self, size: int | None = None) -> int:
        raise NotSupportedError("BoundedSubstream is read-only")

    def write(self, b) -> int:
        raise NotSupportedError("BoundedSubstream is read-only")

    def readinto(self, buffer) -> int:
        """Read up to len(buffer) bytes, never past the end of the view.

        Raises UnexpectedEndOfDataError if the host runs out of data
        before the view is exhausted.
        """
        self._check_open()
        count = min(len(buffer), self.remaining)
        if count <= 0:
            return 0
        chunk = self.host.read(count)
        if not chunk:
            raise UnexpectedEndOfDataError(
                f"Host stream ended {self.remaining} bytes before the end of the substream"
            )
        n = len(chunk)
        memoryview(buffer).cast("B")[:n] = chunk
        self._position += n
        return n

    def _check_open(self) -> None:
        if self.closed:
            raise DisposedError("BoundedSubstream is closed")
