"""Read-only stream concatenating a lazy sequence of child streams."""

from __future__ import annotations

import io
import logging
from collections.abc import Callable, Iterable, Iterator
from typing import BinaryIO

from ..core.errors import DisposedError, NotSupportedError
from ..core.types import ByteRange
from .substream import BoundedSubstream

logger = logging.getLogger(__name__)


class ConcatenatedStream(io.RawIOBase):
    """A read-only non-seekable stream that concatenates other streams.

    Args:
        streams: The child streams to concatenate. It is iterated once,
            and each step is postponed until the next child is needed.
            Whoever produces the children is responsible for closing them.

    Invariants:
        - The first child is pulled at construction, so at_end is
          already True for an empty sequence
        - A child is considered exhausted only when it returns zero bytes
    """

    def __init__(self, streams: Iterable[BinaryIO | None]):
        super().__init__()
        self._current: BinaryIO | None = None
        self._child_count = 0
        self._streams: Iterator[BinaryIO | None] = iter(streams)
        self._open_next_stream()

    @classmethod
    def from_openers(
        cls, openers: Iterable[Callable[[], BinaryIO]], close: bool
    ) -> ConcatenatedStream:
        """Create a stream over children produced by opener functions.

        When close is True each child is closed as soon as it has been
        fully consumed, before the next opener is called.
        """
        if close:
            return cls(_open_and_close(openers))
        return cls(opener() for opener in openers)

    @classmethod
    def from_slices(cls, host: BinaryIO, ranges: Iterable[ByteRange]) -> ConcatenatedStream:
        """Create a stream delivering the given ranges of a single host stream.

        The host is never closed; the views opened over it are.
        """
        return cls(open_slices(host, ranges))

    @property
    def at_end(self) -> bool:
        """True once no child streams remain."""
        return self._current is None

    @property
    def child_count(self) -> int:
        """Number of child streams opened so far."""
        return self._child_count

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def tell(self) -> int:
        raise NotSupportedError("ConcatenatedStream is not seekable")

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        raise NotSupportedError("ConcatenatedStream is not seekable")

    def truncate(self, size: int | None = None) -> int:
        raise NotSupportedError("ConcatenatedStream is read-only")

    def write(self, b) -> int:
        raise NotSupportedError("ConcatenatedStream is read-only")

    def readinto(self, buffer) -> int:
        """Fill the buffer from the children, moving on as each one runs dry."""
        self._check_open()
        view = memoryview(buffer).cast("B")
        count = len(view)
        total = 0
        while total < count and self._current is not None:
            chunk = self._current.read(count - total)
            if chunk:
                view[total:total + len(chunk)] = chunk
                total += len(chunk)
            else:
                # zero bytes is the only end-of-child signal
                self._open_next_stream()
        return total

    def flush(self) -> None:
        """Flush the current child stream, if any."""
        self._check_open()
        if self._current is not None:
            self._current.flush()

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()
        finally:
            self._current = None
            close_producer = getattr(getattr(self, "_streams", None), "close", None)
            if close_producer is not None:
                close_producer()

    def _open_next_stream(self) -> bool:
        """Advance to the next non-None child; return False if none are left."""
        for stream in self._streams:
            if stream is not None:
                self._current = stream
                self._child_count += 1
                logger.debug(f"Opened child stream {self._child_count}")
                return True
        self._current = None
        return False

    def _check_open(self) -> None:
        if self.closed:
            raise DisposedError("ConcatenatedStream is closed")


def _open_and_close(openers: Iterable[Callable[[], BinaryIO]]) -> Iterator[BinaryIO]:
    for opener in openers:
        with opener() as stream:
            yield stream


def open_slices(host: BinaryIO, ranges: Iterable[ByteRange]) -> Iterator[BinaryIO]:
    """Yield a view per range, closing each one before the next is opened."""
    for byte_range in ranges:
        with BoundedSubstream.from_host_slice(host, byte_range) as stream:
            yield stream
