"""Exception hierarchy for wikidump_index.

Defines all custom exceptions used throughout the implementation.
"""

from __future__ import annotations

import io


class WikiDumpIndexError(Exception):
    """Base exception for all wikidump_index errors."""
    pass


class ArgumentRangeError(WikiDumpIndexError, ValueError):
    """Raised for malformed offset, length or index arguments."""
    pass


class DataFormatError(WikiDumpIndexError, ValueError):
    """Raised when an index file or file name does not have the expected shape."""
    pass


class UnexpectedEndOfDataError(WikiDumpIndexError, EOFError):
    """Raised when a host stream runs dry before a bounded view is exhausted."""
    pass


class NotSupportedError(WikiDumpIndexError, io.UnsupportedOperation):
    """Raised when seeking or writing is attempted on a read-only view."""
    pass


class DisposedError(WikiDumpIndexError, ValueError):
    """Raised when a stream view is used after it was closed."""
    pass


class ContiguityError(WikiDumpIndexError):
    """Raised when a merge is attempted on slices that do not abut."""
    pass
