"""wikidump_index core package."""

from .dump import WikiDump

__all__ = ["WikiDump"]
