# Command line entry points for scanning dumps, querying indexes and merging slices.
from __future__ import annotations

import argparse
import logging
import shutil
import sys
from pathlib import Path

from wikidump_index.components.range_index import RangeIndex, write_range_index
from wikidump_index.components.scanner import scan_ranges
from wikidump_index.components.slices import IndexSliceStore
from wikidump_index.core.config import IndexConfig
from wikidump_index.core.errors import WikiDumpIndexError
from wikidump_index.core.types import DumpId

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="wikidump-index",
        description="Index and slice multi-stream bzip2 wiki dumps",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Build a substream range index for a dump file")
    scan.add_argument("dump", type=Path, help="Multi-stream .bz2 dump file")
    scan.add_argument(
        "-o", "--output", type=Path, help="Index file (default: <dump>.stream-index.csv)"
    )
    scan.add_argument(
        "--buffer-size", type=int, default=1024, help="Read batch size (default: 1024)"
    )

    query = sub.add_parser("query", help="Resolve a file offset to a substream")
    query.add_argument("index", type=Path, help="Range index file")
    query.add_argument("position", type=int, help="File offset to resolve")
    query.add_argument(
        "--contain",
        action="store_true",
        help="Find the substream containing the offset instead of one starting at it",
    )
    query.add_argument(
        "--exclusive", action="store_true", help="Hide the first and last substream"
    )

    extract = sub.add_parser("extract", help="Copy one or more substreams to a file")
    extract.add_argument("dump", type=Path, help="Multi-stream .bz2 dump file")
    extract.add_argument("index", type=Path, help="Range index file")
    extract.add_argument("first", type=int, help="First block number")
    extract.add_argument("last", type=int, nargs="?", help="Last block number (default: first)")
    extract.add_argument("-o", "--output", type=Path, required=True, help="Output file")

    merge = sub.add_parser("merge", help="Merge the article index slices of a dump")
    merge.add_argument("folder", type=Path, help="Folder holding the slice files")
    merge.add_argument("dump_id", type=str, help="Dump id, e.g. enwiki-20230920")
    merge.add_argument(
        "--extension", type=str, default="csv", help="Slice file extension (default: csv)"
    )
    return p


def cmd_scan(args: argparse.Namespace) -> int:
    output = args.output or args.dump.with_name(args.dump.name + ".stream-index.csv")
    with open(args.dump, "rb") as f:
        count = write_range_index(output, scan_ranges(f, args.buffer_size))
    print(f"Wrote {count} substream ranges to {output}")
    return 0


def cmd_query(args: argparse.Namespace) -> int:
    index = RangeIndex(args.index)
    block = index.find_range_index(args.position, exact=not args.contain, inclusive=not args.exclusive)
    if block is None:
        print(f"No substream found for offset {args.position}")
        return 1
    byte_range = index[block]
    print(f"block={block} offset={byte_range.offset} length={byte_range.length}")
    return 0


def cmd_extract(args: argparse.Namespace) -> int:
    index = RangeIndex(args.index, args.dump)
    last = args.first if args.last is None else args.last
    with open(args.dump, "rb") as host:
        with index.open_blocks(host, args.first, last) as stream, open(args.output, "wb") as out:
            shutil.copyfileobj(stream, out)
    print(f"Wrote blocks {args.first}-{last} to {args.output}")
    return 0


def cmd_merge(args: argparse.Namespace) -> int:
    config = IndexConfig(repo_dir=str(args.folder), slice_extension=args.extension)
    store = IndexSliceStore(args.folder, DumpId.parse(args.dump_id), config=config)
    merged = store.merge()
    print(f"Merged slices into {merged.path}")
    return 0


COMMANDS = {
    "scan": cmd_scan,
    "query": cmd_query,
    "extract": cmd_extract,
    "merge": cmd_merge,
}


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except (WikiDumpIndexError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
