"""Unit tests for DumpId and the WikiDump folder."""

import shutil
import tempfile
from pathlib import Path

import pytest

from wikidump_index.core.config import IndexConfig
from wikidump_index.core.dump import WikiDump
from wikidump_index.core.errors import ArgumentRangeError, DataFormatError, DisposedError
from wikidump_index.core.types import ByteRange, DumpId

DUMP = DumpId("enwiki", "20230920")


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


def signature(level=9):
    return b"BZh" + bytes([0x30 + level]) + bytes.fromhex("314159265359")


# Payload bytes never contain 0x42 so no signature appears by accident
PAYLOADS = [b"header-" * 3, b"first stream", b"second", b"third payload!!"]


@pytest.fixture
def dump(temp_dir):
    """A dump folder holding a four-substream main file."""
    wiki_dump = WikiDump(temp_dir / "enwiki" / "20230920", DUMP)
    wiki_dump.main_dump_file.write_bytes(b"".join(signature() + p for p in PAYLOADS))
    return wiki_dump


def substream(block):
    return signature() + PAYLOADS[block]


# --- DumpId ---


def test_dump_id_render_and_parse():
    """Test that ids render as wiki-dump and parse back."""
    assert str(DUMP) == "enwiki-20230920"
    assert DumpId.parse("enwiki-20230920") == DUMP


@pytest.mark.parametrize(
    "text", ["enwiki", "enwiki-2023092", "EnWiki-20230920", "enwiki-20231320", "en-wiki-20230920"]
)
def test_dump_id_parse_rejects(text):
    """Test that malformed ids raise DataFormatError."""
    with pytest.raises(DataFormatError):
        DumpId.parse(text)


def test_dump_id_constructor_validates():
    """Test that invalid tags are rejected by the constructor."""
    with pytest.raises(ArgumentRangeError):
        DumpId("en1", "20230920")
    with pytest.raises(ArgumentRangeError):
        DumpId("enwiki", "19990101")
    with pytest.raises(ArgumentRangeError):
        DumpId("enwiki", "20230920\n")


def test_dump_id_from_file():
    """Test deriving ids from file names."""
    assert DumpId.try_from_file("/data/enwiki-20230920-pages-articles-multistream.xml.bz2") == DUMP
    assert DumpId.try_from_file("enwiki-20230920.i-0-4.partidx.csv") is None
    assert DumpId.try_from_file("/enwiki-20230920/readme.txt") is None
    assert DumpId.try_from_file("enwiki-latest-pages.xml.bz2") is None


# --- WikiDump ---


def test_dump_file_names(temp_dir):
    """Test the names of the files in a dump folder."""
    wiki_dump = WikiDump(temp_dir / "d", DUMP)

    assert wiki_dump.folder.is_dir()
    assert wiki_dump.main_dump_file.name == "enwiki-20230920-pages-articles-multistream.xml.bz2"
    assert wiki_dump.main_index_file.name == "enwiki-20230920-pages-articles-multistream-index.txt"
    assert wiki_dump.stream_index_file.name == "enwiki-20230920-stream-index.csv"
    assert wiki_dump.stream_index_intermediate_file.name == "enwiki-20230920-stream-index.tmp.csv"
    assert not wiki_dump.has_main_file
    assert not wiki_dump.has_stream_index


def test_dump_in_repo(temp_dir):
    """Test the repository layout {repo}/{wikitag}/{dumptag}."""
    config = IndexConfig(repo_dir=str(temp_dir))

    wiki_dump = WikiDump.in_repo(config, DUMP)

    assert wiki_dump.folder == temp_dir / "enwiki" / "20230920"
    assert wiki_dump.config is config


def test_build_stream_index(dump):
    """Test that scanning writes the final index and no intermediate file."""
    count = dump.build_stream_index()

    assert count == 4
    assert dump.has_stream_index
    assert not dump.has_intermediate_stream_index
    index = dump.stream_index()
    assert [r.length for r in index.ranges] == [len(substream(b)) for b in range(4)]
    assert index.ranges[0] == ByteRange(0, len(substream(0)))
    assert index.target_length == dump.main_dump_file.stat().st_size


def test_build_stream_index_without_dump_file(temp_dir):
    """Test that scanning a missing dump file fails."""
    wiki_dump = WikiDump(temp_dir / "d", DUMP)

    with pytest.raises(FileNotFoundError):
        wiki_dump.build_stream_index()
    assert not wiki_dump.has_stream_index


def test_stream_index_is_cached_until_rebuilt(dump):
    """Test that the index is loaded once and replaced after a rebuild."""
    dump.build_stream_index()
    first = dump.stream_index()

    assert dump.stream_index() is first

    with open(dump.main_dump_file, "ab") as f:
        f.write(signature(1) + b"more")
    dump.build_stream_index()

    assert dump.stream_index() is not first
    assert len(dump.stream_index()) == 5


def test_reload_stream_index(dump):
    """Test that reload re-reads the index file in place."""
    dump.build_stream_index()
    index = dump.stream_index()
    with open(dump.stream_index_file, "a", encoding="utf-8") as f:
        f.write("9999,1\n")

    assert dump.reload_stream_index() is index
    assert len(index) == 5


def test_open_block(dump):
    """Test that one block reads back as its signature plus payload."""
    dump.build_stream_index()

    with dump.open_block(2) as stream:
        assert stream.read() == substream(2)


def test_open_blocks(dump):
    """Test that a block span reads back concatenated."""
    dump.build_stream_index()

    with dump.open_blocks(1, 3) as stream:
        assert stream.read() == substream(1) + substream(2) + substream(3)


@pytest.mark.parametrize("first, last", [(-1, 0), (2, 1), (0, 4)])
def test_open_blocks_invalid_span(dump, first, last):
    """Test that invalid spans are rejected."""
    dump.build_stream_index()

    with pytest.raises(ArgumentRangeError):
        dump.open_blocks(first, last)


def test_open_at(dump):
    """Test opening by exact file offset."""
    dump.build_stream_index()
    offset = dump.stream_index().ranges[1].offset

    with dump.open_at(offset) as stream:
        assert stream.read() == substream(1)
    assert dump.open_at(offset + 1) is None
    assert dump.open_at(0) is None
    with dump.open_at(0, inclusive=True) as stream:
        assert stream.read() == substream(0)


def test_open_block_closes_file_when_done(dump):
    """Test that a view closes its file once exhausted or closed."""
    dump.build_stream_index()
    stream = dump.open_block(1)

    stream.close()

    with pytest.raises(DisposedError):
        stream.read(1)


def test_open_block_without_index(dump):
    """Test that opening a block needs a stream index."""
    with pytest.raises(FileNotFoundError):
        dump.open_block(0)


def test_slice_store_uses_dump_folder(dump):
    """Test that the slice store lives in the dump folder."""
    store = dump.slice_store()

    assert store.folder == dump.folder
    assert store.dump_id == DUMP
