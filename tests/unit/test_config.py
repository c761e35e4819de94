"""Unit tests for configuration loading."""

import shutil
import tempfile
from pathlib import Path

import pytest

from wikidump_index.core.config import DEFAULT_CONFIG_PATH, IndexConfig, load_config
from wikidump_index.core.errors import DataFormatError


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


def test_defaults():
    """Test the default tunables."""
    cfg = IndexConfig(repo_dir="/data/wiki")

    assert cfg.scan_buffer_size == 1024
    assert cfg.slice_extension == "csv"
    assert cfg.temp_suffix == ".tmp"
    assert cfg.backup_suffix == ".bak"
    assert DEFAULT_CONFIG_PATH.name == "wikidata.toml"


def test_load_config(temp_dir):
    """Test that all recognized keys are read."""
    path = temp_dir / "wikidata.toml"
    path.write_text(
        'repo-folder = "/data/wiki"\nscan-buffer-size = 4096\nslice-extension = "tsv"\n',
        encoding="utf-8",
    )

    cfg = load_config(path)

    assert cfg == IndexConfig(repo_dir="/data/wiki", scan_buffer_size=4096, slice_extension="tsv")


def test_load_config_only_repo_folder(temp_dir):
    """Test that optional keys fall back to defaults."""
    path = temp_dir / "wikidata.toml"
    path.write_text('repo-folder = "/data/wiki"\n', encoding="utf-8")

    assert load_config(path) == IndexConfig(repo_dir="/data/wiki")


@pytest.mark.parametrize("content", ["", 'repo-folder = ""\n', "repo-folder = 3\n"])
def test_load_config_requires_repo_folder(temp_dir, content):
    """Test that a missing or empty repo-folder is rejected."""
    path = temp_dir / "wikidata.toml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(DataFormatError):
        load_config(path)


def test_load_config_missing_file(temp_dir):
    """Test that a missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_config(temp_dir / "absent.toml")
