"""Configuration for wikidump_index.

Defines the tunable parameters and loads them from a TOML file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import tomllib  # Python 3.11+

from .errors import DataFormatError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "wikidata" / "wikidata.toml"


@dataclass
class IndexConfig:
    """Configuration parameters for dump indexing.

    Attributes:
        repo_dir: Root directory holding dump folders
        scan_buffer_size: Batch size for reading dump files while scanning
        slice_extension: File extension of partial article index files
        temp_suffix: Suffix for files that are being written
        backup_suffix: Suffix given to slice files replaced by a merge
    """

    repo_dir: str
    scan_buffer_size: int = 1024
    slice_extension: str = "csv"
    temp_suffix: str = ".tmp"
    backup_suffix: str = ".bak"


def load_config(path: Path | None = None) -> IndexConfig:
    """Load an IndexConfig from a TOML file.

    Recognized keys: ``repo-folder`` (required), ``scan-buffer-size``
    and ``slice-extension``.
    """
    path = path if path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    data = tomllib.loads(path.read_text(encoding="utf-8"))

    repo_folder = data.get("repo-folder")
    if not isinstance(repo_folder, str) or not repo_folder:
        raise DataFormatError(f"Missing 'repo-folder' in {path}")

    cfg = IndexConfig(repo_dir=repo_folder)
    if "scan-buffer-size" in data:
        cfg.scan_buffer_size = int(data["scan-buffer-size"])
    if "slice-extension" in data:
        cfg.slice_extension = str(data["slice-extension"])
    logger.debug(f"Loaded configuration from {path}")
    return cfg
