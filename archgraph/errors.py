"""Exception hierarchy shared by the scanner, config loader and CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ArchGraphError(Exception):
    """Base class for every error raised by archgraph."""


class ScanError(ArchGraphError):
    """A scan could not produce a snapshot at all."""


class SelectionError(ScanError):
    """The scan root is missing, is not a directory, or cannot be listed."""

    def __init__(self, message: str, root: Optional[Path] = None):
        super().__init__(message)
        self.root = root


class ExtractionError(ArchGraphError):
    """A single source file could not be read, decoded or stat'ed.

    Raised by the fact extractor and absorbed by the scanner, which drops the
    file from the snapshot instead of failing the scan.
    """

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ConfigError(ArchGraphError):
    """A configuration file is unreadable, malformed or holds bad values."""
