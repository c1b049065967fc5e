"""Default values and well-known names for archgraph scans."""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer), using %d", name, raw, default)
        return default


SUPPORTED_EXTENSIONS = {".rs"}

DEFAULT_SCAN_INTERVAL = 30
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
DEFAULT_MAX_CONCURRENCY = _env_int("ARCHGRAPH_MAX_CONCURRENCY", 8)

DEFAULT_EXCLUDE_PATTERNS = [
    "target/**",
    "**/target/**",
    "**/.git/**",
    "**/node_modules/**",
    "**/.*",
]
DEFAULT_INCLUDE_PATTERNS = ["**/*.rs"]

# Extra excludes applied when the matching include_* flag is off.
OPTIONAL_SECTION_PATTERNS = {
    "include_tests": "**/tests/**",
    "include_examples": "**/examples/**",
    "include_benches": "**/benches/**",
    "include_docs": "**/docs/**",
}

# Looked up in this order inside the project directory.
CONFIG_FILES = [
    "archgraph.toml",
    "archgraph.yaml",
    "archgraph.yml",
    "archgraph.json",
    ".archgraph.toml",
    ".archgraph.yaml",
    ".archgraph.yml",
    ".archgraph.json",
]

MANIFEST_FILE = "Cargo.toml"
