"""Pytest configuration and fixtures for archgraph tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Dict, Generator

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_crate_path() -> Path:
    """Get path to the sample Rust crate."""
    return Path(__file__).parent / "fixtures" / "sample_crate"


def write_crate(root: Path, files: Dict[str, str]) -> Path:
    """Write ``{relative path: content}`` under *root* and return *root*."""
    for rel_path, content in files.items():
        target = root / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_crate(temp_dir: Path):
    """Factory writing a throwaway crate into ``temp_dir``."""

    def _make(files: Dict[str, str]) -> Path:
        return write_crate(temp_dir, files)

    return _make
