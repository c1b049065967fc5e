"""Candidate file discovery: directory walk plus include/exclude/size filters."""

from __future__ import annotations

import logging
import os
from fnmatch import fnmatchcase
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from .config import SUPPORTED_EXTENSIONS
from .config_manager import ScanConfig
from .errors import SelectionError

logger = logging.getLogger(__name__)


def select_files(root: Path, config: Optional[ScanConfig] = None) -> List[Path]:
    """Return the source files under *root* that pass *config*'s filters.

    Patterns are matched against the path relative to *root* (POSIX
    separators). Excludes win over includes; files above ``max_file_size``
    are dropped whatever the patterns say.

    Raises:
        SelectionError: if *root* is missing, not a directory or unreadable.
    """
    config = config or ScanConfig()
    root = _check_root(root)
    excludes = config.effective_exclude_patterns()
    includes = list(config.include_patterns)

    selected: List[Path] = []
    for file_path in _walk(root, config.follow_symlinks):
        if file_path.suffix not in SUPPORTED_EXTENSIONS:
            continue

        rel_path = file_path.relative_to(root).as_posix()
        if matches_any(rel_path, excludes):
            continue
        if includes and not matches_any(rel_path, includes):
            continue

        if config.max_file_size is not None:
            try:
                size = file_path.stat().st_size
            except OSError as exc:
                logger.debug("Skipping unreadable entry %s: %s", file_path, exc)
                continue
            if size > config.max_file_size:
                logger.debug("Skipping %s (%d bytes > %d)", rel_path, size, config.max_file_size)
                continue

        selected.append(file_path)

    return selected


def matches_any(rel_path: str, patterns: Iterable[str]) -> bool:
    return any(glob_match(rel_path, pattern) for pattern in patterns)


def glob_match(rel_path: str, pattern: str) -> bool:
    """Case-sensitive glob match where every ``**/`` may also match nothing."""
    return any(fnmatchcase(rel_path, variant) for variant in _zero_dir_variants(pattern))


@lru_cache(maxsize=256)
def _zero_dir_variants(pattern: str) -> Tuple[str, ...]:
    """The pattern plus every form with some ``**/`` segments dropped."""
    seen = {pattern}
    pending = [pattern]
    while pending:
        current = pending.pop()
        candidates = []
        if current.startswith("**/"):
            candidates.append(current[3:])
        start = current.find("/**/")
        while start != -1:
            candidates.append(current[:start] + current[start + 3:])
            start = current.find("/**/", start + 1)
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                pending.append(candidate)
    return tuple(sorted(seen))


def _check_root(root: Path) -> Path:
    root = Path(root)
    if not root.exists():
        raise SelectionError(f"Scan root does not exist: {root}", root=root)
    if not root.is_dir():
        raise SelectionError(f"Scan root is not a directory: {root}", root=root)
    try:
        with os.scandir(root):
            pass
    except OSError as exc:
        raise SelectionError(f"Scan root is not readable: {root} ({exc})", root=root) from exc
    return root


def _walk(root: Path, follow_symlinks: bool) -> Iterable[Path]:
    seen: Set[Tuple[int, int]] = set()

    def _on_error(exc: OSError) -> None:
        logger.debug("Skipping unreadable entry %s: %s", exc.filename, exc)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=follow_symlinks):
        if follow_symlinks:
            try:
                st = os.stat(dirpath)
            except OSError:
                dirnames[:] = []
                continue
            key = (st.st_dev, st.st_ino)
            if key in seen:
                # Symlink loop or a directory reachable twice.
                dirnames[:] = []
                continue
            seen.add(key)

        dirnames.sort()
        for name in sorted(filenames):
            yield Path(dirpath) / name
