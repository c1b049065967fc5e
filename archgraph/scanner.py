"""Scan orchestration: select files, extract facts, assemble, measure."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import DEFAULT_MAX_CONCURRENCY
from .config_manager import ScanConfig
from .errors import ExtractionError
from .extractor import parse_module_file
from .graph import DependencyAnalyzer, link_dependents
from .metrics import calculate_architecture_metrics
from .models import ArchitectureSnapshot, ModuleNode
from .selector import select_files

logger = logging.getLogger(__name__)


class ArchitectureScanner:
    """Runs full scans of one project directory.

    Holds configuration only; every call to :meth:`scan` starts from the
    file system and returns a new snapshot.
    """

    def __init__(
        self,
        project_path: Path,
        config: Optional[ScanConfig] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        self.project_path = Path(project_path)
        self.config = config or ScanConfig()
        self.max_concurrency = max(1, max_concurrency or DEFAULT_MAX_CONCURRENCY)
        self.dependency_analyzer = DependencyAnalyzer()

    def scan(self) -> ArchitectureSnapshot:
        """Blocking scan. Use :meth:`scan_async` from inside an event loop.

        Raises:
            ScanError: if the project root cannot be scanned.
        """
        return asyncio.run(self.scan_async())

    async def scan_async(self) -> ArchitectureSnapshot:
        started = time.perf_counter()
        files = await asyncio.to_thread(select_files, self.project_path, self.config)
        logger.info("Scanning %d file(s) under %s", len(files), self.project_path)

        nodes, skipped = await self._extract_all(files)

        edges, cycles = self.dependency_analyzer.assemble(nodes)
        nodes = link_dependents(nodes, edges)
        metrics = calculate_architecture_metrics(nodes, edges, skipped_files=skipped)

        total_modules = len(nodes)
        total_lines = sum(n.metrics.lines_of_code for n in nodes.values())
        average_complexity = (
            sum(n.metrics.complexity_score for n in nodes.values()) / total_modules
            if total_modules
            else 0.0
        )

        snapshot = ArchitectureSnapshot(
            nodes=nodes,
            edges=tuple(edges),
            last_scan=datetime.now(timezone.utc),
            total_modules=total_modules,
            total_lines=total_lines,
            average_complexity=average_complexity,
            circular_dependencies=tuple(cycles),
            metrics=metrics,
        )

        logger.info(
            "Scan completed in %.3fs: %d module(s), %d edge(s), %d cycle(s), %d skipped",
            time.perf_counter() - started,
            total_modules,
            len(edges),
            len(cycles),
            skipped,
        )
        return snapshot

    async def _extract_all(self, files: List[Path]) -> Tuple[Dict[str, ModuleNode], int]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _analyze(file_path: Path) -> ModuleNode:
            async with semaphore:
                return await asyncio.to_thread(parse_module_file, file_path, self.project_path)

        nodes: Dict[str, ModuleNode] = {}
        skipped = 0
        tasks = [asyncio.ensure_future(_analyze(path)) for path in files]
        # Only this loop writes to ``nodes``.
        for finished in asyncio.as_completed(tasks):
            try:
                node = await finished
            except ExtractionError as exc:
                skipped += 1
                logger.warning("Skipping %s: %s", exc.path, exc.__cause__ or exc)
                continue
            nodes[node.id] = node
        return nodes, skipped


def scan(root: Path, config: Optional[ScanConfig] = None) -> ArchitectureSnapshot:
    """Scan *root* and return an immutable architecture snapshot.

    Raises:
        ScanError: if *root* is missing or unreadable. Files that fail to
            read are left out of the snapshot instead.
    """
    return ArchitectureScanner(root, config).scan()
