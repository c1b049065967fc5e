"""Ownership of the latest snapshot, plus JSON files for snapshots.

A scan never mutates a snapshot it has returned. Long-running consumers
(the watch command, a server) keep the current one in a
:class:`SnapshotHolder` and swap it wholesale after each rescan.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional

from .errors import ArchGraphError
from .models import ArchitectureSnapshot

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[ArchitectureSnapshot], None]


class SnapshotHolder:
    """Single owner of the most recent snapshot.

    Readers call :meth:`get` and keep whatever they got; the snapshot itself
    is immutable, so only the reference swap needs the lock.
    """

    def __init__(self, snapshot: Optional[ArchitectureSnapshot] = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = snapshot
        self._generation = 0 if snapshot is None else 1
        self._listeners: List[SnapshotListener] = []

    @property
    def generation(self) -> int:
        """Number of snapshots installed so far."""
        with self._lock:
            return self._generation

    def get(self) -> Optional[ArchitectureSnapshot]:
        with self._lock:
            return self._snapshot

    def replace(self, snapshot: ArchitectureSnapshot) -> Optional[ArchitectureSnapshot]:
        """Install *snapshot* and return the one it replaced."""
        with self._lock:
            previous = self._snapshot
            self._snapshot = snapshot
            self._generation += 1
            listeners = list(self._listeners)

        for listener in listeners:
            listener(snapshot)
        return previous

    def refresh(self, scanner) -> ArchitectureSnapshot:
        """Rescan with *scanner* and install the result.

        The scan runs without holding the lock, so readers keep getting the
        previous snapshot until the new one is ready. A failed scan leaves
        the current snapshot in place.
        """
        snapshot = scanner.scan()
        self.replace(snapshot)
        return snapshot

    def subscribe(self, listener: SnapshotListener) -> None:
        """Call *listener* with every snapshot installed from now on."""
        with self._lock:
            self._listeners.append(listener)


def write_snapshot(snapshot: ArchitectureSnapshot, output_file: Path) -> None:
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(snapshot.to_json(), encoding="utf-8")
    except OSError as exc:
        raise ArchGraphError(f"Failed to write snapshot to {output_file}: {exc}") from exc
    logger.info("Architecture data saved to %s", output_file)


def read_snapshot(input_file: Path) -> ArchitectureSnapshot:
    try:
        return ArchitectureSnapshot.from_json(input_file.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ArchGraphError(f"Failed to read snapshot {input_file}: {exc}") from exc
    except (ValueError, KeyError, TypeError) as exc:
        raise ArchGraphError(f"Malformed snapshot file {input_file}: {exc}") from exc
