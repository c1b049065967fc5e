"""Watch mode: rescan the project whenever its sources change."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Set

import typer
from rich.console import Console
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import CONFIG_FILES, SUPPORTED_EXTENSIONS
from .config_manager import resolve_config
from .errors import ArchGraphError
from .models import ArchitectureSnapshot
from .scanner import ArchitectureScanner
from .storage import SnapshotHolder

console = Console()

_RELEVANT_EVENTS = {"created", "modified", "deleted", "moved"}


class CodeChangeHandler(FileSystemEventHandler):
    """Collect source and config file changes and trigger a debounced rescan."""

    def __init__(
        self,
        rescan_callback: Callable[[List[str]], None],
        root: Path,
        debounce_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__()
        self.rescan_callback = rescan_callback
        self.root = root
        self.debounce_seconds = debounce_seconds
        self.last_rescan = float("-inf")
        self._clock = clock
        self._pending_files: Set[str] = set()
        self._lock = threading.Lock()
        self._rescan_lock = threading.Lock()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _RELEVANT_EVENTS:
            return
        queued = False
        for attr in ("src_path", "dest_path"):
            path = getattr(event, attr, None)
            if path and self._queue(str(path)):
                queued = True
        if queued:
            self.flush()

    def _queue(self, src_path: str) -> bool:
        file_path = Path(src_path)
        if file_path.name in CONFIG_FILES and file_path.parent == Path(self.root):
            with self._lock:
                self._pending_files.add(str(file_path))
            return True
        if file_path.suffix not in SUPPORTED_EXTENSIONS:
            return False

        try:
            rel_parts = file_path.relative_to(self.root).parts
        except ValueError:
            rel_parts = file_path.parts
        # Skip hidden/temp files
        if any(part.startswith(".") for part in rel_parts):
            return False

        with self._lock:
            self._pending_files.add(str(file_path))
        return True

    def flush(self) -> bool:
        """Run the callback if changes are pending and the debounce window passed.

        The observer thread and the watch loop both call this; rescans never
        overlap.
        """
        with self._rescan_lock:
            with self._lock:
                if not self._pending_files:
                    return False
                now = self._clock()
                if now - self.last_rescan < self.debounce_seconds:
                    return False
                files = sorted(self._pending_files)
                self._pending_files.clear()
                self.last_rescan = now

            self.rescan_callback(files)
            return True


def _describe(snapshot: ArchitectureSnapshot) -> str:
    return (
        f"{snapshot.total_modules} modules, {len(snapshot.edges)} edges, "
        f"{len(snapshot.circular_dependencies)} cycles"
    )


def watch(
    project_path: Path = typer.Argument(Path("."), help="Path to the Rust project to watch."),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="Configuration file path."
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        "-i",
        min=0.0,
        help="Minimum seconds between rescans (default: scanning.scan_interval).",
    ),
):
    """👀 Watch mode: rescan whenever .rs or archgraph config files change.

    Example:
      archgraph watch
      archgraph watch ./my-crate --interval 5
    """
    watch_path = project_path.resolve()
    try:
        project_config = resolve_config(watch_path, config_file)
        scanner = ArchitectureScanner(watch_path, project_config.scanning)
        holder = SnapshotHolder()
        snapshot = holder.refresh(scanner)
    except ArchGraphError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(1)

    debounce = interval if interval is not None else float(project_config.scanning.scan_interval)

    def rescan(files: List[str]) -> None:
        nonlocal scanner
        try:
            if config_file is None and any(Path(f).name in CONFIG_FILES for f in files):
                scanner = ArchitectureScanner(watch_path, resolve_config(watch_path).scanning)
            fresh = holder.refresh(scanner)
        except ArchGraphError as exc:
            console.print(f"  [red]✗[/red] Rescan failed: {exc}")
            return
        changed = ", ".join(Path(f).name for f in files[:3])
        more = f" (+{len(files) - 3} more)" if len(files) > 3 else ""
        console.print(f"  [green]✓[/green] Rescanned after {changed}{more}: {_describe(fresh)}")

    console.print(f"\n[bold green]👀 Watching[/bold green] [cyan]{watch_path}[/cyan] for changes...")
    console.print(f"[dim]  Initial:   {_describe(snapshot)}")
    console.print(f"  Debounce:  {debounce}s")
    console.print("  Press Ctrl+C to stop[/dim]\n")

    handler = CodeChangeHandler(rescan, watch_path, debounce_seconds=debounce)
    observer = Observer()
    observer.schedule(handler, str(watch_path), recursive=True)
    observer.start()

    try:
        while True:
            time.sleep(1)
            handler.flush()
    except KeyboardInterrupt:
        observer.stop()
        console.print(
            f"\n[yellow]Stopped watching.[/yellow] Rescanned {holder.generation - 1} time(s)."
        )

    observer.join()
