"""Typer-based CLI for archgraph architecture scans."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .cli_watch import watch
from .config_manager import ProjectConfig, resolve_config, save_config
from .errors import ArchGraphError
from .graph import calculate_dependency_metrics
from .graph_export import export_dot, export_html
from .models import ArchitectureSnapshot
from .scanner import ArchitectureScanner
from .storage import write_snapshot

app = typer.Typer(
    help="🦀 archgraph: dependency graphs and metrics for Rust crates.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("watch")(watch)

console = Console()
err_console = Console(stderr=True)

EXPORT_FORMATS = ("dot", "html")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"archgraph v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log scan progress to stderr."),
):
    """archgraph: static architecture maps for Rust projects."""
    _configure_logging(logging.DEBUG if verbose else logging.WARNING)


def _configure_logging(level: int) -> None:
    package_logger = logging.getLogger("archgraph")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    package_logger.setLevel(level)
    package_logger.propagate = False


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]✗[/red] {message}")
    raise typer.Exit(code=1)


def _run_scan(project_path: Path, config_file: Optional[Path]) -> ArchitectureSnapshot:
    try:
        project_config = resolve_config(project_path, config_file)
        return ArchitectureScanner(project_path, project_config.scanning).scan()
    except ArchGraphError as exc:
        _fail(str(exc))


@app.command("scan")
def scan_project(
    project_path: Path = typer.Argument(Path("."), help="Path to the Rust project directory."),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="Configuration file path."
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the JSON snapshot here."),
    summary: bool = typer.Option(False, "--summary", help="Print a summary table instead of JSON."),
):
    """Scan a project and emit its architecture snapshot as JSON."""
    snapshot = _run_scan(project_path, config_file)

    if output is not None:
        try:
            write_snapshot(snapshot, output)
        except ArchGraphError as exc:
            _fail(str(exc))
        typer.echo(f"Architecture data saved to {output}")
    elif summary:
        _print_summary(snapshot)
    else:
        typer.echo(snapshot.to_json())


@app.command("export")
def export_graph(
    project_path: Path = typer.Argument(Path("."), help="Path to the Rust project directory."),
    output: Path = typer.Option(..., "--output", "-o", help="Output file."),
    fmt: str = typer.Option("html", "--format", "-f", help="Output format: dot or html."),
    focus: str = typer.Option("", "--focus", help="Only modules matching this text and their neighbours."),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="Configuration file path."
    ),
):
    """Render the dependency graph as Graphviz DOT or a standalone HTML page."""
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise typer.BadParameter(f"Unsupported format '{fmt}'. Choose from: {', '.join(EXPORT_FORMATS)}.")

    snapshot = _run_scan(project_path, config_file)
    exporter = export_dot if fmt == "dot" else export_html
    try:
        exporter(snapshot, output, focus=focus)
    except OSError as exc:
        _fail(f"Failed to write {output}: {exc}")
    typer.echo(f"Exported {snapshot.total_modules} modules to {output}")


@app.command("init-config")
def init_config(
    output: Path = typer.Argument(Path("archgraph.toml"), help="Config file to create (.toml, .yaml, .json)."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
):
    """Write the default configuration to a file."""
    if output.exists() and not force:
        _fail(f"{output} already exists. Use --force to overwrite.")
    try:
        save_config(ProjectConfig(), output)
    except ArchGraphError as exc:
        _fail(str(exc))
    typer.echo(f"Wrote default configuration to {output}")


def _print_summary(snapshot: ArchitectureSnapshot) -> None:
    table = Table(title="Modules", show_lines=False)
    table.add_column("Module", style="cyan")
    table.add_column("Kind")
    table.add_column("Path", style="dim")
    table.add_column("LOC", justify="right")
    table.add_column("Complexity", justify="right")
    table.add_column("Deps", justify="right")
    table.add_column("Dependents", justify="right")

    for node in sorted(snapshot.nodes.values(), key=lambda n: n.path):
        table.add_row(
            node.name,
            f"{node.kind.icon} {node.kind.display_name}",
            node.path,
            str(node.metrics.lines_of_code),
            f"{node.metrics.complexity_score:.1f}",
            str(node.metrics.dependency_count),
            str(node.metrics.dependent_count),
        )
    console.print(table)

    metrics = snapshot.metrics
    deps = calculate_dependency_metrics(snapshot.nodes, snapshot.edges, snapshot.circular_dependencies)
    most_connected = snapshot.nodes.get(deps.most_connected_node) if deps.most_connected_node else None
    lines = [
        f"Modules:          {snapshot.total_modules}",
        f"Lines of code:    {snapshot.total_lines}",
        f"Avg complexity:   {snapshot.average_complexity:.2f}",
        f"Dependencies:     {deps.total_dependencies} ({deps.average_dependencies_per_node:.2f}/module)",
        f"Most connected:   {most_connected.name if most_connected else '-'}",
        f"Density:          {metrics.dependency_density:.3f}",
        f"Modularity:       {metrics.modularity_score:.3f}",
        f"Maintainability:  {metrics.maintainability_index:.3f}",
        f"Cycles:           {deps.circular_dependencies}",
    ]
    if metrics.skipped_files:
        lines.append(f"Skipped files:    {metrics.skipped_files}")
    console.print(Panel("\n".join(lines), title="Architecture", expand=False))

    for cycle in snapshot.circular_dependencies:
        names = [snapshot.nodes[node_id].name for node_id in cycle]
        console.print(f"[red]↻[/red] {' → '.join(names)}")
