"""End-to-end tests for full scans."""

import asyncio
from pathlib import Path

import pytest

from archgraph.config_manager import ScanConfig
from archgraph.errors import ScanError, SelectionError
from archgraph.models import ArchitectureMetrics, DependencyType, ModuleType
from archgraph.scanner import ArchitectureScanner, scan


class TestScanScenarios:
    """Small directories with known outcomes."""

    def test_single_reference(self, make_crate):
        """b referencing a gives one edge from b to a and no cycles."""
        root = make_crate({
            "a.rs": "pub fn alpha() {}\n",
            "b.rs": "use crate::a;\n\npub fn beta() {}\n",
        })

        snapshot = scan(root)
        a = snapshot.node_by_path("a.rs")
        b = snapshot.node_by_path("b.rs")

        assert snapshot.total_modules == 2
        assert [(e.source, e.target) for e in snapshot.edges] == [(b.id, a.id)]
        assert snapshot.circular_dependencies == ()
        assert a.dependents == (b.id,)
        assert b.metrics.dependency_count == 1

    def test_mutual_reference(self, make_crate):
        """a and b referencing each other form exactly one cycle."""
        root = make_crate({
            "a.rs": "use crate::b;\n",
            "b.rs": "use crate::a;\n",
        })

        snapshot = scan(root)
        ids = {snapshot.node_by_path("a.rs").id, snapshot.node_by_path("b.rs").id}

        assert snapshot.total_modules == 2
        assert len(snapshot.edges) == 2
        assert len(snapshot.circular_dependencies) == 1
        assert set(snapshot.circular_dependencies[0]) == ids
        assert all(e.is_circular for e in snapshot.edges)

    def test_empty_directory(self, temp_dir: Path):
        """No files gives an empty snapshot with zeroed metrics."""
        snapshot = scan(temp_dir)

        assert snapshot.total_modules == 0
        assert snapshot.total_lines == 0
        assert snapshot.average_complexity == 0.0
        assert snapshot.edges == ()
        assert snapshot.circular_dependencies == ()
        assert snapshot.metrics == ArchitectureMetrics()

    def test_oversized_file(self, make_crate):
        """A file over max_file_size is not scanned."""
        root = make_crate({"big.rs": "fn x() {}\n" * 20})

        snapshot = scan(root, ScanConfig(max_file_size=16))
        assert snapshot.total_modules == 0


class TestScanBehaviour:
    """Failure handling, config and determinism."""

    def test_missing_root(self, temp_dir: Path):
        """A missing root fails the whole scan."""
        with pytest.raises(SelectionError):
            scan(temp_dir / "missing")

    def test_undecodable_file_is_skipped(self, make_crate):
        """An invalid UTF-8 file is dropped and counted, the rest still scans."""
        root = make_crate({"good.rs": "pub fn ok() {}\n"})
        (root / "bad.rs").write_bytes(b"fn broken() { \xff }\n")

        snapshot = scan(root)

        assert snapshot.total_modules == 1
        assert snapshot.node_by_path("good.rs") is not None
        assert snapshot.metrics.skipped_files == 1

    def test_exclude_precedence(self, make_crate):
        """Excluded files never become nodes."""
        root = make_crate({"src/lib.rs": "", "src/generated/out.rs": ""})
        config = ScanConfig(exclude_patterns=["**/generated/**"], include_patterns=["src/**"])

        snapshot = scan(root, config)
        assert [n.path for n in snapshot.nodes.values()] == ["src/lib.rs"]

    def test_rescan_is_stable(self, sample_crate_path: Path):
        """Two scans agree on everything except node ids and timestamps."""
        first = scan(sample_crate_path)
        second = scan(sample_crate_path)

        def shape(snapshot):
            names = {node_id: (n.name, n.path) for node_id, n in snapshot.nodes.items()}
            modules = {
                n.path: (n.name, n.kind, n.metrics, sorted(n.dependency_names), len(n.dependents))
                for n in snapshot.nodes.values()
            }
            return (
                modules,
                sorted((names[e.source], names[e.target], e.relationship, e.is_circular) for e in snapshot.edges),
                sorted(sorted(names[node_id] for node_id in cycle) for cycle in snapshot.circular_dependencies),
                snapshot.total_lines,
                snapshot.metrics.to_dict(),
            )

        assert shape(first) == shape(second)
        assert set(first.nodes).isdisjoint(second.nodes)

    def test_scan_async(self, sample_crate_path: Path):
        """The async entry point gives the same result inside an event loop."""
        scanner = ArchitectureScanner(sample_crate_path, max_concurrency=2)
        snapshot = asyncio.run(scanner.scan_async())
        assert snapshot.total_modules == 7

    def test_selection_error_is_scan_error(self, temp_dir: Path):
        """Callers can catch every whole-scan failure as ScanError."""
        with pytest.raises(ScanError):
            ArchitectureScanner(temp_dir / "missing").scan()


class TestSampleCrate:
    """Scans of the bundled sample crate."""

    @pytest.fixture
    def snapshot(self, sample_crate_path: Path):
        return scan(sample_crate_path)

    def test_nodes_and_kinds(self, snapshot):
        """Each source file becomes one node with the expected kind."""
        kinds = {n.path: n.kind for n in snapshot.nodes.values()}

        assert kinds == {
            "src/core.rs": ModuleType.CORE,
            "src/model.rs": ModuleType.DATA_PROCESSING,
            "src/api/handlers.rs": ModuleType.API,
            "src/worker.rs": ModuleType.EXECUTION,
            "src/parser.rs": ModuleType.CORE,
            "src/lexer.rs": ModuleType.CORE,
            "tests/integration.rs": ModuleType.TESTING,
        }
        assert snapshot.total_modules == 7
        assert snapshot.total_lines == sum(n.metrics.lines_of_code for n in snapshot.nodes.values())

    def test_edges(self, snapshot):
        """References resolve to typed edges."""
        names = {node_id: n.name for node_id, n in snapshot.nodes.items()}
        edges = {(names[e.source], names[e.target]): e for e in snapshot.edges}

        assert set(edges) == {
            ("handlers", "core"),
            ("handlers", "model"),
            ("worker", "core"),
            ("integration", "core"),
            ("parser", "lexer"),
            ("lexer", "parser"),
        }
        assert edges[("handlers", "core")].relationship == DependencyType.USES
        assert edges[("handlers", "model")].relationship == DependencyType.DEPENDS_ON
        assert edges[("worker", "core")].relationship == DependencyType.USES
        assert edges[("integration", "core")].relationship == DependencyType.USES
        assert edges[("parser", "lexer")].relationship == DependencyType.DEPENDS_ON
        assert all(e.strength == 1.0 for e in snapshot.edges)

    def test_cycle(self, snapshot):
        """Only the parser/lexer pair is circular."""
        names = {node_id: n.name for node_id, n in snapshot.nodes.items()}

        assert len(snapshot.circular_dependencies) == 1
        assert {names[i] for i in snapshot.circular_dependencies[0]} == {"parser", "lexer"}
        circular = {(names[e.source], names[e.target]) for e in snapshot.edges if e.is_circular}
        assert circular == {("parser", "lexer"), ("lexer", "parser")}

    def test_dependents(self, snapshot):
        """Reverse links point back at the referencing modules."""
        core = snapshot.find_nodes("core")[0]
        dependents = {snapshot.nodes[i].name for i in core.dependents}

        assert dependents == {"handlers", "worker", "integration"}
        assert core.metrics.dependent_count == 3

    def test_graph_metrics(self, snapshot):
        """Whole-graph metrics stay within their documented ranges."""
        metrics = snapshot.metrics

        assert metrics.dependency_density == pytest.approx(6 / 42)
        assert 0.0 <= metrics.modularity_score <= 1.0
        assert 0.0 <= metrics.maintainability_index <= 1.0
        assert metrics.min_complexity <= snapshot.average_complexity <= metrics.max_complexity

    def test_tests_excluded_when_disabled(self, sample_crate_path: Path):
        """Turning include_tests off drops the integration test module."""
        snapshot = scan(sample_crate_path, ScanConfig(include_tests=False))

        assert snapshot.total_modules == 6
        assert snapshot.node_by_path("tests/integration.rs") is None
