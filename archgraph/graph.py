"""Dependency graph assembly, edge scoring and cycle detection."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from .metrics import dependency_density
from .models import DependencyEdge, DependencyType, ModuleNode, ModuleType

logger = logging.getLogger(__name__)

Cycle = Tuple[str, ...]

# (source kind, target kind) pairs classified as "Uses"; None matches any kind.
_USES_PAIRS = (
    (ModuleType.API, ModuleType.CORE),
    (ModuleType.CORE, ModuleType.DATA_PROCESSING),
    (ModuleType.EXECUTION, ModuleType.CORE),
    (ModuleType.INTEGRATION, ModuleType.API),
    (ModuleType.TESTING, None),
)


@dataclass(frozen=True)
class DependencyMetrics:
    total_dependencies: int
    circular_dependencies: int
    dependency_density: float
    average_dependencies_per_node: float
    most_connected_node: Optional[str]


class DependencyAnalyzer:
    """Turns raw dependency names into edges and finds cycles among them.

    Pure computation over in-memory nodes; nothing here raises.
    """

    def assemble(self, nodes: Mapping[str, ModuleNode]) -> Tuple[List[DependencyEdge], List[Cycle]]:
        """Resolve edges, detect cycles and flag the circular edges."""
        edges = self._resolve_edges(nodes)
        cycles = self.find_circular_dependencies(edges)
        return mark_circular_edges(edges, cycles), cycles

    def analyze_dependencies(self, nodes: Mapping[str, ModuleNode]) -> List[DependencyEdge]:
        edges, _ = self.assemble(nodes)
        return edges

    def find_circular_dependencies(self, edges: Sequence[DependencyEdge]) -> List[Cycle]:
        """Depth-first search reporting every back edge as a cycle path.

        The reported path runs from the back edge's target to the node
        being expanded. Cycles are not deduplicated or minimized, so what
        is reported depends on edge order.
        """
        graph: Dict[str, List[str]] = {}
        for edge in edges:
            graph.setdefault(edge.source, []).append(edge.target)

        visited: Set[str] = set()
        cycles: List[Cycle] = []

        for start in graph:
            if start in visited:
                continue

            # Iterative form of the recursive walk, same visiting order.
            visited.add(start)
            path: List[str] = [start]
            on_path: Set[str] = {start}
            pending: List[Iterator[str]] = [iter(graph.get(start, ()))]

            while pending:
                descended = False
                for neighbor in pending[-1]:
                    if neighbor not in visited:
                        visited.add(neighbor)
                        on_path.add(neighbor)
                        path.append(neighbor)
                        pending.append(iter(graph.get(neighbor, ())))
                        descended = True
                        break
                    if neighbor in on_path:
                        cycles.append(tuple(path[path.index(neighbor):]))
                if not descended:
                    pending.pop()
                    on_path.discard(path.pop())

        return cycles

    def determine_relationship_type(self, source: ModuleNode, target: ModuleNode) -> DependencyType:
        for source_kind, target_kind in _USES_PAIRS:
            if source.kind == source_kind and (target_kind is None or target.kind == target_kind):
                return DependencyType.USES
        return DependencyType.DEPENDS_ON

    def calculate_dependency_strength(self, source: ModuleNode, target: ModuleNode) -> float:
        # Base 1.0 already reaches the cap, so every edge scores 1.0.
        strength = 1.0
        strength += len(source.dependency_names) * 0.1
        if target.kind == ModuleType.CORE:
            strength += 0.5
        if source.kind == ModuleType.API:
            strength += 0.3
        return min(strength, 1.0)

    def _resolve_edges(self, nodes: Mapping[str, ModuleNode]) -> List[DependencyEdge]:
        # First node (in map order) wins when several share a name.
        by_name: Dict[str, ModuleNode] = {}
        for node in nodes.values():
            by_name.setdefault(node.name, node)

        edges: List[DependencyEdge] = []
        for source_id, source in nodes.items():
            for dep_name in source.dependency_names:
                target = by_name.get(dep_name)
                if target is None:
                    logger.debug("Unresolved dependency '%s' in %s", dep_name, source.path)
                    continue
                edges.append(DependencyEdge(
                    source=source_id,
                    target=target.id,
                    relationship=self.determine_relationship_type(source, target),
                    strength=self.calculate_dependency_strength(source, target),
                    is_circular=False,
                ))
        return edges


def mark_circular_edges(edges: Sequence[DependencyEdge], cycles: Sequence[Cycle]) -> List[DependencyEdge]:
    """Flag edges whose endpoints are adjacent, either way round, in a cycle path."""
    pairs: Set[Tuple[str, str]] = set()
    for cycle in cycles:
        for a, b in zip(cycle, cycle[1:]):
            pairs.add((a, b))
            pairs.add((b, a))

    return [
        replace(edge, is_circular=(edge.source, edge.target) in pairs)
        for edge in edges
    ]


def link_dependents(
    nodes: Mapping[str, ModuleNode],
    edges: Sequence[DependencyEdge],
) -> Dict[str, ModuleNode]:
    """Copies of *nodes* with reverse edges and dependency counts filled in."""
    dependents: Dict[str, List[str]] = {node_id: [] for node_id in nodes}
    targets: Dict[str, Set[str]] = {node_id: set() for node_id in nodes}

    for edge in edges:
        if edge.source not in dependents[edge.target]:
            dependents[edge.target].append(edge.source)
        targets[edge.source].add(edge.target)

    linked: Dict[str, ModuleNode] = {}
    for node_id, node in nodes.items():
        metrics = replace(
            node.metrics,
            dependency_count=len(targets[node_id]),
            dependent_count=len(dependents[node_id]),
        )
        linked[node_id] = replace(node, dependents=tuple(dependents[node_id]), metrics=metrics)
    return linked


def calculate_dependency_metrics(
    nodes: Mapping[str, ModuleNode],
    edges: Sequence[DependencyEdge],
    cycles: Optional[Sequence[Cycle]] = None,
) -> DependencyMetrics:
    if cycles is None:
        cycles = DependencyAnalyzer().find_circular_dependencies(edges)

    connections: Counter = Counter()
    for edge in edges:
        connections[edge.source] += 1
        connections[edge.target] += 1
    most_connected = connections.most_common(1)[0][0] if connections else None

    return DependencyMetrics(
        total_dependencies=len(edges),
        circular_dependencies=len(cycles),
        dependency_density=dependency_density(len(nodes), len(edges)),
        average_dependencies_per_node=len(edges) / len(nodes) if nodes else 0.0,
        most_connected_node=most_connected,
    )
