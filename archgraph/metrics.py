"""Per-module text metrics and whole-graph architecture metrics.

Everything here is a keyword-counting heuristic over raw Rust source; no
token stream is built, so keywords inside comments and string literals are
counted like any other occurrence.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Mapping, Sequence

from .models import ArchitectureMetrics, DependencyEdge, ModuleNode, NodeMetrics

# (needle, weight) pairs added to the base complexity score of 1.0.
_BRANCH_WEIGHTS = (
    ("if ", 0.5),
    ("match ", 0.8),
    ("for ", 0.6),
    ("while ", 0.7),
    ("loop ", 0.8),
)
_ERROR_PRONE_WEIGHTS = (
    ("?.", 0.2),
    ("unwrap()", 0.1),
    ("expect(", 0.1),
)
_NESTED_BRACES_WEIGHT = 0.1
_ASYNC_WEIGHT = 0.5

_DECISION_POINTS = ("if ", "match ", "for ", "while ", "loop ", "&&", "||")

# Line prefix -> base cognitive weight; nesting level is added on top.
_COGNITIVE_WEIGHTS = (
    ("if ", 1.0),
    ("match ", 2.0),
    ("for ", 1.0),
    ("while ", 1.0),
    ("loop ", 1.5),
)


def calculate_node_metrics(content: str) -> NodeMetrics:
    """Metrics for one file. Dependency counts stay 0 until assembly."""
    return NodeMetrics(
        lines_of_code=count_lines_of_code(content),
        complexity_score=calculate_complexity(content),
        test_coverage=0.0,
        function_count=content.count("fn "),
        struct_count=content.count("struct "),
        enum_count=content.count("enum "),
        trait_count=content.count("trait "),
        last_build_time=None,
        error_count=count_errors(content),
        warning_count=count_warnings(content),
        cyclomatic_complexity=calculate_cyclomatic_complexity(content),
        cognitive_complexity=calculate_cognitive_complexity(content),
    )


def count_lines_of_code(content: str) -> int:
    """Non-blank lines that do not open with a ``//`` or ``/*`` comment."""
    count = 0
    for line in content.split("\n"):
        stripped = line.strip()
        if stripped and not stripped.startswith("//") and not stripped.startswith("/*"):
            count += 1
    return count


def calculate_complexity(content: str) -> float:
    complexity = 1.0
    for needle, weight in _BRANCH_WEIGHTS:
        complexity += content.count(needle) * weight

    complexity += content.count("{{") * _NESTED_BRACES_WEIGHT

    if "async" in content:
        complexity += _ASYNC_WEIGHT

    for needle, weight in _ERROR_PRONE_WEIGHTS:
        complexity += content.count(needle) * weight

    return complexity


def calculate_cyclomatic_complexity(content: str) -> float:
    return 1.0 + sum(content.count(needle) for needle in _DECISION_POINTS)


def calculate_cognitive_complexity(content: str) -> float:
    """Nesting-weighted score of control-flow lines.

    Nesting goes up on a line holding ``{`` and down (never below zero) on a
    line holding ``}``, both before the line itself is scored.
    """
    complexity = 0.0
    nesting = 0
    for line in content.split("\n"):
        stripped = line.strip()
        if "{" in stripped:
            nesting += 1
        if "}" in stripped:
            nesting = max(nesting - 1, 0)

        for prefix, weight in _COGNITIVE_WEIGHTS:
            if stripped.startswith(prefix):
                complexity += weight + nesting
                break
    return complexity


def count_errors(content: str) -> int:
    return content.count("panic!") + content.count("unwrap()")


def count_warnings(content: str) -> int:
    return content.count("#[warn(") + content.count("#[allow(")


# ------------------------------------------------------------------
# Whole-graph metrics
# ------------------------------------------------------------------

def calculate_architecture_metrics(
    nodes: Mapping[str, ModuleNode],
    edges: Sequence[DependencyEdge],
    skipped_files: int = 0,
) -> ArchitectureMetrics:
    modules = list(nodes.values())
    complexities = [n.metrics.complexity_score for n in modules]

    max_complexity = max(complexities, default=0.0)
    min_complexity = min(complexities, default=0.0)

    return ArchitectureMetrics(
        total_functions=sum(n.metrics.function_count for n in modules),
        total_structs=sum(n.metrics.struct_count for n in modules),
        total_enums=sum(n.metrics.enum_count for n in modules),
        total_traits=sum(n.metrics.trait_count for n in modules),
        max_complexity=max_complexity if math.isfinite(max_complexity) else 0.0,
        min_complexity=min_complexity if math.isfinite(min_complexity) else 0.0,
        dependency_density=dependency_density(len(modules), len(edges)),
        modularity_score=modularity_score(modules),
        maintainability_index=maintainability_index(modules),
        skipped_files=skipped_files,
    )


def dependency_density(node_count: int, edge_count: int) -> float:
    """Edges over the N*(N-1) possible directed pairs; 0 for N <= 1."""
    if node_count <= 1:
        return 0.0
    return edge_count / (node_count * (node_count - 1))


def modularity_score(modules: Sequence[ModuleNode]) -> float:
    """Normalized Shannon entropy of the module-kind distribution."""
    if not modules:
        return 0.0

    kind_counts = Counter(node.kind for node in modules)
    total = len(modules)
    entropy = 0.0
    for count in kind_counts.values():
        probability = count / total
        entropy -= probability * math.log2(probability)

    return entropy / max(math.log2(len(kind_counts)), 1.0)


def maintainability_index(modules: Sequence[ModuleNode]) -> float:
    """Mean of a size factor and a complexity factor, each capped at 1."""
    if not modules:
        return 0.0

    total_lines = sum(n.metrics.lines_of_code for n in modules)
    avg_complexity = sum(n.metrics.complexity_score for n in modules) / len(modules)

    lines_factor = min(1000.0 / max(total_lines, 1), 1.0)
    complexity_factor = min(10.0 / max(avg_complexity, 1.0), 1.0)
    return (lines_factor + complexity_factor) / 2.0
