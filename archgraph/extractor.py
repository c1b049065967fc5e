"""Heuristic fact extraction from Rust source text.

Nothing here builds a syntax tree. Names, kinds, dependencies and item
lists all come from regular expressions and substring checks, so the
results over- or under-count when keywords appear in comments, strings or
macro bodies.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Tuple

from .errors import ExtractionError
from .metrics import calculate_node_metrics
from .models import (
    EnumInfo,
    FunctionInfo,
    ModuleKind,
    ModuleNode,
    ModuleType,
    NodeStatus,
    StructInfo,
    TraitInfo,
)

logger = logging.getLogger(__name__)

MODULE_DECL_RE = re.compile(r"pub\s+mod\s+(\w+)|mod\s+(\w+)")
CRATE_USE_RE = re.compile(r"use\s+crate::([^;]+)")
MOD_RE = re.compile(r"mod\s+(\w+)")
FUNCTION_RE = re.compile(r"(?:pub\s+)?(?:async\s+)?fn\s+(\w+)\s*\([^)]*\)")
STRUCT_RE = re.compile(r"(?:pub\s+)?struct\s+(\w+)")
ENUM_RE = re.compile(r"(?:pub\s+)?enum\s+(\w+)")
TRAIT_RE = re.compile(r"(?:pub\s+)?trait\s+(\w+)")

# Checked in order against the lower-cased relative path; first hit wins.
PATH_KIND_RULES: Tuple[Tuple[Tuple[str, ...], ModuleType], ...] = (
    (("test", "tests"), ModuleType.TESTING),
    (("example", "examples"), ModuleType.UTILITIES),
    (("bench", "benches"), ModuleType.PERFORMANCE),
    (("config", "settings"), ModuleType.CONFIGURATION),
    (("api", "routes"), ModuleType.API),
    (("db", "database"), ModuleType.DATABASE),
    (("network", "net"), ModuleType.NETWORK),
    (("auth", "security"), ModuleType.SECURITY),
    (("log", "logging"), ModuleType.LOGGING),
    (("monitor", "metrics"), ModuleType.MONITORING),
)

# Every marker of a rule must be present in the content.
CONTENT_KIND_RULES: Tuple[Tuple[Tuple[str, ...], ModuleType], ...] = (
    (("async", "tokio"), ModuleType.EXECUTION),
    (("serde", "Serialize"), ModuleType.DATA_PROCESSING),
    (("trait", "async"), ModuleType.INTEGRATION),
    (("struct", "impl"), ModuleType.CORE),
)


@dataclass(frozen=True)
class ModuleFacts:
    """Everything the extractor learns from one file's text."""

    name: str
    kind: ModuleKind
    dependency_names: Tuple[str, ...]
    functions: Tuple[FunctionInfo, ...]
    structs: Tuple[StructInfo, ...]
    enums: Tuple[EnumInfo, ...]
    traits: Tuple[TraitInfo, ...]


def extract_facts(content: str, path: str) -> ModuleFacts:
    """Extract name, kind, dependencies and item lists from *content*.

    *path* is the file's location relative to the scan root; it feeds the
    fallback module name and the path-based kind rules.
    """
    return ModuleFacts(
        name=extract_module_name(content, path),
        kind=infer_module_kind(path, content),
        dependency_names=tuple(extract_dependencies(content)),
        functions=tuple(extract_functions(content)),
        structs=tuple(extract_structs(content)),
        enums=tuple(extract_enums(content)),
        traits=tuple(extract_traits(content)),
    )


def parse_module_file(file_path: Path, project_root: Path) -> ModuleNode:
    """Read one source file and build a fresh :class:`ModuleNode` for it.

    Raises:
        ExtractionError: if the file cannot be read, is not valid UTF-8, or
            its metadata cannot be read.
    """
    try:
        content = file_path.read_text(encoding="utf-8")
        stat = file_path.stat()
    except (OSError, UnicodeDecodeError) as exc:
        raise ExtractionError(f"Failed to read {file_path}: {exc}", path=file_path) from exc

    try:
        rel_path = file_path.relative_to(project_root).as_posix()
    except ValueError:
        rel_path = file_path.as_posix()

    facts = extract_facts(content, rel_path)
    return ModuleNode(
        id=str(uuid.uuid4()),
        name=facts.name,
        kind=facts.kind,
        path=rel_path,
        dependency_names=facts.dependency_names,
        dependents=(),
        status=NodeStatus.ACTIVE,
        metrics=calculate_node_metrics(content),
        functions=facts.functions,
        structs=facts.structs,
        enums=facts.enums,
        traits=facts.traits,
        last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        position=None,
    )


def extract_module_name(content: str, path: str) -> str:
    """First declared ``mod`` name in the file, else the file stem."""
    match = MODULE_DECL_RE.search(content)
    if match:
        return match.group(1) or match.group(2)
    stem = Path(path).stem
    return stem or "unknown"


def infer_module_kind(path: str, content: str) -> ModuleKind:
    lowered = path.lower()
    for needles, kind in PATH_KIND_RULES:
        if any(needle in lowered for needle in needles):
            return kind

    for markers, kind in CONTENT_KIND_RULES:
        if all(marker in content for marker in markers):
            return kind

    return ModuleType.CORE


def extract_dependencies(content: str) -> List[str]:
    """Raw crate-internal references: ``use crate::...`` targets, then ``mod`` names.

    Repeated references are kept; edge strength leans on that.
    """
    dependencies = [m.group(1) for m in CRATE_USE_RE.finditer(content)]
    dependencies.extend(m.group(1) for m in MOD_RE.finditer(content))
    return dependencies


def extract_functions(content: str) -> List[FunctionInfo]:
    functions: List[FunctionInfo] = []
    for match in FUNCTION_RE.finditer(content):
        name = match.group(1)
        functions.append(FunctionInfo(
            name=name,
            is_public=f"pub fn {name}" in content,
            is_async=f"async fn {name}" in content,
            parameter_count=_parameter_count(content, name),
        ))
    return functions


def extract_structs(content: str) -> List[StructInfo]:
    return [
        StructInfo(
            name=name,
            is_public=f"pub struct {name}" in content,
            # Counts declaration headers, not fields.
            field_count=content.count(f"struct {name}"),
        )
        for name in _captured_names(STRUCT_RE, content)
    ]


def extract_enums(content: str) -> List[EnumInfo]:
    return [
        EnumInfo(
            name=name,
            is_public=f"pub enum {name}" in content,
            variant_count=content.count(f"enum {name}"),
        )
        for name in _captured_names(ENUM_RE, content)
    ]


def extract_traits(content: str) -> List[TraitInfo]:
    return [
        TraitInfo(
            name=name,
            is_public=f"pub trait {name}" in content,
            method_count=content.count(f"trait {name}"),
        )
        for name in _captured_names(TRAIT_RE, content)
    ]


def _captured_names(pattern: re.Pattern, content: str) -> List[str]:
    return [m.group(1) for m in pattern.finditer(content)]


def _parameter_count(content: str, name: str) -> int:
    # Uses the first signature with this name, like the visibility checks.
    match = re.search(rf"fn\s+{re.escape(name)}\s*\(([^)]*)\)", content)
    if not match:
        return 0
    params = [p for p in match.group(1).split(",") if p.strip()]
    return len(params)
