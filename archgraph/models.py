"""Data models produced by a scan: modules, dependency edges and snapshots.

Every type is a frozen dataclass holding tuples, so a snapshot handed to a
renderer cannot be changed in place. ``to_dict``/``from_dict`` give a
lossless JSON-compatible form with the field names renderers expect.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union


class ModuleType(str, Enum):
    CORE = "Core"
    DATA_PROCESSING = "DataProcessing"
    AI = "AI"
    PERFORMANCE = "Performance"
    VALIDATION = "Validation"
    EXECUTION = "Execution"
    INTEGRATION = "Integration"
    API = "API"
    PROCESSING = "Processing"
    SCAFFOLD = "Scaffold"
    TESTING = "Testing"
    UTILITIES = "Utilities"
    CONFIGURATION = "Configuration"
    DATABASE = "Database"
    NETWORK = "Network"
    SECURITY = "Security"
    LOGGING = "Logging"
    MONITORING = "Monitoring"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES.get(self, self.value)

    @property
    def color(self) -> str:
        return _COLORS[self]

    @property
    def icon(self) -> str:
        return _ICONS[self]


@dataclass(frozen=True)
class OtherKind:
    """Module kind outside the fixed set, identified by a free-form label."""

    label: str
    color = "#bdc3c7"
    icon = "📦"

    @property
    def display_name(self) -> str:
        return self.label


ModuleKind = Union[ModuleType, OtherKind]


_DISPLAY_NAMES = {ModuleType.DATA_PROCESSING: "Data Processing"}

_COLORS = {
    ModuleType.CORE: "#e74c3c",
    ModuleType.DATA_PROCESSING: "#3498db",
    ModuleType.AI: "#9b59b6",
    ModuleType.PERFORMANCE: "#f39c12",
    ModuleType.VALIDATION: "#2ecc71",
    ModuleType.EXECUTION: "#1abc9c",
    ModuleType.INTEGRATION: "#34495e",
    ModuleType.API: "#e67e22",
    ModuleType.PROCESSING: "#8e44ad",
    ModuleType.SCAFFOLD: "#16a085",
    ModuleType.TESTING: "#f1c40f",
    ModuleType.UTILITIES: "#95a5a6",
    ModuleType.CONFIGURATION: "#7f8c8d",
    ModuleType.DATABASE: "#27ae60",
    ModuleType.NETWORK: "#2980b9",
    ModuleType.SECURITY: "#c0392b",
    ModuleType.LOGGING: "#8e44ad",
    ModuleType.MONITORING: "#d35400",
}

_ICONS = {
    ModuleType.CORE: "⚙️",
    ModuleType.DATA_PROCESSING: "📊",
    ModuleType.AI: "🤖",
    ModuleType.PERFORMANCE: "⚡",
    ModuleType.VALIDATION: "✅",
    ModuleType.EXECUTION: "▶️",
    ModuleType.INTEGRATION: "🔗",
    ModuleType.API: "🌐",
    ModuleType.PROCESSING: "⚙️",
    ModuleType.SCAFFOLD: "🏗️",
    ModuleType.TESTING: "🧪",
    ModuleType.UTILITIES: "🛠️",
    ModuleType.CONFIGURATION: "⚙️",
    ModuleType.DATABASE: "🗄️",
    ModuleType.NETWORK: "🌐",
    ModuleType.SECURITY: "🔒",
    ModuleType.LOGGING: "📝",
    ModuleType.MONITORING: "📈",
}


def kind_to_json(kind: ModuleKind) -> Union[str, Dict[str, str]]:
    if isinstance(kind, OtherKind):
        return {"Other": kind.label}
    return kind.value


def kind_from_json(raw: Union[str, Dict[str, str]]) -> ModuleKind:
    if isinstance(raw, dict):
        if set(raw) != {"Other"}:
            raise ValueError(f"Unknown module kind: {raw!r}")
        return OtherKind(str(raw["Other"]))
    return ModuleType(raw)


class NodeStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ERROR = "Error"
    BUILDING = "Building"
    DEPRECATED = "Deprecated"
    EXPERIMENTAL = "Experimental"


class DependencyType(str, Enum):
    USES = "Uses"
    IMPLEMENTS = "Implements"
    EXTENDS = "Extends"
    IMPORTS = "Imports"
    DEPENDS_ON = "DependsOn"
    CALLS = "Calls"
    REFERENCES = "References"
    CONTAINS = "Contains"


# ------------------------------------------------------------------
# Structural records
# ------------------------------------------------------------------

@dataclass(frozen=True)
class FunctionInfo:
    name: str
    is_public: bool
    is_async: bool = False
    parameter_count: int = 0
    complexity: float = 1.0
    lines_of_code: int = 1
    documentation: Optional[str] = None
    attributes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "is_public": self.is_public,
            "is_async": self.is_async,
            "parameter_count": self.parameter_count,
            "complexity": self.complexity,
            "lines_of_code": self.lines_of_code,
            "documentation": self.documentation,
            "attributes": list(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionInfo":
        return cls(
            name=data["name"],
            is_public=data["is_public"],
            is_async=data.get("is_async", False),
            parameter_count=data.get("parameter_count", 0),
            complexity=data.get("complexity", 1.0),
            lines_of_code=data.get("lines_of_code", 1),
            documentation=data.get("documentation"),
            attributes=tuple(data.get("attributes", ())),
        )


@dataclass(frozen=True)
class StructInfo:
    name: str
    is_public: bool
    field_count: int = 0
    derives: Tuple[str, ...] = ()
    documentation: Optional[str] = None
    attributes: Tuple[str, ...] = ()
    generics: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "is_public": self.is_public,
            "field_count": self.field_count,
            "derives": list(self.derives),
            "documentation": self.documentation,
            "attributes": list(self.attributes),
            "generics": list(self.generics),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StructInfo":
        return cls(
            name=data["name"],
            is_public=data["is_public"],
            field_count=data.get("field_count", 0),
            derives=tuple(data.get("derives", ())),
            documentation=data.get("documentation"),
            attributes=tuple(data.get("attributes", ())),
            generics=tuple(data.get("generics", ())),
        )


@dataclass(frozen=True)
class EnumInfo:
    name: str
    is_public: bool
    variant_count: int = 0
    derives: Tuple[str, ...] = ()
    documentation: Optional[str] = None
    attributes: Tuple[str, ...] = ()
    generics: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "is_public": self.is_public,
            "variant_count": self.variant_count,
            "derives": list(self.derives),
            "documentation": self.documentation,
            "attributes": list(self.attributes),
            "generics": list(self.generics),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnumInfo":
        return cls(
            name=data["name"],
            is_public=data["is_public"],
            variant_count=data.get("variant_count", 0),
            derives=tuple(data.get("derives", ())),
            documentation=data.get("documentation"),
            attributes=tuple(data.get("attributes", ())),
            generics=tuple(data.get("generics", ())),
        )


@dataclass(frozen=True)
class TraitInfo:
    name: str
    is_public: bool
    method_count: int = 0
    documentation: Optional[str] = None
    attributes: Tuple[str, ...] = ()
    generics: Tuple[str, ...] = ()
    supertraits: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "is_public": self.is_public,
            "method_count": self.method_count,
            "documentation": self.documentation,
            "attributes": list(self.attributes),
            "generics": list(self.generics),
            "supertraits": list(self.supertraits),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TraitInfo":
        return cls(
            name=data["name"],
            is_public=data["is_public"],
            method_count=data.get("method_count", 0),
            documentation=data.get("documentation"),
            attributes=tuple(data.get("attributes", ())),
            generics=tuple(data.get("generics", ())),
            supertraits=tuple(data.get("supertraits", ())),
        )


@dataclass(frozen=True)
class Position:
    x: float
    y: float
    z: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        return cls(x=data["x"], y=data["y"], z=data.get("z", 0.0))


# ------------------------------------------------------------------
# Metrics
# ------------------------------------------------------------------

@dataclass(frozen=True)
class NodeMetrics:
    lines_of_code: int = 0
    complexity_score: float = 1.0
    test_coverage: float = 0.0
    function_count: int = 0
    struct_count: int = 0
    enum_count: int = 0
    trait_count: int = 0
    last_build_time: Optional[datetime] = None
    error_count: int = 0
    warning_count: int = 0
    dependency_count: int = 0
    dependent_count: int = 0
    cyclomatic_complexity: float = 1.0
    cognitive_complexity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lines_of_code": self.lines_of_code,
            "complexity_score": self.complexity_score,
            "test_coverage": self.test_coverage,
            "function_count": self.function_count,
            "struct_count": self.struct_count,
            "enum_count": self.enum_count,
            "trait_count": self.trait_count,
            "last_build_time": _dt_to_json(self.last_build_time),
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "dependency_count": self.dependency_count,
            "dependent_count": self.dependent_count,
            "cyclomatic_complexity": self.cyclomatic_complexity,
            "cognitive_complexity": self.cognitive_complexity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeMetrics":
        values = dict(data)
        values["last_build_time"] = _dt_from_json(values.get("last_build_time"))
        return cls(**values)


@dataclass(frozen=True)
class ArchitectureMetrics:
    total_functions: int = 0
    total_structs: int = 0
    total_enums: int = 0
    total_traits: int = 0
    max_complexity: float = 0.0
    min_complexity: float = 0.0
    dependency_density: float = 0.0
    modularity_score: float = 0.0
    maintainability_index: float = 0.0
    skipped_files: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_functions": self.total_functions,
            "total_structs": self.total_structs,
            "total_enums": self.total_enums,
            "total_traits": self.total_traits,
            "max_complexity": self.max_complexity,
            "min_complexity": self.min_complexity,
            "dependency_density": self.dependency_density,
            "modularity_score": self.modularity_score,
            "maintainability_index": self.maintainability_index,
            "skipped_files": self.skipped_files,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArchitectureMetrics":
        return cls(**data)


# ------------------------------------------------------------------
# Graph
# ------------------------------------------------------------------

@dataclass(frozen=True)
class ModuleNode:
    """One scanned source file.

    ``dependency_names`` are the raw references found in the text; they are
    resolved to node ids only when the graph is assembled.
    """

    id: str
    name: str
    kind: ModuleKind
    path: str
    dependency_names: Tuple[str, ...] = ()
    dependents: Tuple[str, ...] = ()
    status: NodeStatus = NodeStatus.ACTIVE
    metrics: NodeMetrics = field(default_factory=NodeMetrics)
    functions: Tuple[FunctionInfo, ...] = ()
    structs: Tuple[StructInfo, ...] = ()
    enums: Tuple[EnumInfo, ...] = ()
    traits: Tuple[TraitInfo, ...] = ()
    last_modified: Optional[datetime] = None
    position: Optional[Position] = None

    def with_position(self, x: float, y: float, z: float = 0.0) -> "ModuleNode":
        """Copy of this node carrying a layout hint."""
        return replace(self, position=Position(x, y, z))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": kind_to_json(self.kind),
            "path": self.path,
            "dependency_names": list(self.dependency_names),
            "dependents": list(self.dependents),
            "status": self.status.value,
            "metrics": self.metrics.to_dict(),
            "functions": [f.to_dict() for f in self.functions],
            "structs": [s.to_dict() for s in self.structs],
            "enums": [e.to_dict() for e in self.enums],
            "traits": [t.to_dict() for t in self.traits],
            "last_modified": _dt_to_json(self.last_modified),
            "position": self.position.to_dict() if self.position else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleNode":
        position = data.get("position")
        return cls(
            id=data["id"],
            name=data["name"],
            kind=kind_from_json(data["kind"]),
            path=data["path"],
            dependency_names=tuple(data.get("dependency_names", ())),
            dependents=tuple(data.get("dependents", ())),
            status=NodeStatus(data.get("status", NodeStatus.ACTIVE.value)),
            metrics=NodeMetrics.from_dict(data.get("metrics", {})),
            functions=tuple(FunctionInfo.from_dict(f) for f in data.get("functions", ())),
            structs=tuple(StructInfo.from_dict(s) for s in data.get("structs", ())),
            enums=tuple(EnumInfo.from_dict(e) for e in data.get("enums", ())),
            traits=tuple(TraitInfo.from_dict(t) for t in data.get("traits", ())),
            last_modified=_dt_from_json(data.get("last_modified")),
            position=Position.from_dict(position) if position else None,
        )


@dataclass(frozen=True)
class DependencyEdge:
    source: str
    target: str
    relationship: DependencyType = DependencyType.DEPENDS_ON
    strength: float = 1.0
    is_circular: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.source,
            "to": self.target,
            "relationship": self.relationship.value,
            "strength": self.strength,
            "is_circular": self.is_circular,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DependencyEdge":
        return cls(
            source=data["from"],
            target=data["to"],
            relationship=DependencyType(data["relationship"]),
            strength=data["strength"],
            is_circular=data["is_circular"],
        )


@dataclass(frozen=True)
class ArchitectureSnapshot:
    """Immutable result of one scan."""

    nodes: Mapping[str, ModuleNode]
    edges: Tuple[DependencyEdge, ...]
    last_scan: datetime
    total_modules: int = 0
    total_lines: int = 0
    average_complexity: float = 0.0
    circular_dependencies: Tuple[Tuple[str, ...], ...] = ()
    metrics: ArchitectureMetrics = field(default_factory=ArchitectureMetrics)

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", MappingProxyType(dict(self.nodes)))
        object.__setattr__(self, "edges", tuple(self.edges))
        object.__setattr__(
            self,
            "circular_dependencies",
            tuple(tuple(cycle) for cycle in self.circular_dependencies),
        )

    def find_nodes(self, name: str) -> List[ModuleNode]:
        return [node for node in self.nodes.values() if node.name == name]

    def node_by_path(self, path: str) -> Optional[ModuleNode]:
        for node in self.nodes.values():
            if node.path == path:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": {node_id: node.to_dict() for node_id, node in self.nodes.items()},
            "edges": [edge.to_dict() for edge in self.edges],
            "last_scan": _dt_to_json(self.last_scan),
            "total_modules": self.total_modules,
            "total_lines": self.total_lines,
            "average_complexity": self.average_complexity,
            "circular_dependencies": [list(cycle) for cycle in self.circular_dependencies],
            "metrics": self.metrics.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArchitectureSnapshot":
        return cls(
            nodes={node_id: ModuleNode.from_dict(raw) for node_id, raw in data["nodes"].items()},
            edges=tuple(DependencyEdge.from_dict(e) for e in data["edges"]),
            last_scan=_dt_from_json(data["last_scan"]),
            total_modules=data["total_modules"],
            total_lines=data["total_lines"],
            average_complexity=data["average_complexity"],
            circular_dependencies=_cycles(data.get("circular_dependencies", ())),
            metrics=ArchitectureMetrics.from_dict(data["metrics"]),
        )

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "ArchitectureSnapshot":
        return cls.from_dict(json.loads(text))


def _cycles(raw: Iterable[Iterable[str]]) -> Tuple[Tuple[str, ...], ...]:
    return tuple(tuple(cycle) for cycle in raw)


def _dt_to_json(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt_from_json(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None
