"""Project configuration for archgraph, loaded from TOML, YAML or JSON files."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
import yaml

from .config import (
    CONFIG_FILES,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_SCAN_INTERVAL,
    MANIFEST_FILE,
    OPTIONAL_SECTION_PATTERNS,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class ScanConfig:
    """Values consumed by the file selector and the scan orchestrator."""

    include_tests: bool = True
    include_examples: bool = False
    include_benches: bool = False
    include_docs: bool = False
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    include_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE_PATTERNS))
    max_file_size: Optional[int] = DEFAULT_MAX_FILE_SIZE
    follow_symlinks: bool = False
    # Informational: read by whoever schedules rescans, never by the scanner.
    scan_interval: int = DEFAULT_SCAN_INTERVAL

    def effective_exclude_patterns(self) -> List[str]:
        """User excludes plus the ones implied by disabled ``include_*`` flags."""
        patterns = list(self.exclude_patterns)
        for flag, pattern in OPTIONAL_SECTION_PATTERNS.items():
            if not getattr(self, flag) and pattern not in patterns:
                patterns.append(pattern)
        return patterns


@dataclass
class ProjectSettings:
    name: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    repository: Optional[str] = None


@dataclass
class ProjectConfig:
    project: ProjectSettings = field(default_factory=ProjectSettings)
    scanning: ScanConfig = field(default_factory=ScanConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {"project": asdict(self.project), "scanning": asdict(self.scanning)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfig":
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a table/mapping")
        return cls(
            project=_build_section(ProjectSettings, data.get("project") or {}, "project"),
            scanning=_build_section(ScanConfig, data.get("scanning") or {}, "scanning"),
        )


# ------------------------------------------------------------------
# Loading
# ------------------------------------------------------------------

def find_config_file(directory: Path) -> Optional[Path]:
    """Return the first well-known config file inside *directory*, if any."""
    for name in CONFIG_FILES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path) -> ProjectConfig:
    """Load a configuration file; the format is chosen by extension.

    Raises:
        ConfigError: if the file cannot be read or parsed, or holds values
            of the wrong type.
    """
    data = _read_structured(path)
    try:
        return ProjectConfig.from_dict(data)
    except ConfigError as exc:
        raise ConfigError(f"Invalid config {path}: {exc}") from exc


def load_project_config(directory: Path) -> ProjectConfig:
    """Resolve the configuration for a project directory.

    Order: an explicit archgraph config file, then package metadata from
    ``Cargo.toml``, then built-in defaults.
    """
    config_file = find_config_file(directory)
    if config_file is not None:
        logger.debug("Using config file %s", config_file)
        return load_config(config_file)

    manifest = directory / MANIFEST_FILE
    if manifest.is_file():
        return config_from_manifest(manifest)

    return ProjectConfig()


def resolve_config(project_dir: Path, config_file: Optional[Path] = None) -> ProjectConfig:
    """An explicitly given config file, else whatever the project directory provides."""
    if config_file is not None:
        return load_config(config_file)
    if not project_dir.is_dir():
        return ProjectConfig()
    return load_project_config(project_dir)


def config_from_manifest(manifest: Path) -> ProjectConfig:
    """Default scan settings plus project metadata from a Cargo manifest."""
    data = _read_structured(manifest)
    config = ProjectConfig()
    package = data.get("package")
    if isinstance(package, dict):
        authors = package.get("authors")
        config.project = ProjectSettings(
            name=_opt_str(package.get("name")),
            description=_opt_str(package.get("description")),
            version=_opt_str(package.get("version")),
            authors=[str(a) for a in authors] if isinstance(authors, list) else [],
            repository=_opt_str(package.get("repository")),
        )
    return config


def save_config(config: ProjectConfig, path: Path) -> None:
    """Write *config* to *path* in the format implied by its extension."""
    payload = config.to_dict()
    suffix = path.suffix.lower()
    if suffix == ".toml":
        # TOML has no null; drop unset optional values.
        text = toml.dumps(_strip_none(payload))
    elif suffix in (".yaml", ".yml"):
        text = yaml.safe_dump(payload, sort_keys=False)
    elif suffix == ".json":
        text = json.dumps(payload, indent=2)
    else:
        raise ConfigError(f"Unsupported config file format: {path.suffix or path.name}")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to write config file {path}: {exc}") from exc


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _read_structured(path: Path) -> Dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc

    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            data = toml.loads(content)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif suffix == ".json":
            data = json.loads(content)
        else:
            raise ConfigError(f"Unsupported config file format: {path.suffix or path.name}")
    except (toml.TomlDecodeError, yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root in {path} must be a table/mapping")
    return data


_LIST_FIELDS = {"exclude_patterns", "include_patterns", "authors"}
_BOOL_FIELDS = {"include_tests", "include_examples", "include_benches", "include_docs", "follow_symlinks"}
_INT_FIELDS = {"scan_interval"}
_OPTIONAL_INT_FIELDS = {"max_file_size"}


def _build_section(cls, raw: Any, section: str):
    if not isinstance(raw, dict):
        raise ConfigError(f"[{section}] must be a table/mapping")

    known = {f.name for f in fields(cls)}
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            logger.warning("Ignoring unknown config key '%s.%s'", section, key)
            continue
        values[key] = _check_value(section, key, value)
    return cls(**values)


def _check_value(section: str, key: str, value: Any) -> Any:
    where = f"{section}.{key}"
    if key in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise ConfigError(f"'{where}' must be a boolean")
        return value
    if key in _LIST_FIELDS:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"'{where}' must be a list of strings")
        return list(value)
    if key in _INT_FIELDS or key in _OPTIONAL_INT_FIELDS:
        if value is None and key in _OPTIONAL_INT_FIELDS:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(f"'{where}' must be a non-negative integer")
        return value
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"'{where}' must be a string")
    return value


def _opt_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _strip_none(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: _strip_none(v) for k, v in data.items() if v is not None}
    return data
