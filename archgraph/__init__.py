"""Static architecture analysis for Rust crates."""

from .config_manager import ProjectConfig, ScanConfig
from .errors import ArchGraphError, ConfigError, ExtractionError, ScanError, SelectionError
from .models import ArchitectureSnapshot, DependencyEdge, ModuleNode
from .scanner import ArchitectureScanner, scan

__version__ = "0.1.0"

__all__ = [
    "ArchGraphError",
    "ArchitectureScanner",
    "ArchitectureSnapshot",
    "ConfigError",
    "DependencyEdge",
    "ExtractionError",
    "ModuleNode",
    "ProjectConfig",
    "ScanConfig",
    "ScanError",
    "SelectionError",
    "scan",
    "__version__",
]
