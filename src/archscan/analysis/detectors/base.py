"""Shared data types for structural pattern detectors."""

from dataclasses import dataclass, field


@dataclass
class Finding:
    category: str  # "circular_dependency", "dead_code", "god_module", "layering_violation", "coupling"
    severity: str  # "low", "medium", "high"
    title: str
    description: str
    evidence: dict = field(default_factory=dict)
    suggestion: str | None = None


@dataclass(frozen=True)
class FileNode:
    """Per-file metrics slice read by the detectors."""

    path: str
    line_count: int = 0
    complexity: int = 0
    symbol_count: int = 0
    efferent_coupling: int = 0
    afferent_coupling: int = 0
    cohesion: float = 1.0


@dataclass(frozen=True)
class EdgeNode:
    source_path: str
    target_path: str | None
    kind: str = "import"


@dataclass(frozen=True)
class SymbolNode:
    id: int
    file_path: str
    name: str
    kind: str
    exported: bool
    start_line: int = 0

