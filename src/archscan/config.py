"""TOML config loader and validation."""

import dataclasses
import tomllib
from dataclasses import dataclass
from pathlib import Path

from archscan.analysis.detectors.coupling import CouplingThresholds
from archscan.analysis.detectors.dead_code import DEFAULT_MEDIUM_THRESHOLD
from archscan.analysis.detectors.god_modules import GodModuleThresholds
from archscan.analysis.detectors.layering import DEFAULT_LAYER_SKIP_GAP
from archscan.constants import DATA_DIR

DEFAULT_MAX_FILE_SIZE = 1_048_576  # 1 MB

DEFAULT_SKIP_PATTERNS: tuple[str, ...] = (
    ".git/**",
    f"{DATA_DIR}/**",
    "**/node_modules/**",
    "**/__pycache__/**",
    "**/.venv/**",
    "**/venv/**",
    "dist/**",
    "build/**",
    "vendor/**",
    "**/*.min.js",
    "**/*.min.css",
    "**/*.lock",
    "**/*.map",
    "**/*.pyc",
)


@dataclass(frozen=True)
class StructuralConfig:
    skip_patterns: tuple[str, ...] = DEFAULT_SKIP_PATTERNS
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    respect_gitignore: bool = True


@dataclass(frozen=True)
class DetectorConfig:
    coupling: CouplingThresholds = CouplingThresholds()
    god_module: GodModuleThresholds = GodModuleThresholds()
    dead_code_medium_threshold: int = DEFAULT_MEDIUM_THRESHOLD
    layer_skip_gap: int = DEFAULT_LAYER_SKIP_GAP


def load_config(repo_path: Path) -> dict | None:
    """Load .archscan/config.toml. Returns None if the file doesn't exist."""
    config_file = repo_path / DATA_DIR / "config.toml"
    if not config_file.exists():
        return None
    with open(config_file, "rb") as f:
        return tomllib.load(f)


def _section(config: dict | None, *keys: str) -> dict:
    """Walk nested tables, returning {} for absent sections."""
    node = config or {}
    path = []
    for key in keys:
        path.append(key)
        node = node.get(key, {})
        if not isinstance(node, dict):
            raise ValueError(
                f"[{'.'.join(path)}] in config.toml must be a table, got {type(node).__name__}"
            )
    return node


def _check_keys(section: dict, allowed: set[str], name: str) -> None:
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(
            f"Unknown key(s) in [{name}]: {', '.join(sorted(unknown))}. "
            f"Valid keys: {', '.join(sorted(allowed))}"
        )


def _number(value, key: str, section: str, *, integer: bool) -> int | float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"[{section}] {key} must be a number, got {value!r}")
    if integer and not isinstance(value, int):
        raise ValueError(f"[{section}] {key} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"[{section}] {key} must be >= 0, got {value!r}")
    return value


def _thresholds(cls, section: dict, name: str):
    fields = {f.name: f for f in dataclasses.fields(cls)}
    _check_keys(section, set(fields), name)
    values = {}
    for key, value in section.items():
        integer = fields[key].type in (int, "int")
        values[key] = _number(value, key, name, integer=integer)
    return cls(**values)


def structural_config(config: dict | None) -> StructuralConfig:
    """Build the walker settings from [structural], with defaults for absent keys."""
    section = _section(config, "structural")
    _check_keys(section, {"skip_patterns", "max_file_size", "respect_gitignore"}, "structural")

    skip_patterns = section.get("skip_patterns", list(DEFAULT_SKIP_PATTERNS))
    if not isinstance(skip_patterns, list) or not all(isinstance(p, str) for p in skip_patterns):
        raise ValueError("[structural] skip_patterns must be a list of strings")

    max_file_size = _number(
        section.get("max_file_size", DEFAULT_MAX_FILE_SIZE),
        "max_file_size", "structural", integer=True,
    )

    respect_gitignore = section.get("respect_gitignore", True)
    if not isinstance(respect_gitignore, bool):
        raise ValueError("[structural] respect_gitignore must be true or false")

    return StructuralConfig(
        skip_patterns=tuple(skip_patterns),
        max_file_size=max_file_size,
        respect_gitignore=respect_gitignore,
    )


def detector_config(config: dict | None) -> DetectorConfig:
    """Build detector thresholds from [detectors.*]. Every threshold is overridable."""
    section = _section(config, "detectors")
    _check_keys(section, {"coupling", "god_module", "dead_code", "layering"}, "detectors")

    coupling = _thresholds(
        CouplingThresholds, _section(config, "detectors", "coupling"), "detectors.coupling",
    )
    god_module = _thresholds(
        GodModuleThresholds, _section(config, "detectors", "god_module"), "detectors.god_module",
    )

    dead_code = _section(config, "detectors", "dead_code")
    _check_keys(dead_code, {"medium_threshold"}, "detectors.dead_code")
    medium_threshold = _number(
        dead_code.get("medium_threshold", DEFAULT_MEDIUM_THRESHOLD),
        "medium_threshold", "detectors.dead_code", integer=True,
    )

    layering = _section(config, "detectors", "layering")
    _check_keys(layering, {"layer_skip_gap"}, "detectors.layering")
    layer_skip_gap = _number(
        layering.get("layer_skip_gap", DEFAULT_LAYER_SKIP_GAP),
        "layer_skip_gap", "detectors.layering", integer=True,
    )

    return DetectorConfig(
        coupling=coupling,
        god_module=god_module,
        dead_code_medium_threshold=medium_threshold,
        layer_skip_gap=layer_skip_gap,
    )


def create_default_config(repo_path: Path) -> Path:
    """Create a default config.toml in .archscan/. Returns the path."""
    data_dir = repo_path / DATA_DIR
    data_dir.mkdir(parents=True, exist_ok=True)
    config_path = data_dir / "config.toml"
    if config_path.exists():
        raise FileExistsError(f"Config already exists: {config_path}")

    patterns = "".join(f'    "{p}",\n' for p in DEFAULT_SKIP_PATTERNS)
    coupling = CouplingThresholds()
    god = GodModuleThresholds()
    config_path.write_text(
        '[structural]\n'
        '# Globs are anchored at the repo root: * stays inside one path segment,\n'
        '# ** spans any number of segments.\n'
        f'skip_patterns = [\n{patterns}]\n'
        f'max_file_size = {DEFAULT_MAX_FILE_SIZE}\n'
        'respect_gitignore = true\n'
        '\n'
        '[detectors.coupling]\n'
        f'max_efferent_coupling = {coupling.max_efferent_coupling}\n'
        f'max_afferent_coupling = {coupling.max_afferent_coupling}\n'
        f'max_total_coupling = {coupling.max_total_coupling}\n'
        f'min_cohesion = {coupling.min_cohesion}\n'
        '\n'
        '[detectors.god_module]\n'
        f'max_symbols = {god.max_symbols}\n'
        f'max_lines = {god.max_lines}\n'
        f'max_complexity = {god.max_complexity}\n'
        '\n'
        '[detectors.dead_code]\n'
        '# More unused exports than this in one file raises severity to medium\n'
        f'medium_threshold = {DEFAULT_MEDIUM_THRESHOLD}\n'
        '\n'
        '[detectors.layering]\n'
        '# Upward dependencies spanning at least this many layers are also reported as layer skips\n'
        f'layer_skip_gap = {DEFAULT_LAYER_SKIP_GAP}\n'
    )
    return config_path
