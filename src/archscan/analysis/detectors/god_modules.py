"""Oversized files: too many symbols, lines, or too much complexity."""

from dataclasses import dataclass

from archscan.analysis.detectors.base import FileNode, Finding

CATEGORY = "god_module"


@dataclass(frozen=True)
class GodModuleThresholds:
    max_symbols: int = 40
    max_lines: int = 1000
    max_complexity: int = 150


def _severity(worst_ratio: float) -> str:
    if worst_ratio >= 2.0:
        return "high"
    if worst_ratio >= 1.5:
        return "medium"
    return "low"


def detect_god_modules(
    files: list[FileNode],
    thresholds: GodModuleThresholds = GodModuleThresholds(),
) -> list[Finding]:
    findings = []
    for f in sorted(files, key=lambda n: n.path):
        checks = (
            ("symbols", f.symbol_count, thresholds.max_symbols),
            ("lines", f.line_count, thresholds.max_lines),
            ("complexity", f.complexity, thresholds.max_complexity),
        )
        exceeded = []
        worst = 0.0
        for metric, value, limit in checks:
            if value <= limit:
                continue
            ratio = value / limit if limit > 0 else float("inf")
            worst = max(worst, ratio)
            exceeded.append({"metric": metric, "value": value, "threshold": limit})
        if not exceeded:
            continue

        summary = ", ".join(
            f"{e['metric']} {e['value']} > {e['threshold']}" for e in exceeded
        )
        findings.append(Finding(
            category=CATEGORY,
            severity=_severity(worst),
            title=f"God module: {f.path}",
            description=f"{f.path} is oversized ({summary}).",
            evidence={"file": f.path, "exceeded": exceeded},
            suggestion="Split the file along its responsibilities into smaller modules.",
        ))
    return findings
