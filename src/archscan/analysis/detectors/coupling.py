"""Excessive coupling and low cohesion thresholds."""

from dataclasses import dataclass

from archscan.analysis.detectors.base import FileNode, Finding

CATEGORY = "coupling"


@dataclass(frozen=True)
class CouplingThresholds:
    max_efferent_coupling: int = 15
    max_afferent_coupling: int = 20
    max_total_coupling: int = 25
    min_cohesion: float = 0.2


def _over_severity(value: int, limit: int) -> str:
    return "high" if value > 2 * limit else "medium"


def detect_coupling_issues(
    files: list[FileNode],
    thresholds: CouplingThresholds = CouplingThresholds(),
) -> list[Finding]:
    findings = []
    for f in sorted(files, key=lambda n: n.path):
        total = f.efferent_coupling + f.afferent_coupling
        checks = (
            ("efferent", f.efferent_coupling, thresholds.max_efferent_coupling,
             "High efferent coupling", "depends on", "Reduce outgoing imports by grouping related ones behind a facade."),
            ("afferent", f.afferent_coupling, thresholds.max_afferent_coupling,
             "High afferent coupling", "is depended on by", "Changes here affect many files; keep its interface small and stable."),
            ("total", total, thresholds.max_total_coupling,
             "High total coupling", "has a combined coupling of", "Split the file so each part has fewer connections."),
        )
        for metric, value, limit, title, phrase, suggestion in checks:
            if value <= limit:
                continue
            findings.append(Finding(
                category=CATEGORY,
                severity=_over_severity(value, limit),
                title=f"{title}: {f.path}",
                description=f"{f.path} {phrase} {value} edges (threshold {limit}).",
                evidence={"file": f.path, "metric": metric, "value": value, "threshold": limit},
                suggestion=suggestion,
            ))

        if f.cohesion < thresholds.min_cohesion:
            findings.append(Finding(
                category=CATEGORY,
                severity="medium" if f.cohesion < thresholds.min_cohesion / 2 else "low",
                title=f"Low cohesion: {f.path}",
                description=(
                    f"{f.path} has cohesion {f.cohesion:.2f} "
                    f"(threshold {thresholds.min_cohesion})."
                ),
                evidence={
                    "file": f.path,
                    "metric": "cohesion",
                    "value": f.cohesion,
                    "threshold": thresholds.min_cohesion,
                },
                suggestion="Most of what this file does reaches outside it; consider moving code closer to what it uses.",
            ))
    return findings
