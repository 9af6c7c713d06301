"""Layer classification by path and upward-dependency detection."""

import re

from archscan.analysis.detectors.base import EdgeNode, Finding

CATEGORY = "layering_violation"

# Upward dependencies spanning at least this many layers are also reported as layer skips
DEFAULT_LAYER_SKIP_GAP = 3

# Checked in order; the first match wins
LAYER_PATTERNS: tuple[tuple[re.Pattern, str, int], ...] = (
    (re.compile(r"(^|/)(db|database|data|models?|entities|repositor(y|ies)|dal|migrations?|schemas?)/", re.I), "data", 0),
    (re.compile(r"(^|/)(domain|core|business)/", re.I), "domain", 1),
    (re.compile(r"(^|/)(services?|use-?cases?|application|app-services?)/", re.I), "service", 2),
    (re.compile(r"(^|/)(api|routes?|controllers?|handlers?|endpoints?|resolvers?)/", re.I), "api", 3),
    (re.compile(r"(^|/)(views?|pages?|components?|ui|screens?|templates?|presentation|frontend)/", re.I), "presentation", 4),
)


def detect_layer(path: str) -> tuple[str, int] | None:
    """Return (layer name, level) for a path, or None when no pattern matches."""
    for pattern, name, level in LAYER_PATTERNS:
        if pattern.search(path):
            return name, level
    return None


def detect_layering_violations(
    edges: list[EdgeNode],
    layer_skip_gap: int = DEFAULT_LAYER_SKIP_GAP,
) -> list[Finding]:
    findings = []
    for edge in edges:
        if edge.target_path is None:
            continue
        source_layer = detect_layer(edge.source_path)
        target_layer = detect_layer(edge.target_path)
        if source_layer is None or target_layer is None:
            continue
        (source_name, source_level), (target_name, target_level) = source_layer, target_layer
        if source_level >= target_level:
            continue

        gap = target_level - source_level
        evidence = {
            "source": edge.source_path,
            "target": edge.target_path,
            "source_layer": source_name,
            "target_layer": target_name,
            "gap": gap,
        }
        findings.append(Finding(
            category=CATEGORY,
            severity="high" if gap > 2 else "medium",
            title=f"Upward dependency: {source_name} -> {target_name}",
            description=(
                f"{edge.source_path} ({source_name} layer) depends on "
                f"{edge.target_path} ({target_name} layer)."
            ),
            evidence=evidence,
            suggestion=(
                f"Lower layers should not know about higher ones. Move the shared logic "
                f"into the {source_name} layer or pass it in from above."
            ),
        ))
        if gap >= layer_skip_gap:
            findings.append(Finding(
                category=CATEGORY,
                severity="low",
                title=f"Layer skip: {source_name} -> {target_name}",
                description=(
                    f"{edge.source_path} reaches across {gap} layers to {edge.target_path}."
                ),
                evidence=dict(evidence),
                suggestion="Route the dependency through the intermediate layers.",
            ))
    return findings
