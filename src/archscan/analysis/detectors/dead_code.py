"""Exported symbols that nothing in the project references."""

from collections import defaultdict

from archscan.analysis.detectors.base import Finding, SymbolNode

CATEGORY = "dead_code"

# More unused exports than this in one file raises severity to medium
DEFAULT_MEDIUM_THRESHOLD = 5

# Statement-level symbols, not declarations
_SKIP_KINDS = frozenset({"import", "export"})


def detect_dead_code(
    symbols: list[SymbolNode],
    referenced_symbol_ids,
    file_paths=None,
    medium_threshold: int = DEFAULT_MEDIUM_THRESHOLD,
) -> list[Finding]:
    """Group exported, unreferenced declarations by file.

    ``referenced_symbol_ids`` holds the target ids of every symbol reference.
    When ``file_paths`` is given, symbols of files outside it are ignored.
    """
    referenced = set(referenced_symbol_ids)
    known = set(file_paths) if file_paths is not None else None

    unused: dict[str, list[SymbolNode]] = defaultdict(list)
    for sym in symbols:
        if not sym.exported or sym.kind in _SKIP_KINDS:
            continue
        if known is not None and sym.file_path not in known:
            continue
        if sym.id in referenced:
            continue
        unused[sym.file_path].append(sym)

    findings = []
    for path in sorted(unused):
        syms = sorted(unused[path], key=lambda s: (s.start_line, s.name))
        names = [s.name for s in syms]
        count = len(names)
        findings.append(Finding(
            category=CATEGORY,
            severity="medium" if count > medium_threshold else "low",
            title=f"{count} unused export{'s' if count != 1 else ''} in {path}",
            description=(
                f"No other file in the project references: {', '.join(names)}."
            ),
            evidence={
                "file": path,
                "symbols": [{"name": s.name, "kind": s.kind, "line": s.start_line} for s in syms],
            },
            suggestion="Remove the unused exports or make them module-private.",
        ))
    return findings
