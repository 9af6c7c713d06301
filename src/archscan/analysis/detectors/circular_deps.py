"""Circular dependency detection via strongly connected components."""

import networkx as nx

from archscan.analysis.detectors.base import EdgeNode, Finding

CATEGORY = "circular_dependency"


def _severity(size: int) -> str:
    if size > 5:
        return "high"
    if size > 2:
        return "medium"
    return "low"


def build_file_graph(edges: list[EdgeNode], file_paths) -> nx.DiGraph:
    """Directed file graph over resolved edges whose endpoints are known files."""
    known = set(file_paths)
    graph = nx.DiGraph()
    graph.add_nodes_from(sorted(known))
    for edge in edges:
        if edge.target_path is None:
            continue
        if edge.source_path not in known or edge.target_path not in known:
            continue
        graph.add_edge(edge.source_path, edge.target_path)
    return graph


def detect_circular_deps(edges: list[EdgeNode], file_paths) -> list[Finding]:
    """One finding per dependency cycle (SCC with more than one file).

    Self-imports form a single-node component and are not reported.
    """
    graph = build_file_graph(edges, file_paths)
    cycles = [
        sorted(component)
        for component in nx.strongly_connected_components(graph)
        if len(component) > 1
    ]
    cycles.sort()

    findings = []
    for members in cycles:
        size = len(members)
        chain = " -> ".join(members + [members[0]])
        findings.append(Finding(
            category=CATEGORY,
            severity=_severity(size),
            title=f"Circular dependency between {size} files",
            description=(
                f"These files depend on each other in a cycle: {chain}. "
                "Changes to any of them can ripple through the whole group."
            ),
            evidence={"files": members, "size": size},
            suggestion=(
                "Extract the shared pieces into a separate module, or invert one of "
                "the dependencies through an interface."
            ),
        ))
    return findings
