"""Cyclomatic complexity, coupling, and cohesion metrics."""

from dataclasses import dataclass

from archscan.constants import TS_JS_LANGUAGES

# Node types that add one decision point, per language family
_TS_JS_DECISION_NODES = frozenset({
    "if_statement",
    "else_clause",
    "for_statement",
    "for_in_statement",
    "while_statement",
    "do_statement",
    "switch_case",
    "catch_clause",
    "ternary_expression",
})
_PYTHON_DECISION_NODES = frozenset({
    "if_statement",
    "elif_clause",
    "for_statement",
    "while_statement",
    "except_clause",
    "conditional_expression",
})
_CSHARP_DECISION_NODES = frozenset({
    "if_statement",
    "else_clause",
    "for_statement",
    "foreach_statement",
    "for_each_statement",
    "while_statement",
    "do_statement",
    "switch_section",
    "catch_clause",
    "conditional_expression",
})

_C_FAMILY_LOGICAL_OPS = frozenset({"&&", "||", "??"})
_PYTHON_LOGICAL_OPS = frozenset({"and", "or"})

# language -> (decision node types, short-circuit node type, short-circuit operators)
_COMPLEXITY_TABLES: dict[str, tuple[frozenset, str, frozenset]] = {
    **{lang: (_TS_JS_DECISION_NODES, "binary_expression", _C_FAMILY_LOGICAL_OPS) for lang in TS_JS_LANGUAGES},
    "python": (_PYTHON_DECISION_NODES, "boolean_operator", _PYTHON_LOGICAL_OPS),
    "c_sharp": (_CSHARP_DECISION_NODES, "binary_expression", _C_FAMILY_LOGICAL_OPS),
}

# Symbol kinds that are statements rather than declarations
NON_DECLARATION_KINDS = frozenset({"import", "export"})


def _operator(node) -> str | None:
    op = node.child_by_field_name("operator")
    if op is not None:
        return op.text.decode("utf-8", errors="replace")
    for child in node.children:
        if not child.is_named:
            return child.text.decode("utf-8", errors="replace")
    return None


def compute_complexity(node, language: str) -> int:
    """Cyclomatic complexity of a subtree: 1 plus one per decision node.

    Every node in the subtree is visited, nested functions included.
    There is no weighting by nesting depth.
    """
    table = _COMPLEXITY_TABLES.get(language)
    if table is None:
        raise ValueError(f"No complexity table for language: {language}")
    decision_nodes, logical_type, logical_ops = table

    complexity = 1
    stack = [node]
    while stack:
        current = stack.pop()
        t = current.type
        if t in decision_nodes:
            complexity += 1
        elif t == logical_type and _operator(current) in logical_ops:
            complexity += 1
        stack.extend(current.children)
    return complexity


@dataclass(frozen=True)
class FileMetrics:
    efferent_coupling: int
    afferent_coupling: int
    cohesion: float


def compute_cohesion(path: str, file_edges, symbols) -> float:
    """``1 - external / declared`` clamped to [0, 1].

    ``external`` counts the file's edges that do not point back at the file
    itself (unresolved edges count as external). ``declared`` excludes
    import/export statement symbols. A file declaring nothing has cohesion 1.0.
    """
    declared = sum(1 for s in symbols if s.kind not in NON_DECLARATION_KINDS)
    if declared == 0:
        return 1.0
    external = sum(1 for e in file_edges if e.target_path != path)
    return min(1.0, max(0.0, 1.0 - external / declared))


def compute_file_metrics(path: str, file_edges, all_edges, symbols) -> FileMetrics:
    """Coupling and cohesion for one file.

    Edges are counted raw, so two imports of the same target count twice.
    ``file_edges`` are the edges whose source is ``path``; ``all_edges`` is the
    whole project's edge set.
    """
    efferent = sum(1 for e in file_edges if e.source_path == path)
    afferent = sum(1 for e in all_edges if e.target_path == path)
    return FileMetrics(
        efferent_coupling=efferent,
        afferent_coupling=afferent,
        cohesion=compute_cohesion(path, file_edges, symbols),
    )
