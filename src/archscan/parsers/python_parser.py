from __future__ import annotations

from archscan.indexer.metrics import compute_complexity
from archscan.parsers.base import (
    ExtractedImport,
    ExtractedSymbol,
    build_signature,
    node_text,
    strip_quotes,
    walk_with_ancestors,
)

_DEFINITION_KINDS = {
    "function_definition": "function",
    "class_definition": "class",
}

# Containers that keep their statements at module level for import purposes
_IMPORT_WRAPPERS = frozenset({
    "if_statement",
    "elif_clause",
    "else_clause",
    "try_statement",
    "except_clause",
    "finally_clause",
    "block",
})

_SCOPES = frozenset({"function_definition", "class_definition"})


def _docstring(definition, source: bytes) -> str | None:
    """First string statement of the body, quotes stripped."""
    body = definition.child_by_field_name("body")
    if body is None or body.named_child_count == 0:
        return None
    first = body.named_children[0]
    if first.type != "expression_statement" or first.named_child_count == 0:
        return None
    expr = first.named_children[0]
    if expr.type != "string":
        return None
    text = node_text(expr, source)
    # Drop string prefixes (r, u, b, f) before the quotes
    while text and text[0] in "rRuUbBfF":
        text = text[1:]
    return strip_quotes(text).strip() or None


class PythonParser:
    """Visitor for Python trees."""

    language = "python"

    def extract_symbols(self, root, source: bytes) -> list[ExtractedSymbol]:
        symbols: list[ExtractedSymbol] = []
        for node, ancestors in walk_with_ancestors(root):
            if node.type in _DEFINITION_KINDS:
                sym = self._definition(node, ancestors, source)
                if sym is not None:
                    symbols.append(sym)
            elif node.type in ("import_statement", "import_from_statement"):
                symbols.extend(self._import_symbols(node, source))
        return symbols

    def _definition(self, node, ancestors, source: bytes) -> ExtractedSymbol | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = node_text(name_node, source)
        kind = _DEFINITION_KINDS[node.type]

        # Decorators belong to the definition's span
        outer = ancestors[-1] if ancestors and ancestors[-1].type == "decorated_definition" else node
        module_level = not any(a.type in _SCOPES for a in ancestors)

        if kind == "function":
            return_type = node.child_by_field_name("return_type")
            signature = build_signature(
                name, kind,
                _text_or_none(node.child_by_field_name("parameters"), source),
                " -> " + node_text(return_type, source) if return_type is not None else None,
            )
        else:
            signature = build_signature(
                name, kind, _text_or_none(node.child_by_field_name("superclasses"), source),
            )

        return ExtractedSymbol(
            name=name,
            kind=kind,
            start_line=outer.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            exported=module_level and not name.startswith("_"),
            signature=signature,
            docstring=_docstring(node, source),
            complexity=compute_complexity(node, self.language) if kind == "function" else None,
        )

    def _import_symbols(self, node, source: bytes) -> list[ExtractedSymbol]:
        return [
            ExtractedSymbol(
                name=imp.specifier,
                kind="import",
                start_line=node.start_point[0] + 1,
                end_line=node.end_point[0] + 1,
            )
            for imp in _parse_import(node, source)
        ]

    def extract_imports(self, root, source: bytes) -> list[ExtractedImport]:
        imports: list[ExtractedImport] = []
        self._walk_for_imports(root, source, imports)
        return imports

    def _walk_for_imports(self, node, source: bytes, imports: list[ExtractedImport]) -> None:
        """Collect imports at module level, including those under if/try blocks."""
        for child in node.children:
            if child.type in ("import_statement", "import_from_statement"):
                imports.extend(_parse_import(child, source))
            elif child.type in _IMPORT_WRAPPERS:
                self._walk_for_imports(child, source, imports)


def _text_or_none(node, source: bytes) -> str | None:
    return node_text(node, source) if node is not None else None


def _imported_name(node, source: bytes) -> str | None:
    if node.type == "dotted_name":
        return node_text(node, source)
    if node.type == "aliased_import":
        inner = node.child_by_field_name("name")
        return node_text(inner, source) if inner is not None else None
    return None


def _parse_import(node, source: bytes) -> list[ExtractedImport]:
    line = node.start_point[0] + 1
    if node.type == "import_statement":
        # ``import a.b, c as d``: one import per module, each binding the whole module
        out = []
        for name_node in node.children_by_field_name("name"):
            module = _imported_name(name_node, source)
            if module:
                out.append(ExtractedImport(specifier=module, kind="import", names=["*"], line=line))
        return out

    module_node = node.child_by_field_name("module_name")
    if module_node is None:
        return []
    specifier = node_text(module_node, source)
    names: list[str] = []
    if any(c.type == "wildcard_import" for c in node.children):
        names.append("*")
    for name_node in node.children_by_field_name("name"):
        name = _imported_name(name_node, source)
        if name:
            names.append(name)
    return [ExtractedImport(specifier=specifier, kind="import", names=names, line=line)]
