"""Symbol and using-directive extraction for C# trees."""

from archscan.indexer.metrics import compute_complexity
from archscan.parsers.base import (
    ExtractedImport,
    ExtractedSymbol,
    build_signature,
    find_child,
    node_text,
    preceding_comment,
    walk_with_ancestors,
)

_DECLARATION_KINDS = {
    "method_declaration": "function",
    "class_declaration": "class",
    "struct_declaration": "class",
    "record_declaration": "class",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
}

_NAMESPACE_WRAPPERS = frozenset({
    "namespace_declaration",
    "file_scoped_namespace_declaration",
    "declaration_list",
})


def _is_public(node) -> bool:
    return any(
        child.type == "modifier" and child.text == b"public"
        for child in node.children
    )


def _using_target(node, source: bytes) -> str | None:
    """Namespace or type named by a using directive (the aliased target for ``using A = B``)."""
    target = None
    for child in node.named_children:
        if child.type in ("qualified_name", "identifier", "generic_name", "alias_qualified_name"):
            target = child
    return node_text(target, source) if target is not None else None


class CSharpParser:
    """Visitor for C# trees."""

    language = "c_sharp"

    def extract_symbols(self, root, source: bytes) -> list[ExtractedSymbol]:
        symbols: list[ExtractedSymbol] = []
        for node, _ancestors in walk_with_ancestors(root):
            if node.type in _DECLARATION_KINDS:
                sym = self._declaration(node, source)
                if sym is not None:
                    symbols.append(sym)
            elif node.type == "using_directive":
                target = _using_target(node, source)
                if target:
                    symbols.append(ExtractedSymbol(
                        name=target,
                        kind="import",
                        start_line=node.start_point[0] + 1,
                        end_line=node.end_point[0] + 1,
                    ))
        return symbols

    def _declaration(self, node, source: bytes) -> ExtractedSymbol | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = node_text(name_node, source)
        kind = _DECLARATION_KINDS[node.type]

        if kind == "function":
            params = node.child_by_field_name("parameters")
            returns = node.child_by_field_name("returns") or node.child_by_field_name("type")
            signature = build_signature(
                name, kind,
                node_text(params, source) if params is not None else None,
                ": " + node_text(returns, source) if returns is not None else None,
            )
        else:
            bases = find_child(node, "base_list")
            signature = build_signature(
                name, kind, " " + node_text(bases, source) if bases is not None else None,
            )

        return ExtractedSymbol(
            name=name,
            kind=kind,
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            exported=_is_public(node),
            signature=signature,
            docstring=preceding_comment(node, source),
            complexity=compute_complexity(node, self.language) if kind == "function" else None,
        )

    def extract_imports(self, root, source: bytes) -> list[ExtractedImport]:
        imports: list[ExtractedImport] = []
        self._walk_for_usings(root, source, imports)
        return imports

    def _walk_for_usings(self, node, source: bytes, imports: list[ExtractedImport]) -> None:
        for child in node.named_children:
            if child.type == "using_directive":
                target = _using_target(child, source)
                if target:
                    imports.append(ExtractedImport(
                        specifier=target,
                        kind="using",
                        names=[],
                        line=child.start_point[0] + 1,
                    ))
            elif child.type in _NAMESPACE_WRAPPERS:
                self._walk_for_usings(child, source, imports)
