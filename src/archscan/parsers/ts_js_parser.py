"""Symbol and import extraction for TypeScript, TSX and JavaScript trees."""

from archscan.indexer.metrics import compute_complexity
from archscan.parsers.base import (
    ExtractedImport,
    ExtractedSymbol,
    build_signature,
    find_child,
    node_text,
    preceding_comment,
    strip_quotes,
    walk_with_ancestors,
)

_DECLARATION_KINDS = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
}

_FUNCTION_VALUES = frozenset({"arrow_function", "function_expression", "function", "generator_function"})

# Statement containers whose children are still top-level for import purposes
_WRAPPERS = frozenset({"program", "statement_block", "internal_module", "module", "ambient_declaration"})

# The import()/require() scan stops at these
_SCOPE_BOUNDARIES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
    "class_declaration",
    "abstract_class_declaration",
    "class",
    "class_body",
})


class TSJSParser:
    """Visitor for the TypeScript/JavaScript family (typescript, tsx, javascript)."""

    def __init__(self, language: str):
        if language not in ("typescript", "tsx", "javascript"):
            raise ValueError(f"Unsupported language: {language}")
        self.language = language

    # -- symbols --

    def extract_symbols(self, root, source: bytes) -> list[ExtractedSymbol]:
        symbols: list[ExtractedSymbol] = []
        for node, ancestors in walk_with_ancestors(root):
            t = node.type
            if t in _DECLARATION_KINDS:
                sym = self._declaration(node, ancestors, source, _DECLARATION_KINDS[t])
            elif t == "variable_declarator":
                sym = self._bound_function(node, ancestors, source)
            elif t == "import_statement":
                sym = self._statement_symbol(node, source, "import")
            elif t == "export_statement" and node.child_by_field_name("source") is not None:
                sym = self._statement_symbol(node, source, "export")
            else:
                sym = None
            if sym is not None:
                symbols.append(sym)

        # ``export { a, b }`` and ``export default a`` export earlier local declarations
        local_exports = _local_export_names(root, source)
        if local_exports:
            for sym in symbols:
                if sym.kind not in ("import", "export") and sym.name in local_exports:
                    sym.exported = True
        return symbols

    def _declaration(self, node, ancestors, source: bytes, kind: str) -> ExtractedSymbol | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = node_text(name_node, source)
        exported = _is_exported(node, ancestors)
        anchor = ancestors[-1] if exported and ancestors and ancestors[-1].type == "export_statement" else node

        if kind == "function":
            signature = build_signature(
                name, kind,
                _field_text(node, "type_parameters", source),
                _field_text(node, "parameters", source),
                _field_text(node, "return_type", source),
            )
        else:
            heritage = find_child(node, "class_heritage", "extends_type_clause")
            signature = build_signature(
                name, kind,
                _field_text(node, "type_parameters", source),
                " " + node_text(heritage, source) if heritage is not None else None,
            )

        return ExtractedSymbol(
            name=name,
            kind=kind,
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            exported=exported,
            signature=signature,
            docstring=preceding_comment(anchor, source),
            complexity=compute_complexity(node, self.language) if kind == "function" else None,
        )

    def _bound_function(self, node, ancestors, source: bytes) -> ExtractedSymbol | None:
        """``const foo = () => ...`` / ``var foo = function () {...}``."""
        name_node = node.child_by_field_name("name")
        value = node.child_by_field_name("value")
        if name_node is None or value is None or value.type not in _FUNCTION_VALUES:
            return None
        if name_node.type != "identifier":
            return None
        if not ancestors or ancestors[-1].type not in ("lexical_declaration", "variable_declaration"):
            return None
        declaration = ancestors[-1]
        exported = _is_exported(declaration, ancestors[:-1])
        anchor = ancestors[-2] if exported and len(ancestors) >= 2 and ancestors[-2].type == "export_statement" else declaration

        params = value.child_by_field_name("parameters") or value.child_by_field_name("parameter")
        name = node_text(name_node, source)
        return ExtractedSymbol(
            name=name,
            kind="function",
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            exported=exported,
            signature=build_signature(
                name, "function",
                node_text(params, source) if params is not None else None,
                _field_text(value, "return_type", source),
            ),
            docstring=preceding_comment(anchor, source),
            complexity=compute_complexity(value, self.language),
        )

    def _statement_symbol(self, node, source: bytes, kind: str) -> ExtractedSymbol | None:
        specifier = _source_specifier(node, source)
        if specifier is None:
            return None
        return ExtractedSymbol(
            name=specifier,
            kind=kind,
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            exported=kind == "export",
            signature=None,
            docstring=None,
        )

    # -- imports --

    def extract_imports(self, root, source: bytes) -> list[ExtractedImport]:
        imports: list[ExtractedImport] = []
        for stmt in _top_level_statements(root):
            if stmt.type == "import_statement":
                imp = _static_import(stmt, source)
                if imp is not None:
                    imports.append(imp)
                continue
            if stmt.type == "export_statement" and stmt.child_by_field_name("source") is not None:
                imp = _export_from(stmt, source)
                if imp is not None:
                    imports.append(imp)
                continue
            imports.extend(_call_imports(stmt, source))
        return imports


def _field_text(node, field_name: str, source: bytes) -> str | None:
    child = node.child_by_field_name(field_name)
    return node_text(child, source) if child is not None else None


def _is_exported(node, ancestors) -> bool:
    if ancestors and ancestors[-1].type == "export_statement":
        return True
    prev = node.prev_sibling
    if prev is not None and prev.type == "export":
        return True
    first = node.children[0] if node.children else None
    return first is not None and first.type == "export"


def _local_export_names(root, source: bytes) -> set[str]:
    names: set[str] = set()
    for stmt in root.named_children:
        if stmt.type != "export_statement" or stmt.child_by_field_name("source") is not None:
            continue
        clause = find_child(stmt, "export_clause")
        if clause is not None:
            for spec in clause.named_children:
                name_node = spec.child_by_field_name("name") if spec.type == "export_specifier" else None
                if name_node is not None:
                    names.add(node_text(name_node, source))
            continue
        value = stmt.child_by_field_name("value")
        if value is not None and value.type == "identifier":
            names.add(node_text(value, source))
    return names


def _string_value(node, source: bytes) -> str | None:
    if node is None or node.type not in ("string", "template_string"):
        return None
    # Template strings with substitutions are not static paths
    if node.type == "template_string" and any(c.type == "template_substitution" for c in node.named_children):
        return None
    return strip_quotes(node_text(node, source))


def _source_specifier(node, source: bytes) -> str | None:
    src = node.child_by_field_name("source")
    if src is not None:
        return _string_value(src, source)
    # TS ``import x = require("y")``
    clause = find_child(node, "import_require_clause")
    if clause is not None:
        return _string_value(find_child(clause, "string"), source)
    return None


def _static_import(node, source: bytes) -> ExtractedImport | None:
    specifier = _source_specifier(node, source)
    if specifier is None:
        return None
    names: list[str] = []
    if find_child(node, "import_require_clause") is not None:
        names.append("*")
    clause = find_child(node, "import_clause")
    if clause is not None:
        for child in clause.children:
            if child.type in ("identifier", "namespace_import"):
                # Default and namespace imports bind the whole module
                names.append("*")
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name_node = spec.child_by_field_name("name")
                    if name_node is not None:
                        names.append(node_text(name_node, source))
    return ExtractedImport(
        specifier=specifier,
        kind="import",
        names=_dedupe(names),
        line=node.start_point[0] + 1,
    )


def _export_from(node, source: bytes) -> ExtractedImport | None:
    specifier = _source_specifier(node, source)
    if specifier is None:
        return None
    names: list[str] = []
    clause = find_child(node, "export_clause")
    if clause is not None:
        for spec in clause.named_children:
            if spec.type != "export_specifier":
                continue
            name_node = spec.child_by_field_name("name")
            if name_node is not None:
                names.append(node_text(name_node, source))
    else:
        # ``export * from`` and ``export * as ns from``
        names.append("*")
    return ExtractedImport(
        specifier=specifier,
        kind="import",
        names=_dedupe(names),
        line=node.start_point[0] + 1,
    )


def _top_level_statements(node):
    """Yield statements at module level, looking through namespace and block wrappers."""
    for child in node.named_children:
        if child.type in _WRAPPERS:
            yield from _top_level_statements(child)
            continue
        if child.type == "expression_statement" and child.named_child_count == 1:
            inner = child.named_children[0]
            if inner.type in _WRAPPERS:
                yield from _top_level_statements(inner)
                continue
        yield child


def _call_imports(statement, source: bytes) -> list[ExtractedImport]:
    """``import("x")`` and ``require("x")`` calls in a statement, outside function and class bodies."""
    found: list[ExtractedImport] = []
    stack = [statement]
    while stack:
        node = stack.pop()
        if node.type in _SCOPE_BOUNDARIES:
            continue
        if node.type == "call_expression":
            imp = _call_import(node, source)
            if imp is not None:
                found.append(imp)
        stack.extend(reversed(node.children))
    return found


def _call_import(node, source: bytes) -> ExtractedImport | None:
    func = node.child_by_field_name("function")
    if func is None:
        return None
    if func.type != "import" and not (func.type == "identifier" and func.text == b"require"):
        return None
    args = node.child_by_field_name("arguments")
    if args is None or args.named_child_count == 0:
        return None
    specifier = _string_value(args.named_children[0], source)
    if specifier is None:
        return None
    return ExtractedImport(
        specifier=specifier,
        kind="call",
        names=["*"],
        line=node.start_point[0] + 1,
    )


def _dedupe(names: list[str]) -> list[str]:
    seen = set()
    out = []
    for n in names:
        if n not in seen:
            seen.add(n)
            out.append(n)
    return out
