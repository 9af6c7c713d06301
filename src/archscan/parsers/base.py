from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

import tree_sitter_c_sharp as tscsharp
import tree_sitter_javascript as tsjs
import tree_sitter_python as tspython
import tree_sitter_typescript as tsts
from tree_sitter import Language, Parser

logger = logging.getLogger(__name__)

# language id -> grammar capsule factory
_GRAMMARS = {
    "typescript": tsts.language_typescript,
    "tsx": tsts.language_tsx,
    "javascript": tsjs.language,
    "python": tspython.language,
    "c_sharp": tscsharp.language,
}


@dataclass
class ExtractedSymbol:
    name: str
    kind: str  # "function", "class", "interface", "type", "enum", "import", "export"
    start_line: int
    end_line: int
    exported: bool = False
    signature: str | None = None
    docstring: str | None = None
    complexity: int | None = None  # function kinds only


@dataclass
class ExtractedImport:
    specifier: str  # raw text as written, quotes stripped
    kind: str = "import"  # "import", "call", "using"
    names: list[str] = field(default_factory=list)  # "*" marks a whole-module import; empty for side-effect only
    line: int = 0


@dataclass
class ParseResult:
    symbols: list[ExtractedSymbol] = field(default_factory=list)
    imports: list[ExtractedImport] = field(default_factory=list)
    complexity: int = 0  # 0 when the file could not be parsed


class LanguageVisitor(Protocol):
    language: str

    def extract_symbols(self, root, source: bytes) -> list[ExtractedSymbol]: ...

    def extract_imports(self, root, source: bytes) -> list[ExtractedImport]: ...


class ParserContext:
    """Caller-owned set of tree-sitter parsers, one per grammar.

    Parsers are built on first use and live as long as the context.
    """

    def __init__(self) -> None:
        self._parsers: dict[str, Parser] = {}
        self.visitors: dict[str, LanguageVisitor] = {}  # filled by parsers.registry

    def parser(self, language: str) -> Parser:
        if language not in self._parsers:
            factory = _GRAMMARS.get(language)
            if factory is None:
                raise ValueError(f"No grammar for language: {language}")
            self._parsers[language] = Parser(Language(factory()))
            logger.debug("Initialized %s parser", language)
        return self._parsers[language]

    def parse(self, source: bytes, language: str):
        """Parse ``source`` and return the tree.

        Raises:
            ValueError: If the language has no grammar.
            RuntimeError: If tree-sitter produces no tree.
        """
        tree = self.parser(language).parse(source)
        if tree is None or tree.root_node is None:
            raise RuntimeError(f"tree-sitter returned no tree for {language} source")
        return tree

    def reset(self) -> None:
        self._parsers.clear()
        self.visitors.clear()


# -- Shared visitor utilities --

def node_text(node, source: bytes) -> str:
    """Extract the text of a tree-sitter node from the source bytes."""
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def strip_quotes(text: str) -> str:
    """Strip one layer of matching quotes from a string literal."""
    for quote in ('"""', "'''", '"', "'", "`"):
        if len(text) >= 2 * len(quote) and text.startswith(quote) and text.endswith(quote):
            return text[len(quote):-len(quote)]
    return text


def clean_comment(text: str) -> str:
    """Strip block, line and doc-comment markers and leading interior asterisks."""
    text = text.strip()
    if text.startswith("/*"):
        text = text[3:] if text.startswith("/**") else text[2:]
        if text.endswith("*/"):
            text = text[:-2]
    lines = []
    for line in text.split("\n"):
        line = line.strip()
        if line.startswith("///"):
            line = line[3:]
        elif line.startswith("//"):
            line = line[2:]
        elif line.startswith("*"):
            line = line[1:]
        lines.append(line.strip())
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def preceding_comment(node, source: bytes) -> str | None:
    """Docstring from the comment sibling immediately before ``node``, if any."""
    prev = node.prev_named_sibling
    if prev is None or prev.type != "comment":
        return None
    # Blank lines between comment and declaration break the association
    if node.start_point[0] - prev.end_point[0] > 1:
        return None
    return clean_comment(node_text(prev, source)) or None


def walk_with_ancestors(root):
    """Depth-first pre-order walk yielding (node, ancestors).

    ``ancestors`` is a tuple from the root down to the node's parent.
    """
    stack = [(root, ())]
    while stack:
        node, ancestors = stack.pop()
        yield node, ancestors
        child_ancestors = ancestors + (node,)
        for child in reversed(node.children):
            stack.append((child, child_ancestors))


def build_signature(name: str, kind: str, *parts) -> str:
    """Concatenate the name with the given child texts, or fall back to ``kind name``."""
    present = [p for p in parts if p]
    if not present:
        return f"{kind} {name}"
    return name + "".join(present)


def find_child(node, *child_types: str):
    """First child whose type is one of ``child_types``."""
    for child in node.children:
        if child.type in child_types:
            return child
    return None
