"""Language -> visitor dispatch and whole-file parsing."""

import logging

from archscan.constants import TS_JS_LANGUAGES, is_supported_language
from archscan.indexer.metrics import compute_complexity
from archscan.parsers.base import LanguageVisitor, ParseResult, ParserContext
from archscan.parsers.csharp_parser import CSharpParser
from archscan.parsers.python_parser import PythonParser
from archscan.parsers.ts_js_parser import TSJSParser

logger = logging.getLogger(__name__)


def _new_visitor(language: str) -> LanguageVisitor:
    if not is_supported_language(language):
        raise ValueError(f"No parser for language: {language}")
    if language in TS_JS_LANGUAGES:
        return TSJSParser(language)
    if language == "python":
        return PythonParser()
    return CSharpParser()


def get_visitor(context: ParserContext, language: str) -> LanguageVisitor:
    """Visitor for ``language``, created once per context."""
    visitors = context.visitors
    if language not in visitors:
        visitors[language] = _new_visitor(language)
    return visitors[language]


def parse_source(context: ParserContext, source: bytes, language: str) -> ParseResult:
    """Parse a file and extract its symbols, imports and file-level complexity.

    Raises:
        ValueError: If the language is unsupported.
        RuntimeError: If tree-sitter produced no tree.
    """
    visitor = get_visitor(context, language)
    root = context.parse(source, language).root_node
    return ParseResult(
        symbols=visitor.extract_symbols(root, source),
        imports=visitor.extract_imports(root, source),
        complexity=compute_complexity(root, language),
    )
