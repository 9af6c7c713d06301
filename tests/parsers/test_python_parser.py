"""Tests for parsers/python_parser.py."""

import pytest

from archscan.parsers.base import ParserContext
from archscan.parsers.python_parser import PythonParser

SAMPLE = b'''"""Module doc."""
import os, pkg.sub as ps
from .models import User, _Hidden as H
from . import sibling
from ..core import *

try:
    import json
except ImportError:
    json = None

if TYPE_CHECKING:
    from pkg.types import T


@decorator
def public(a: int) -> int:
    """Do a thing."""
    if a:
        return 1
    return 2


def _private():
    pass


class Widget(Base):
    \'\'\'A widget.\'\'\'

    def method(self):
        def inner():
            pass
        import lazy_mod
        return inner
'''


@pytest.fixture
def parsed():
    source = SAMPLE
    root = ParserContext().parse(source, "python").root_node
    visitor = PythonParser()
    return visitor.extract_symbols(root, source), visitor.extract_imports(root, source)


def _decls(symbols):
    return {s.name: s for s in symbols if s.kind != "import"}


class TestPythonSymbols:
    def test_definitions(self, parsed):
        decls = _decls(parsed[0])
        assert set(decls) == {"public", "_private", "Widget", "method", "inner"}
        assert decls["public"].kind == "function"
        assert decls["Widget"].kind == "class"

    def test_exported_is_module_level_public(self, parsed):
        decls = _decls(parsed[0])
        assert decls["public"].exported
        assert decls["Widget"].exported
        assert not decls["_private"].exported
        assert not decls["method"].exported
        assert not decls["inner"].exported

    def test_decorator_included_in_span(self, parsed):
        decls = _decls(parsed[0])
        assert decls["public"].start_line == 16
        assert decls["public"].end_line == 21

    def test_docstrings(self, parsed):
        decls = _decls(parsed[0])
        assert decls["public"].docstring == "Do a thing."
        assert decls["Widget"].docstring == "A widget."
        assert decls["_private"].docstring is None

    def test_signatures(self, parsed):
        decls = _decls(parsed[0])
        assert decls["public"].signature == "public(a: int) -> int"
        assert decls["Widget"].signature == "Widget(Base)"
        assert decls["_private"].signature == "_private()"

    def test_class_without_bases_falls_back(self):
        source = b"class Plain:\n    pass\n"
        root = ParserContext().parse(source, "python").root_node
        [sym] = PythonParser().extract_symbols(root, source)
        assert sym.signature == "class Plain"

    def test_complexity(self, parsed):
        decls = _decls(parsed[0])
        assert decls["public"].complexity == 2
        assert decls["_private"].complexity == 1
        assert decls["Widget"].complexity is None

    def test_import_symbols_include_nested(self, parsed):
        names = [s.name for s in parsed[0] if s.kind == "import"]
        assert "lazy_mod" in names
        assert names[:5] == ["os", "pkg.sub", ".models", ".", "..core"]


class TestPythonImports:
    def test_module_level_imports(self, parsed):
        _, imports = parsed
        got = [(i.specifier, i.names) for i in imports]
        assert got == [
            ("os", ["*"]),
            ("pkg.sub", ["*"]),
            (".models", ["User", "_Hidden"]),
            (".", ["sibling"]),
            ("..core", ["*"]),
            ("json", ["*"]),
            ("pkg.types", ["T"]),
        ]

    def test_function_body_imports_excluded(self, parsed):
        _, imports = parsed
        assert "lazy_mod" not in [i.specifier for i in imports]

    def test_kind_and_line(self, parsed):
        _, imports = parsed
        assert all(i.kind == "import" for i in imports)
        assert imports[0].line == 2
        assert imports[-1].line == 13
