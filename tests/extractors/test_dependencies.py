"""Tests for extractors/dependencies.py."""

import pytest

from archscan.extractors.dependencies import (
    bound_names,
    resolve_imports,
    resolve_python_module,
    resolve_ts_js_specifier,
)
from archscan.parsers.base import ExtractedImport

TS_INDEX = {
    "src/a.ts",
    "src/b.ts",
    "src/view.tsx",
    "src/legacy.js",
    "src/dir/index.ts",
    "lib/util.tsx",
}

PY_INDEX = {
    "pkg/__init__.py",
    "pkg/core.py",
    "pkg/sub/__init__.py",
    "pkg/sub/a.py",
    "pkg/sub/b.py",
    "top.py",
}


class TestResolveTsJs:
    def test_extension_probing(self):
        assert resolve_ts_js_specifier("./b", "src/a.ts", TS_INDEX) == "src/b.ts"
        assert resolve_ts_js_specifier("./view", "src/a.ts", TS_INDEX) == "src/view.tsx"

    def test_exact_path(self):
        assert resolve_ts_js_specifier("./legacy.js", "src/a.ts", TS_INDEX) == "src/legacy.js"

    def test_compiled_extension_maps_to_source(self):
        assert resolve_ts_js_specifier("./b.js", "src/a.ts", TS_INDEX) == "src/b.ts"

    def test_directory_index(self):
        assert resolve_ts_js_specifier("./dir", "src/a.ts", TS_INDEX) == "src/dir/index.ts"

    def test_parent_directory(self):
        assert resolve_ts_js_specifier("../lib/util", "src/a.ts", TS_INDEX) == "lib/util.tsx"

    def test_bare_specifier_unresolved(self):
        assert resolve_ts_js_specifier("react", "src/a.ts", TS_INDEX) is None
        assert resolve_ts_js_specifier("@scope/pkg", "src/a.ts", TS_INDEX) is None

    def test_escaping_root_unresolved(self):
        assert resolve_ts_js_specifier("../../outside", "src/a.ts", TS_INDEX) is None

    def test_missing_file_unresolved(self):
        assert resolve_ts_js_specifier("./nope", "src/a.ts", TS_INDEX) is None

    def test_parent_of_src_resolves_to_root_index(self):
        index = {"index.ts", "src/x.ts"}
        assert resolve_ts_js_specifier("..", "src/x.ts", index) == "index.ts"
        assert resolve_ts_js_specifier("../", "src/x.ts", index) == "index.ts"

    def test_dot_from_root_file(self):
        assert resolve_ts_js_specifier(".", "main.ts", {"index.js", "main.ts"}) == "index.js"
        assert resolve_ts_js_specifier(".", "main.ts", {"main.ts"}) is None


class TestResolvePython:
    def test_absolute_module(self):
        assert resolve_python_module("pkg.core", "top.py", PY_INDEX) == "pkg/core.py"

    def test_package_init(self):
        assert resolve_python_module("pkg.sub", "top.py", PY_INDEX) == "pkg/sub/__init__.py"

    def test_relative_sibling(self):
        assert resolve_python_module(".b", "pkg/sub/a.py", PY_INDEX) == "pkg/sub/b.py"

    def test_relative_parent(self):
        assert resolve_python_module("..core", "pkg/sub/a.py", PY_INDEX) == "pkg/core.py"

    def test_from_dot_import_submodule(self):
        assert resolve_python_module(".", "pkg/sub/a.py", PY_INDEX, ["b"]) == "pkg/sub/b.py"

    def test_from_dot_import_name_falls_back_to_init(self):
        assert resolve_python_module(".", "pkg/sub/a.py", PY_INDEX, ["Thing"]) == "pkg/sub/__init__.py"

    def test_absolute_from_import_submodule(self):
        assert resolve_python_module("pkg", "top.py", PY_INDEX, ["core"]) == "pkg/core.py"
        assert resolve_python_module("pkg", "top.py", PY_INDEX, ["sub"]) == "pkg/sub/__init__.py"

    def test_absolute_from_import_name(self):
        assert resolve_python_module("pkg", "top.py", PY_INDEX, ["Thing"]) == "pkg/__init__.py"
        assert resolve_python_module("pkg.core", "top.py", PY_INDEX, ["helper"]) == "pkg/core.py"

    def test_from_root_package(self):
        index = {"__init__.py", "util.py"}
        assert resolve_python_module(".", "main.py", index, ["util"]) == "util.py"
        assert resolve_python_module(".", "main.py", index, ["x"]) == "__init__.py"

    def test_relative_above_root(self):
        assert resolve_python_module("..x", "top.py", PY_INDEX) is None

    def test_external_module(self):
        assert resolve_python_module("os.path", "top.py", PY_INDEX) is None


class TestResolveImports:
    def test_one_edge_per_import_in_order(self):
        imports = [
            ExtractedImport(specifier="./b", kind="import", names=["x"], line=1),
            ExtractedImport(specifier="react", kind="import", names=["*"], line=2),
            ExtractedImport(specifier="./b", kind="call", names=["*"], line=3),
        ]
        deps = resolve_imports(imports, "src/a.ts", "typescript", TS_INDEX)
        assert [(d.import_specifier, d.target_path, d.kind) for d in deps] == [
            ("./b", "src/b.ts", "import"),
            ("react", None, "import"),
            ("./b", "src/b.ts", "call"),
        ]
        assert deps[0].imported_names == ["x"]
        assert all(d.source_path == "src/a.ts" for d in deps)

    def test_targets_always_in_index(self):
        imports = [ExtractedImport(specifier=s) for s in ("./b", "./dir", "../../x", "lodash")]
        for dep in resolve_imports(imports, "src/a.ts", "tsx", TS_INDEX):
            assert dep.target_path is None or dep.target_path in TS_INDEX

    def test_python(self):
        imports = [ExtractedImport(specifier=".b", names=["f"])]
        [dep] = resolve_imports(imports, "pkg/sub/a.py", "python", PY_INDEX)
        assert dep.target_path == "pkg/sub/b.py"

    def test_csharp_usings_stay_unresolved(self):
        imports = [ExtractedImport(specifier="App.Models", kind="using")]
        [dep] = resolve_imports(imports, "src/A.cs", "c_sharp", {"App/Models.cs"})
        assert dep.target_path is None
        assert dep.kind == "using"

    def test_names_copied(self):
        names = ["a"]
        [dep] = resolve_imports([ExtractedImport(specifier="./b", names=names)], "src/a.ts", "typescript", TS_INDEX)
        names.append("b")
        assert dep.imported_names == ["a"]

    def test_unsupported_language(self):
        with pytest.raises(ValueError, match="Unsupported language"):
            resolve_imports([ExtractedImport(specifier="x")], "a.rb", "ruby", set())


class TestBoundNames:
    def test_submodule_import_binds_everything(self):
        assert bound_names("python", ".", "pkg/main.py", "pkg/core.py", ["core"]) == ["*"]
        assert bound_names("python", "pkg", "top.py", "pkg/core.py", ["core"]) == ["*"]
        assert bound_names("python", "pkg", "top.py", "pkg/sub/__init__.py", ["sub"]) == ["*"]

    def test_name_from_module_kept(self):
        assert bound_names("python", "pkg.core", "top.py", "pkg/core.py", ["helper"]) == ["helper"]
        assert bound_names("python", ".", "pkg/main.py", "pkg/__init__.py", ["Thing"]) == ["Thing"]

    def test_unresolved_and_other_languages_unchanged(self):
        assert bound_names("python", ".", "pkg/main.py", None, ["core"]) == ["core"]
        assert bound_names("typescript", "./core", "src/a.ts", "src/core.ts", ["core"]) == ["core"]
