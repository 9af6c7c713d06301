"""Import resolution to file-level dependency edges."""

import posixpath
from dataclasses import dataclass, field

from archscan.constants import (
    PYTHON_RESOLVE_EXTENSIONS,
    TS_JS_COMPILED_EXTENSIONS,
    TS_JS_LANGUAGES,
    TS_JS_RESOLVE_EXTENSIONS,
    TS_SOURCE_EXTENSIONS,
)
from archscan.parsers.base import ExtractedImport


@dataclass
class ResolvedDep:
    source_path: str  # relative path of importing file
    import_specifier: str  # raw specifier as written
    target_path: str | None  # relative path of imported file, None if external/unresolved
    kind: str  # "import", "call" or "using"
    imported_names: list[str] = field(default_factory=list)


def resolve_imports(
    imports: list[ExtractedImport],
    file_path: str,
    language: str,
    file_index: set[str],
) -> list[ResolvedDep]:
    """Resolve each import to one edge.

    Args:
        imports: Extracted imports from the visitor, in source order.
        file_path: Relative path of the importing file.
        language: Language of the importing file.
        file_index: Every relative path in the project.

    Returns:
        One ResolvedDep per import. Duplicate imports are kept.
        ``target_path`` is always either None or a member of ``file_index``.
    """
    deps = []
    for imp in imports:
        if language in TS_JS_LANGUAGES:
            target = resolve_ts_js_specifier(imp.specifier, file_path, file_index)
        elif language == "python":
            target = resolve_python_module(imp.specifier, file_path, file_index, imp.names)
        elif language == "c_sharp":
            # Namespaces don't map to files
            target = None
        else:
            raise ValueError(f"Unsupported language for dependency resolution: {language!r}")
        deps.append(ResolvedDep(
            source_path=file_path,
            import_specifier=imp.specifier,
            target_path=target,
            kind=imp.kind,
            imported_names=list(imp.names),
        ))
    return deps


def _normalize(path: str) -> str | None:
    """Collapse ``.``/``..`` segments; None when the path climbs above the root.

    The root itself normalizes to ``""``.
    """
    norm = posixpath.normpath(path)
    if norm == ".." or norm.startswith("../") or norm.startswith("/"):
        return None
    return "" if norm == "." else norm


def _ts_js_candidates(target: str):
    # The root has no file of its own, only an index
    if target:
        yield target
        for ext in TS_JS_RESOLVE_EXTENSIONS:
            yield target + ext
        # import "./foo.js" written against a foo.ts source
        for compiled in TS_JS_COMPILED_EXTENSIONS:
            if target.endswith(compiled):
                stem = target[:-len(compiled)]
                for ext in TS_SOURCE_EXTENSIONS:
                    yield stem + ext
                break
    for ext in TS_JS_RESOLVE_EXTENSIONS:
        yield posixpath.join(target, "index" + ext)


def resolve_ts_js_specifier(specifier: str, file_path: str, file_index: set[str]) -> str | None:
    """Resolve a relative TS/JS specifier. Bare (package) specifiers return None."""
    if not (specifier.startswith("./") or specifier.startswith("../") or specifier in (".", "..")):
        return None
    current_dir = posixpath.dirname(file_path)
    target = _normalize(posixpath.join(current_dir, specifier))
    if target is None:
        return None
    for candidate in _ts_js_candidates(target):
        if candidate in file_index:
            return candidate
    return None


def _python_candidates(base: str):
    for ext in PYTHON_RESOLVE_EXTENSIONS:
        yield base + ext
    for ext in PYTHON_RESOLVE_EXTENSIONS:
        yield base + "/__init__" + ext


def _python_base(specifier: str, file_path: str) -> str | None:
    """Extension-less path named by a dotted module, ``""`` for the root package.

    None when a relative module climbs above the root, or the module is empty.
    """
    level = len(specifier) - len(specifier.lstrip("."))
    parts = [p for p in specifier[level:].split(".") if p]
    if not level:
        return "/".join(parts) or None
    current = posixpath.dirname(file_path)
    for _ in range(level - 1):
        if not current:
            return None
        current = posixpath.dirname(current)
    return "/".join(([current] if current else []) + parts)


def _submodule_candidates(base: str, names: list[str]) -> list[str]:
    """Files the first imported name would be if it is a submodule of ``base``."""
    first = next((n for n in names if n != "*"), None)
    if first is None:
        return []
    return list(_python_candidates(posixpath.join(base, first) if base else first))


def resolve_python_module(
    specifier: str,
    file_path: str,
    file_index: set[str],
    names: list[str] | None = None,
) -> str | None:
    """Resolve a dotted (optionally relative) Python module to a file.

    ``a.b`` probes ``a/b.py`` then ``a/b/__init__.py``. A leading run of dots
    climbs ``level - 1`` packages from the importing file's directory. For
    ``from a.b import c`` and ``from . import c`` the first imported name is
    tried as a submodule (``a/b/c.py``) before the module itself.
    """
    base = _python_base(specifier, file_path)
    if base is None:
        return None
    for candidate in _submodule_candidates(base, names or []):
        if candidate in file_index:
            return candidate

    if specifier.lstrip("."):
        candidates = _python_candidates(base)
    else:
        # ``from . import x`` binds x from the package itself
        candidates = [posixpath.join(base, "__init__.py") if base else "__init__.py"]
    for candidate in candidates:
        if candidate in file_index:
            return candidate
    return None


def bound_names(
    language: str | None,
    specifier: str,
    source_path: str,
    target_path: str | None,
    names: list[str],
) -> list[str]:
    """Names an edge binds in its target file.

    A Python ``from pkg import core`` edge resolved to the submodule
    ``pkg/core.py`` binds the whole submodule, so it counts as ``*``.
    Every other edge binds the names as written.
    """
    if language == "python" and target_path is not None:
        base = _python_base(specifier, source_path)
        if base is not None and target_path in _submodule_candidates(base, names):
            return ["*"]
    return list(names)
