"""Centralized file extension / language constants."""

LANGUAGE_MAP: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
    ".cs": "c_sharp",
}

SUPPORTED_LANGUAGES: frozenset[str] = frozenset(LANGUAGE_MAP.values())

TS_JS_LANGUAGES: frozenset[str] = frozenset({"typescript", "tsx", "javascript"})

# TS/JS resolution extensions for import resolution, in probe order
TS_JS_RESOLVE_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")

# Compiled-output suffixes that may point at a TS source file (import "./foo.js" -> foo.ts)
TS_JS_COMPILED_EXTENSIONS: tuple[str, ...] = (".js", ".jsx", ".mjs", ".cjs")
TS_SOURCE_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx")

PYTHON_RESOLVE_EXTENSIONS: tuple[str, ...] = (".py",)

DATA_DIR = ".archscan"


def _extension(file_path: str) -> str:
    name = file_path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    if dot <= 0:
        return ""
    return name[dot:].lower()


def language_from_extension(file_path: str) -> str | None:
    """Map file path to language name via extension, or None if unsupported."""
    return LANGUAGE_MAP.get(_extension(file_path))


def is_supported_language(language: str | None) -> bool:
    return language in SUPPORTED_LANGUAGES
