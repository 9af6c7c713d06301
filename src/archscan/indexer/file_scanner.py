"""Scan a repository for project files."""

import hashlib
import logging
import re
from dataclasses import dataclass
from pathlib import Path

import pathspec

from archscan.config import DEFAULT_MAX_FILE_SIZE, DEFAULT_SKIP_PATTERNS
from archscan.constants import language_from_extension

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileInfo:
    """Metadata for a single scanned file. Content is re-read only when parsed."""

    path: str  # relative to repo root, forward-slash separated
    abs_path: Path
    language: str | None
    content_hash: str  # SHA-256 hex of the raw bytes
    size_bytes: int
    line_count: int


def glob_to_regex(pattern: str) -> re.Pattern:
    """Translate a skip glob into an anchored regex.

    ``*`` matches within one path segment, ``**/`` matches zero or more
    leading segments, a bare ``**`` matches anything, ``?`` matches one
    non-slash character.
    """
    out = ["^"]
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == "*":
            if pattern[i + 1:i + 2] == "*":
                if pattern[i + 2:i + 3] == "/":
                    out.append("(?:.*/)?")
                    i += 3
                else:
                    out.append(".*")
                    i += 2
            else:
                out.append("[^/]*")
                i += 1
        elif c == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(c))
            i += 1
    out.append("$")
    return re.compile("".join(out))


class SkipMatcher:
    """Compiled set of skip globs."""

    def __init__(self, patterns) -> None:
        self.patterns = tuple(patterns)
        self._compiled = [glob_to_regex(p) for p in self.patterns]

    def matches(self, rel_path: str) -> bool:
        return any(rx.match(rel_path) for rx in self._compiled)

    def matches_dir(self, rel_path: str) -> bool:
        return self.matches(rel_path + "/") or self.matches(rel_path)


def _load_gitignore_spec(repo_path: Path) -> pathspec.PathSpec | None:
    """Parse .gitignore at repo root. Returns None if absent."""
    gitignore = repo_path / ".gitignore"
    if not gitignore.is_file():
        return None
    text = gitignore.read_text(encoding="utf-8", errors="replace")
    return pathspec.PathSpec.from_lines("gitwildmatch", text.splitlines())


_CHUNK_SIZE = 65536


def hash_file(file_path: Path) -> tuple[str, int, int]:
    """Stream a file once for (SHA-256 hex of the raw bytes, size in bytes, line count).

    The line count is the number of newline-separated pieces: an empty file
    has one line and a trailing newline adds one. No newline normalization.
    """
    h = hashlib.sha256()
    size = 0
    newlines = 0
    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(_CHUNK_SIZE)
            if not chunk:
                break
            h.update(chunk)
            size += len(chunk)
            newlines += chunk.count(b"\n")
    return h.hexdigest(), size, newlines + 1


def _walk_repo(
    repo_path: Path,
    skip: SkipMatcher,
    gitignore_spec: pathspec.PathSpec | None,
):
    """Yield (relative_posix_path, abs_path) for every candidate file."""
    stack: list[Path] = [repo_path]
    while stack:
        current = stack.pop()
        try:
            entries = sorted(current.iterdir(), key=lambda p: p.name)
        except OSError as e:
            if current == repo_path:
                raise RuntimeError(f"Cannot enumerate project root {repo_path}: {e}") from e
            logger.warning("Cannot read directory %s: %s", current, e)
            continue

        dirs: list[Path] = []
        files: list[Path] = []
        for entry in entries:
            if entry.is_symlink():
                continue
            if entry.is_dir():
                dirs.append(entry)
            elif entry.is_file():
                files.append(entry)

        # Reversed so the stack pops subdirectories in name order
        for d in reversed(dirs):
            rel = d.relative_to(repo_path).as_posix()
            if skip.matches_dir(rel):
                continue
            if gitignore_spec is not None and gitignore_spec.match_file(rel + "/"):
                continue
            stack.append(d)

        for f in files:
            rel = f.relative_to(repo_path).as_posix()
            if skip.matches(rel):
                continue
            if gitignore_spec is not None and gitignore_spec.match_file(rel):
                continue
            yield rel, f


def scan_repo(
    repo_path: Path,
    *,
    skip_patterns=DEFAULT_SKIP_PATTERNS,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    respect_gitignore: bool = True,
) -> list[FileInfo]:
    """Scan a repository and return FileInfo for every project file.

    Files in unsupported languages are kept (language=None) so that callers can
    still classify them. Oversized and unreadable files are logged and skipped.
    Results are sorted by relative path.

    Raises:
        RuntimeError: If the project root itself cannot be enumerated.
    """
    repo_path = repo_path.resolve()
    if not repo_path.is_dir():
        raise RuntimeError(f"Project root is not a directory: {repo_path}")

    skip = SkipMatcher(skip_patterns)
    gitignore_spec = _load_gitignore_spec(repo_path) if respect_gitignore else None
    results: list[FileInfo] = []

    for rel_path, abs_path in _walk_repo(repo_path, skip, gitignore_spec):
        try:
            size = abs_path.stat().st_size
            if size > max_file_size:
                logger.warning("Skipping oversized file (%d bytes): %s", size, rel_path)
                continue
            content_hash, size_bytes, line_count = hash_file(abs_path)
        except OSError as e:
            logger.warning("Skipping unreadable file %s: %s", rel_path, e)
            continue

        results.append(
            FileInfo(
                path=rel_path,
                abs_path=abs_path,
                language=language_from_extension(rel_path),
                content_hash=content_hash,
                size_bytes=size_bytes,
                line_count=line_count,
            )
        )

    results.sort(key=lambda fi: fi.path)
    return results


_DOC_SUFFIXES = (".md", ".rst", ".txt", ".adoc")
_DOC_MARKERS = ("readme", "changelog", "contributing")
_TEST_MARKERS = (".test.", ".spec.", "__tests__", "/test/", "/tests/")
_TEST_SUFFIXES = ("_test.py", "_test.go")
_CONFIG_SUFFIXES = (".json", ".yaml", ".yml", ".toml", ".ini", ".env", ".config.js", ".config.ts")
_CONFIG_MARKERS = ("tsconfig", "package.json")


def is_doc_file(path: str) -> bool:
    lower = path.lower()
    return lower.endswith(_DOC_SUFFIXES) or any(m in lower for m in _DOC_MARKERS)


def is_test_file(path: str) -> bool:
    lower = path.lower()
    # Leading slash so top-level test/ and tests/ directories match too
    padded = "/" + lower
    if any(m in padded for m in _TEST_MARKERS):
        return True
    name = lower.rsplit("/", 1)[-1]
    return lower.endswith(_TEST_SUFFIXES) or (name.startswith("test_") and name.endswith(".py"))


def is_config_file(path: str) -> bool:
    lower = path.lower()
    return lower.endswith(_CONFIG_SUFFIXES) or any(m in lower for m in _CONFIG_MARKERS)
