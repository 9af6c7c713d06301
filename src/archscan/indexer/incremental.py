"""Choose which files an indexing pass must reprocess."""

import logging
from dataclasses import dataclass
from pathlib import Path

from archscan.extractors.git_extractor import get_changed_files, get_head_commit
from archscan.indexer.file_scanner import FileInfo

logger = logging.getLogger(__name__)

STRATEGY_FULL = "full"
STRATEGY_GIT_DIFF = "git_diff"
STRATEGY_HASH = "hash"


@dataclass
class Selection:
    files: list[FileInfo]
    strategy: str  # "full", "git_diff" or "hash"
    head_commit: str | None = None


def _by_hash(files: list[FileInfo], stored_hashes: dict[str, str]) -> list[FileInfo]:
    return [f for f in files if stored_hashes.get(f.path) != f.content_hash]


def select_files(
    files: list[FileInfo],
    *,
    full: bool,
    last_commit: str | None,
    repo_path: Path,
    stored_hashes: dict[str, str],
) -> Selection:
    """Pick the files to reprocess.

    1. ``full`` selects everything.
    2. With a last indexed commit and a resolvable HEAD, a non-empty
       ``git diff last..HEAD`` selects the changed paths that still exist,
       plus any file with no stored hash.
    3. Otherwise files that are new or whose content hash changed.

    Git failures fall through to step 3 without raising.
    """
    head = get_head_commit(repo_path)
    if full:
        return Selection(files=list(files), strategy=STRATEGY_FULL, head_commit=head)

    if last_commit and head:
        changed = get_changed_files(repo_path, last_commit, head)
        if changed:
            changed_set = set(changed)
            selected = [
                f for f in files
                if f.path in changed_set or f.path not in stored_hashes
            ]
            logger.debug(
                "git diff %s..%s: %d changed paths, %d selected",
                last_commit[:12], head[:12], len(changed_set), len(selected),
            )
            return Selection(files=selected, strategy=STRATEGY_GIT_DIFF, head_commit=head)
        if changed is None:
            logger.debug("git diff unavailable, falling back to content hashes")
    else:
        logger.debug("No commit history to diff against, falling back to content hashes")

    return Selection(files=_by_hash(files, stored_hashes), strategy=STRATEGY_HASH, head_commit=head)


def find_deleted(files: list[FileInfo], stored_hashes: dict[str, str]) -> list[str]:
    """Stored paths that no longer exist on disk, sorted."""
    current = {f.path for f in files}
    return sorted(p for p in stored_hashes if p not in current)
