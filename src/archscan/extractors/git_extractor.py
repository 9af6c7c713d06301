"""Git queries used for incremental change detection.

Every failure (git missing, not a repository, timeout, non-zero exit) is
reported as None so callers can fall back to content hashing.
"""

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 30


def _run_git(args: list[str], repo_path: Path) -> str | None:
    """Run a git command, returning stdout or None on any failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=False,
            cwd=str(repo_path),
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        logger.debug("git not found on PATH")
        return None
    except subprocess.TimeoutExpired:
        logger.debug("git %s timed out after %ds", " ".join(args), GIT_TIMEOUT_SECONDS)
        return None
    except OSError as e:
        logger.debug("git %s failed to start: %s", " ".join(args), e)
        return None
    if result.returncode != 0:
        logger.debug("git %s exited %d: %s", " ".join(args), result.returncode, result.stderr.strip())
        return None
    return result.stdout


def get_head_commit(repo_path: Path) -> str | None:
    """Return the HEAD commit hash, or None when it cannot be determined."""
    out = _run_git(["rev-parse", "HEAD"], repo_path)
    if out is None:
        return None
    sha = out.strip()
    return sha or None


def get_changed_files(repo_path: Path, since_commit: str, until_commit: str = "HEAD") -> list[str] | None:
    """Paths changed between two revisions, relative to ``repo_path``.

    Returns None when git cannot answer (unknown revision, not a repo, ...).
    An empty list means git answered and nothing changed.
    """
    out = _run_git(
        ["diff", "--name-only", "--no-renames", "--relative", "-z", f"{since_commit}..{until_commit}"],
        repo_path,
    )
    if out is None:
        return None
    # -z output is NUL-separated and unquoted
    return sorted({path for path in out.split("\0") if path})
