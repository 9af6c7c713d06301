"""Tests for extractors/git_extractor.py."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from archscan.extractors.git_extractor import get_changed_files, get_head_commit


def _git(repo: Path, *args: str) -> subprocess.CompletedProcess[str]:
    """Run a git command in the given repo directory."""
    return subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        check=True,
        cwd=str(repo),
    )


def _init_repo(repo: Path) -> None:
    _git(repo, "init")
    _git(repo, "config", "user.name", "Test Author")
    _git(repo, "config", "user.email", "test@example.com")


def _commit(repo: Path, message: str) -> str:
    """Stage all changes, commit, and return the new HEAD."""
    _git(repo, "add", "-A")
    _git(repo, "commit", "-m", message)
    return _git(repo, "rev-parse", "HEAD").stdout.strip()


@pytest.fixture
def git_repo(tmp_path):
    _init_repo(tmp_path)
    (tmp_path / "a.ts").write_text("export const a = 1;\n")
    (tmp_path / "b.ts").write_text("export const b = 1;\n")
    return tmp_path


class TestGetHeadCommit:
    def test_returns_sha(self, git_repo):
        sha = _commit(git_repo, "initial")
        assert get_head_commit(git_repo) == sha

    def test_repo_without_commits(self, git_repo):
        assert get_head_commit(git_repo) is None

    def test_not_a_repo(self, tmp_path):
        assert get_head_commit(tmp_path) is None

    def test_git_missing(self, tmp_path):
        with patch("archscan.extractors.git_extractor.subprocess.run",
                   side_effect=FileNotFoundError("git")):
            assert get_head_commit(tmp_path) is None

    def test_timeout(self, tmp_path):
        with patch("archscan.extractors.git_extractor.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(cmd="git", timeout=30)):
            assert get_head_commit(tmp_path) is None


class TestGetChangedFiles:
    def test_lists_changed_paths(self, git_repo):
        first = _commit(git_repo, "initial")
        (git_repo / "a.ts").write_text("export const a = 2;\n")
        (git_repo / "c.ts").write_text("export const c = 1;\n")
        _commit(git_repo, "second")
        assert get_changed_files(git_repo, first) == ["a.ts", "c.ts"]

    def test_deleted_paths_included(self, git_repo):
        first = _commit(git_repo, "initial")
        (git_repo / "b.ts").unlink()
        _commit(git_repo, "delete b")
        assert get_changed_files(git_repo, first) == ["b.ts"]

    def test_no_changes_is_empty_list(self, git_repo):
        first = _commit(git_repo, "initial")
        assert get_changed_files(git_repo, first, first) == []

    def test_unknown_revision(self, git_repo):
        _commit(git_repo, "initial")
        assert get_changed_files(git_repo, "0" * 40) is None

    def test_paths_relative_to_subdirectory(self, git_repo):
        sub = git_repo / "web"
        sub.mkdir()
        (sub / "x.ts").write_text("export const x = 1;\n")
        first = _commit(git_repo, "initial")
        (sub / "x.ts").write_text("export const x = 2;\n")
        (git_repo / "a.ts").write_text("export const a = 3;\n")
        _commit(git_repo, "second")
        assert get_changed_files(sub, first) == ["x.ts"]

    def test_non_ascii_and_spaced_paths_unquoted(self, git_repo):
        first = _commit(git_repo, "initial")
        (git_repo / "café.ts").write_text("export const c = 1;\n", encoding="utf-8")
        (git_repo / "my file.ts").write_text("export const m = 1;\n")
        _commit(git_repo, "second")
        assert get_changed_files(git_repo, first) == ["café.ts", "my file.ts"]

    def test_nonzero_exit(self, tmp_path):
        failed = subprocess.CompletedProcess(args=["git"], returncode=128, stdout="", stderr="fatal")
        with patch("archscan.extractors.git_extractor.subprocess.run", return_value=failed):
            assert get_changed_files(tmp_path, "abc") is None
