"""Tests for cli.py."""

import json

from click.testing import CliRunner

from archscan.cli import cli


def _repo(tmp_path):
    (tmp_path / "a.ts").write_text("import './b';\nfunction foo() {}\n")
    (tmp_path / "b.ts").write_text("export function bar() {}\n")
    return tmp_path


class TestInit:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "archscan" in result.output

    def test_init(self, tmp_path):
        result = CliRunner().invoke(cli, ["init", str(tmp_path)])
        assert result.exit_code == 0
        assert (tmp_path / ".archscan" / "config.toml").exists()
        assert ".archscan/" in (tmp_path / ".gitignore").read_text()

    def test_init_keeps_existing_gitignore(self, tmp_path):
        gitignore = tmp_path / ".gitignore"
        gitignore.write_text("node_modules/\n.archscan/\n")
        result = CliRunner().invoke(cli, ["init", str(tmp_path)])
        assert result.exit_code == 0
        assert gitignore.read_text().count(".archscan/") == 1

    def test_init_appends_marker(self, tmp_path):
        gitignore = tmp_path / ".gitignore"
        gitignore.write_text("node_modules/\n")
        CliRunner().invoke(cli, ["init", str(tmp_path)])
        content = gitignore.read_text()
        assert "node_modules/" in content
        assert ".archscan/" in content

    def test_init_already_exists(self, tmp_path):
        runner = CliRunner()
        runner.invoke(cli, ["init", str(tmp_path)])
        result = runner.invoke(cli, ["init", str(tmp_path)])
        assert result.exit_code != 0
        assert "already exists" in result.output


class TestIndex:
    def test_index_reports_summary(self, tmp_path):
        result = CliRunner().invoke(cli, ["index", str(_repo(tmp_path))])
        assert result.exit_code == 0, result.output
        assert "Files scanned:   2" in result.output
        assert "Findings:" in result.output

    def test_index_with_default_config(self, tmp_path):
        runner = CliRunner()
        _repo(tmp_path)
        runner.invoke(cli, ["init", str(tmp_path)])
        result = runner.invoke(cli, ["index", str(tmp_path), "--full"])
        assert result.exit_code == 0, result.output
        assert "Strategy:        full" in result.output

    def test_no_analyze(self, tmp_path):
        result = CliRunner().invoke(cli, ["index", str(_repo(tmp_path)), "--no-analyze"])
        assert result.exit_code == 0
        assert "Findings:" not in result.output

    def test_invalid_config(self, tmp_path):
        _repo(tmp_path)
        (tmp_path / ".archscan").mkdir()
        (tmp_path / ".archscan" / "config.toml").write_text("[structural]\nmax_file_size = -1\n")
        result = CliRunner().invoke(cli, ["index", str(tmp_path)])
        assert result.exit_code == 2
        assert "Invalid .archscan/config.toml" in result.output


class TestAnalyze:
    def test_requires_index(self, tmp_path):
        result = CliRunner().invoke(cli, ["analyze", str(tmp_path)])
        assert result.exit_code == 2
        assert "archscan index" in result.output

    def test_after_index(self, tmp_path):
        runner = CliRunner()
        runner.invoke(cli, ["index", str(_repo(tmp_path)), "--no-analyze"])
        result = runner.invoke(cli, ["analyze", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "Findings:" in result.output


class TestFindings:
    def test_requires_index(self, tmp_path):
        result = CliRunner().invoke(cli, ["findings", str(tmp_path)])
        assert result.exit_code == 2

    def test_text_listing(self, tmp_path):
        runner = CliRunner()
        runner.invoke(cli, ["index", str(_repo(tmp_path))])
        result = runner.invoke(cli, ["findings", str(tmp_path), "--category", "dead_code"])
        assert result.exit_code == 0, result.output
        assert "1 unused export in b.ts" in result.output

    def test_json(self, tmp_path):
        runner = CliRunner()
        runner.invoke(cli, ["index", str(_repo(tmp_path))])
        result = runner.invoke(cli, ["findings", str(tmp_path), "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        dead = [f for f in payload if f["category"] == "dead_code"]
        assert dead[0]["evidence"]["file"] == "b.ts"

    def test_no_matches(self, tmp_path):
        runner = CliRunner()
        runner.invoke(cli, ["index", str(_repo(tmp_path))])
        result = runner.invoke(cli, ["findings", str(tmp_path), "--category", "god_module"])
        assert result.exit_code == 0
        assert "No findings." in result.output

    def test_rejects_unknown_category(self, tmp_path):
        result = CliRunner().invoke(cli, ["findings", str(tmp_path), "--category", "nope"])
        assert result.exit_code == 2


class TestStatus:
    def test_requires_index(self, tmp_path):
        result = CliRunner().invoke(cli, ["status", str(tmp_path)])
        assert result.exit_code == 2
        assert "archscan index" in result.output

    def test_after_index(self, tmp_path):
        runner = CliRunner()
        runner.invoke(cli, ["index", str(_repo(tmp_path))])
        result = runner.invoke(cli, ["status", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "Status:          indexed" in result.output
        assert "Files:           2" in result.output
        assert "Symbols:         2" in result.output
        assert "Language:        typescript" in result.output
        assert "Recent runs (2 of 2):" in result.output
        lines = result.output.splitlines()
        runs = [line.split()[:3] for line in lines if line.lstrip().startswith("#")]
        assert runs == [["#2", "analysis", "completed"], ["#1", "structural", "completed"]]

    def test_run_limit(self, tmp_path):
        runner = CliRunner()
        runner.invoke(cli, ["index", str(_repo(tmp_path))])
        result = runner.invoke(cli, ["status", str(tmp_path), "--runs", "1"])
        assert "Recent runs (1 of 2):" in result.output
        assert "structural" not in result.output

    def test_failed_run_shows_error(self, tmp_path):
        from archscan.indexer.orchestrator import index_project

        index_project(_repo(tmp_path), should_cancel=lambda: True)
        result = CliRunner().invoke(cli, ["status", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "Status:          failed" in result.output
        assert "Last commit:     n/a" in result.output
        assert "error: cancelled" in result.output

    def test_single_run(self, tmp_path):
        runner = CliRunner()
        runner.invoke(cli, ["index", str(_repo(tmp_path))])
        result = runner.invoke(cli, ["status", str(tmp_path), "--run", "1"])
        assert result.exit_code == 0, result.output
        assert "structural" in result.output
        assert "started:" in result.output
        assert "Project:" not in result.output

    def test_unknown_run(self, tmp_path):
        runner = CliRunner()
        runner.invoke(cli, ["index", str(_repo(tmp_path))])
        result = runner.invoke(cli, ["status", str(tmp_path), "--run", "99"])
        assert result.exit_code == 2
        assert "id=99" in result.output
