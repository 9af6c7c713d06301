"""Tests for detectors/god_modules.py."""

from archscan.analysis.detectors.base import FileNode
from archscan.analysis.detectors.god_modules import GodModuleThresholds, detect_god_modules


class TestDetectGodModules:
    def test_within_limits(self):
        files = [FileNode("a.ts", line_count=1000, complexity=150, symbol_count=40)]
        assert detect_god_modules(files) == []

    def test_lines_exceeded_low(self):
        [finding] = detect_god_modules([FileNode("a.ts", line_count=1200)])
        assert finding.category == "god_module"
        assert finding.severity == "low"
        assert finding.evidence == {
            "file": "a.ts",
            "exceeded": [{"metric": "lines", "value": 1200, "threshold": 1000}],
        }

    def test_severity_uses_worst_ratio(self):
        [medium] = detect_god_modules([FileNode("a.ts", symbol_count=60, line_count=1100)])
        assert medium.severity == "medium"
        [high] = detect_god_modules([FileNode("b.ts", complexity=300)])
        assert high.severity == "high"

    def test_all_metrics_reported(self):
        [finding] = detect_god_modules([FileNode("a.ts", line_count=2, complexity=5, symbol_count=3)],
                                       GodModuleThresholds(max_symbols=1, max_lines=1, max_complexity=1))
        assert [e["metric"] for e in finding.evidence["exceeded"]] == ["symbols", "lines", "complexity"]
        assert finding.severity == "high"

    def test_sorted_by_path(self):
        files = [FileNode("z.ts", line_count=5000), FileNode("a.ts", line_count=5000)]
        assert [f.evidence["file"] for f in detect_god_modules(files)] == ["a.ts", "z.ts"]
