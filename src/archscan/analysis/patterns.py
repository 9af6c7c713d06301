"""Run every structural pattern detector over a persisted project model."""

import logging
import sqlite3
import time
from dataclasses import dataclass, field

from archscan.analysis.detectors.base import EdgeNode, FileNode, Finding, SymbolNode
from archscan.analysis.detectors.circular_deps import detect_circular_deps
from archscan.analysis.detectors.coupling import detect_coupling_issues
from archscan.analysis.detectors.dead_code import detect_dead_code
from archscan.analysis.detectors.god_modules import detect_god_modules
from archscan.analysis.detectors.layering import detect_layering_violations
from archscan.config import DetectorConfig
from archscan.db import queries
from archscan.indexer.metrics import NON_DECLARATION_KINDS

logger = logging.getLogger(__name__)


@dataclass
class ProjectGraph:
    """Plain-data snapshot of a project's model, as the detectors consume it."""

    files: list[FileNode] = field(default_factory=list)
    edges: list[EdgeNode] = field(default_factory=list)
    symbols: list[SymbolNode] = field(default_factory=list)
    referenced_symbol_ids: set[int] = field(default_factory=set)

    @property
    def file_paths(self) -> list[str]:
        return [f.path for f in self.files]


@dataclass
class AnalysisResult:
    run_id: int
    findings: list[Finding]
    failed_detectors: list[str]
    duration_ms: int


def load_project_graph(conn: sqlite3.Connection, project_id: int) -> ProjectGraph:
    symbol_rows = queries.list_symbols(conn, project_id)
    declared: dict[str, int] = {}
    for row in symbol_rows:
        if row["kind"] not in NON_DECLARATION_KINDS:
            declared[row["file_path"]] = declared.get(row["file_path"], 0) + 1

    files = [
        FileNode(
            path=row["path"],
            line_count=row["line_count"],
            complexity=row["complexity"],
            symbol_count=declared.get(row["path"], 0),
            efferent_coupling=row["efferent_coupling"],
            afferent_coupling=row["afferent_coupling"],
            cohesion=row["cohesion"],
        )
        for row in queries.list_files(conn, project_id)
    ]
    edges = [
        EdgeNode(source_path=row["source_path"], target_path=row["target_path"], kind=row["kind"])
        for row in queries.list_dependencies(conn, project_id)
    ]
    symbols = [
        SymbolNode(
            id=row["id"],
            file_path=row["file_path"],
            name=row["name"],
            kind=row["kind"],
            exported=bool(row["exported"]),
            start_line=row["start_line"],
        )
        for row in symbol_rows
    ]
    return ProjectGraph(
        files=files,
        edges=edges,
        symbols=symbols,
        referenced_symbol_ids=queries.list_referenced_symbol_ids(conn, project_id),
    )


def _detectors(graph: ProjectGraph, thresholds: DetectorConfig):
    """(name, thunk) pairs; each thunk runs one detector over the graph."""
    return [
        ("circular_deps", lambda: detect_circular_deps(graph.edges, graph.file_paths)),
        ("dead_code", lambda: detect_dead_code(
            graph.symbols, graph.referenced_symbol_ids, graph.file_paths,
            medium_threshold=thresholds.dead_code_medium_threshold,
        )),
        ("god_modules", lambda: detect_god_modules(graph.files, thresholds.god_module)),
        ("layering", lambda: detect_layering_violations(
            graph.edges, layer_skip_gap=thresholds.layer_skip_gap,
        )),
        ("coupling", lambda: detect_coupling_issues(graph.files, thresholds.coupling)),
    ]


def run_detectors(graph: ProjectGraph, thresholds: DetectorConfig) -> tuple[list[Finding], list[str]]:
    """Run every detector in isolation. Returns (findings, names of detectors that raised)."""
    findings: list[Finding] = []
    failed: list[str] = []
    for name, detect in _detectors(graph, thresholds):
        try:
            found = detect()
        except Exception:
            logger.exception("Detector %s failed; skipping its findings", name)
            failed.append(name)
            continue
        logger.debug("Detector %s: %d findings", name, len(found))
        findings.extend(found)
    return findings, failed


def run_pattern_detection(
    conn: sqlite3.Connection,
    project_id: int,
    thresholds: DetectorConfig | None = None,
) -> AnalysisResult:
    """Recompute the project's findings and record an 'analysis' IndexRun.

    A detector that raises contributes nothing; the run still completes.

    Raises:
        RuntimeError: If reading the model or writing findings fails.
    """
    thresholds = thresholds or DetectorConfig()
    start = time.monotonic()
    run_id = queries.insert_index_run(conn, project_id, "analysis")
    conn.commit()

    try:
        graph = load_project_graph(conn, project_id)
        queries.update_index_run(conn, run_id, files_total=len(graph.files))
        findings, failed = run_detectors(graph, thresholds)
        queries.replace_findings(conn, project_id, findings)
        queries.update_index_run(conn, run_id, files_processed=len(graph.files))
        elapsed_ms = int((time.monotonic() - start) * 1000)
        queries.complete_index_run(conn, run_id, elapsed_ms)
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        elapsed_ms = int((time.monotonic() - start) * 1000)
        queries.fail_index_run(conn, run_id, elapsed_ms, str(e))
        conn.commit()
        raise RuntimeError(f"Analysis run {run_id} failed: {e}") from e

    logger.info(
        "Analysis run %d: %d findings in %dms%s",
        run_id, len(findings), elapsed_ms,
        f" ({len(failed)} detector(s) failed)" if failed else "",
    )
    return AnalysisResult(
        run_id=run_id,
        findings=findings,
        failed_detectors=failed,
        duration_ms=elapsed_ms,
    )
