"""Indexing orchestrator: coordinates scanning, parsing, and DB population."""

import json
import logging
import sqlite3
import time
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from archscan.analysis.detectors.base import EdgeNode, SymbolNode
from archscan.analysis.patterns import AnalysisResult, run_pattern_detection
from archscan.config import detector_config, load_config, structural_config
from archscan.constants import TS_JS_LANGUAGES
from archscan.db import queries
from archscan.db.connection import get_connection
from archscan.db.helpers import utc_now
from archscan.extractors.dependencies import (
    bound_names,
    resolve_imports,
    resolve_python_module,
    resolve_ts_js_specifier,
)
from archscan.indexer.file_scanner import (
    FileInfo,
    is_config_file,
    is_doc_file,
    is_test_file,
    scan_repo,
)
from archscan.indexer.incremental import find_deleted, select_files
from archscan.indexer.metrics import NON_DECLARATION_KINDS, compute_file_metrics
from archscan.parsers.base import ParseResult, ParserContext
from archscan.parsers.registry import parse_source

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


class _Cancelled(Exception):
    pass


@dataclass
class IndexResult:
    project_id: int
    run_id: int
    status: str  # "completed" or "cancelled"
    strategy: str  # "full", "git_diff" or "hash"
    files_scanned: int
    files_selected: int
    files_processed: int
    files_deleted: int
    parse_errors: int
    head_commit: str | None
    duration_ms: int
    analysis: AnalysisResult | None = None


def index_project(
    repo_path: Path,
    *,
    full: bool = False,
    config: dict | None = None,
    should_cancel: Callable[[], bool] | None = None,
    analyze: bool = True,
    parser_context: ParserContext | None = None,
) -> IndexResult:
    """Index a project into ``<repo>/.archscan/archscan.sqlite`` and run the detectors.

    Pipeline:
    1. Register the project, open a structural IndexRun
    2. Scan files and choose what to reprocess (full / git diff / hashes)
    3. Drop files deleted from disk
    4. Per selected file: parse, extract symbols, resolve imports, persist
    5. Re-link dangling edges, rebuild symbol references, refresh metrics
    6. Record HEAD as the last indexed commit
    7. Pattern detection (unless ``analyze`` is False)

    ``config`` is the parsed config.toml; when None it is loaded from the repo.

    Raises:
        RuntimeError: If the root is not a directory, or the structural run
            fails. A failed IndexRun is marked failed and detection does not run.
        ValueError: If the config is invalid.
    """
    start = time.monotonic()
    repo_path = repo_path.resolve()
    if not repo_path.is_dir():
        raise RuntimeError(f"Project root is not a directory: {repo_path}")
    if config is None:
        config = load_config(repo_path)
    structural = structural_config(config)
    detectors = detector_config(config)
    context = parser_context or ParserContext()

    conn = None
    try:
        conn = get_connection(repo_path)
        result = _do_index(repo_path, conn, structural, context, full, should_cancel, start)
        if analyze and result.status != CANCELLED:
            result.analysis = run_pattern_detection(conn, result.project_id, detectors)
        return result
    finally:
        if conn is not None:
            conn.close()


def analyze_project(repo_path: Path, *, config: dict | None = None) -> AnalysisResult:
    """Rerun the detectors on an already indexed project."""
    repo_path = repo_path.resolve()
    if config is None:
        config = load_config(repo_path)
    detectors = detector_config(config)
    conn = get_connection(repo_path)
    try:
        project = queries.get_project(conn, str(repo_path))
        if project is None:
            raise RuntimeError(f"Project {repo_path} has not been indexed. Run 'archscan index' first.")
        return run_pattern_detection(conn, project["id"], detectors)
    finally:
        conn.close()


def _do_index(
    repo_path: Path,
    conn: sqlite3.Connection,
    structural,
    context: ParserContext,
    full: bool,
    should_cancel: Callable[[], bool] | None,
    start: float,
) -> IndexResult:
    project_id = queries.upsert_project(conn, str(repo_path))
    project = queries.get_project(conn, str(repo_path))
    run_id = queries.insert_index_run(conn, project_id, "structural")
    queries.update_project(conn, project_id, index_status="indexing")
    conn.commit()
    logger.info("Structural run %d started for %s", run_id, repo_path)

    current_path: str | None = None
    processed = 0
    parse_errors = 0
    try:
        scanned = scan_repo(
            repo_path,
            skip_patterns=structural.skip_patterns,
            max_file_size=structural.max_file_size,
            respect_gitignore=structural.respect_gitignore,
        )
        stored_hashes = queries.get_file_hashes(conn, project_id)
        selection = select_files(
            scanned,
            full=full,
            last_commit=project["last_indexed_commit"],
            repo_path=repo_path,
            stored_hashes=stored_hashes,
        )
        logger.info(
            "Scanned %d files, %d selected (%s)",
            len(scanned), len(selection.files), selection.strategy,
        )

        deleted = find_deleted(scanned, stored_hashes)
        file_ids = queries.get_file_ids(conn, project_id)
        for path in deleted:
            current_path = path
            queries.delete_file_data(conn, file_ids.pop(path))
        current_path = None
        if deleted:
            logger.info("Removed %d deleted files", len(deleted))
        queries.update_index_run(conn, run_id, files_total=len(selection.files))
        conn.commit()

        # Complete path set before any resolution
        file_index = {fi.path for fi in scanned}

        for fi in selection.files:
            if should_cancel is not None and should_cancel():
                raise _Cancelled()
            current_path = fi.path
            ok = _index_file(conn, project_id, fi, file_index, file_ids, context)
            if not ok:
                parse_errors += 1
            processed += 1
            queries.update_index_run(conn, run_id, files_processed=processed)
            # One transaction per file
            conn.commit()
        current_path = None

        _relink_unresolved(conn, project_id, file_index, file_ids)
        _rebuild_symbol_references(conn, project_id)
        _refresh_metrics(conn, project_id)
        queries.refresh_project_totals(conn, project_id)
        queries.update_project(
            conn, project_id,
            index_status="indexed",
            indexed_at=utc_now(),
            last_indexed_commit=selection.head_commit,
        )
        elapsed_ms = int((time.monotonic() - start) * 1000)
        queries.complete_index_run(conn, run_id, elapsed_ms)
        conn.commit()
    except _Cancelled:
        conn.rollback()
        elapsed_ms = int((time.monotonic() - start) * 1000)
        queries.fail_index_run(conn, run_id, elapsed_ms, CANCELLED)
        queries.update_project(conn, project_id, index_status="failed")
        conn.commit()
        logger.info("Structural run %d cancelled after %d files", run_id, processed)
        return IndexResult(
            project_id=project_id,
            run_id=run_id,
            status=CANCELLED,
            strategy=selection.strategy,
            files_scanned=len(scanned),
            files_selected=len(selection.files),
            files_processed=processed,
            files_deleted=len(deleted),
            parse_errors=parse_errors,
            head_commit=selection.head_commit,
            duration_ms=elapsed_ms,
        )
    except (sqlite3.Error, RuntimeError, OSError) as e:
        conn.rollback()
        elapsed_ms = int((time.monotonic() - start) * 1000)
        where = f" at {current_path}" if current_path else ""
        message = f"{type(e).__name__}{where}: {e}"
        queries.fail_index_run(conn, run_id, elapsed_ms, message)
        queries.update_project(conn, project_id, index_status="failed")
        conn.commit()
        raise RuntimeError(f"Structural run {run_id} failed{where}: {e}") from e

    logger.info(
        "Structural run %d completed: %d files processed, %d parse errors, %dms",
        run_id, processed, parse_errors, elapsed_ms,
    )
    return IndexResult(
        project_id=project_id,
        run_id=run_id,
        status="completed",
        strategy=selection.strategy,
        files_scanned=len(scanned),
        files_selected=len(selection.files),
        files_processed=processed,
        files_deleted=len(deleted),
        parse_errors=parse_errors,
        head_commit=selection.head_commit,
        duration_ms=elapsed_ms,
    )


def _parse(context: ParserContext, fi: FileInfo) -> tuple[ParseResult, bool]:
    """Read and parse a file; a read or parse failure yields an empty result and ``False``."""
    if fi.language is None:
        return ParseResult(), True
    try:
        return parse_source(context, fi.abs_path.read_bytes(), fi.language), True
    except Exception as e:
        logger.warning("Parse error for %s: %s", fi.path, e)
        return ParseResult(), False


def _index_file(
    conn: sqlite3.Connection,
    project_id: int,
    fi: FileInfo,
    file_index: set[str],
    file_ids: dict[str, int],
    context: ParserContext,
) -> bool:
    """Replace one file's record, symbols and edges. Returns False on a parse failure."""
    result, ok = _parse(context, fi)

    file_id = queries.upsert_file(
        conn, project_id, fi.path,
        language=fi.language,
        size_bytes=fi.size_bytes,
        line_count=fi.line_count,
        content_hash=fi.content_hash,
        complexity=result.complexity,
        is_doc=is_doc_file(fi.path),
        is_test=is_test_file(fi.path),
        is_config=is_config_file(fi.path),
    )
    file_ids[fi.path] = file_id
    queries.clear_file_children(conn, file_id)

    for sym in result.symbols:
        queries.insert_symbol(
            conn, file_id, sym.name, sym.kind, sym.start_line, sym.end_line,
            exported=sym.exported,
            signature=sym.signature,
            docstring=sym.docstring,
            complexity=sym.complexity,
        )

    if fi.language is not None and result.imports:
        for dep in resolve_imports(result.imports, fi.path, fi.language, file_index):
            # Targets not yet persisted are linked after the loop
            target_id = file_ids.get(dep.target_path) if dep.target_path else None
            queries.insert_dependency(
                conn, project_id, file_id, target_id,
                dep.import_specifier, dep.kind, dep.imported_names,
            )
    return ok


def _resolve_row(row, file_index: set[str]) -> str | None:
    language = row["source_language"]
    specifier = row["import_specifier"]
    if language in TS_JS_LANGUAGES:
        return resolve_ts_js_specifier(specifier, row["source_path"], file_index)
    if language == "python":
        names = json.loads(row["imported_names"])
        return resolve_python_module(specifier, row["source_path"], file_index, names)
    return None


def _relink_unresolved(
    conn: sqlite3.Connection,
    project_id: int,
    file_index: set[str],
    file_ids: dict[str, int],
) -> None:
    """Point NULL-target edges at files that now exist (new files, or targets persisted later in the run)."""
    linked = 0
    for row in queries.list_unresolved_dependencies(conn, project_id):
        target = _resolve_row(row, file_index)
        if target is not None and target in file_ids:
            queries.set_dependency_target(conn, row["id"], file_ids[target])
            linked += 1
    if linked:
        logger.debug("Re-linked %d unresolved edges", linked)


def _rebuild_symbol_references(conn: sqlite3.Connection, project_id: int) -> None:
    """Derive symbol references from the names each resolved edge binds.

    ``*`` (which includes a Python submodule import) references every exported
    declaration of the target; other names reference the exported declaration
    of that name. No names (side-effect import) references nothing.
    """
    queries.clear_symbol_references(conn, project_id)

    exports: dict[int, dict[str, list[int]]] = defaultdict(lambda: defaultdict(list))
    for row in queries.list_symbols(conn, project_id):
        if row["exported"] and row["kind"] not in NON_DECLARATION_KINDS:
            exports[row["file_id"]][row["name"]].append(row["id"])

    for dep in queries.list_dependencies(conn, project_id):
        target_id = dep["target_file_id"]
        if target_id is None or target_id not in exports:
            continue
        names = bound_names(
            dep["source_language"], dep["import_specifier"], dep["source_path"],
            dep["target_path"], json.loads(dep["imported_names"]),
        )
        by_name = exports[target_id]
        if "*" in names:
            symbol_ids = [sid for ids in by_name.values() for sid in ids]
        else:
            symbol_ids = [sid for name in names for sid in by_name.get(name, ())]
        for sid in symbol_ids:
            queries.insert_symbol_reference(conn, dep["source_file_id"], sid, dep["id"])


def _refresh_metrics(conn: sqlite3.Connection, project_id: int) -> None:
    """Recompute coupling and cohesion for every file from the persisted graph."""
    outgoing: dict[str, list[EdgeNode]] = defaultdict(list)
    incoming: dict[str, list[EdgeNode]] = defaultdict(list)
    for row in queries.list_dependencies(conn, project_id):
        edge = EdgeNode(source_path=row["source_path"], target_path=row["target_path"], kind=row["kind"])
        outgoing[edge.source_path].append(edge)
        if edge.target_path is not None:
            incoming[edge.target_path].append(edge)

    symbols: dict[str, list[SymbolNode]] = defaultdict(list)
    for row in queries.list_symbols(conn, project_id):
        symbols[row["file_path"]].append(SymbolNode(
            id=row["id"], file_path=row["file_path"], name=row["name"],
            kind=row["kind"], exported=bool(row["exported"]), start_line=row["start_line"],
        ))

    for row in queries.list_files(conn, project_id):
        path = row["path"]
        m = compute_file_metrics(path, outgoing[path], incoming[path], symbols[path])
        queries.update_file_metrics(
            conn, row["id"], m.efferent_coupling, m.afferent_coupling, m.cohesion,
        )
