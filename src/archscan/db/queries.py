"""Insert/upsert/delete and read helpers for the structural model."""

import json
import sqlite3

from archscan.db.helpers import insert, set_columns, utc_now

# -- projects --


def upsert_project(conn: sqlite3.Connection, path: str) -> int:
    """Return the id of the project rooted at ``path``, creating it if needed."""
    row = conn.execute("SELECT id FROM projects WHERE path = ?", (path,)).fetchone()
    if row:
        return row["id"]
    return insert(conn, "projects", path=path, created_at=utc_now())


def get_project(conn: sqlite3.Connection, path: str) -> sqlite3.Row | None:
    return conn.execute("SELECT * FROM projects WHERE path = ?", (path,)).fetchone()


def update_project(conn: sqlite3.Connection, project_id: int, **fields) -> None:
    """Update project columns. None values are left untouched."""
    if set_columns(conn, "projects", fields, "id = ?", [project_id]) == 0:
        raise RuntimeError(f"No project with id={project_id} to update")


def refresh_project_totals(conn: sqlite3.Connection, project_id: int) -> None:
    """Recount files/symbols and pick the most common language."""
    total_files = conn.execute(
        "SELECT COUNT(*) FROM files WHERE project_id = ?", (project_id,),
    ).fetchone()[0]
    total_symbols = conn.execute(
        "SELECT COUNT(*) FROM symbols s JOIN files f ON s.file_id = f.id "
        "WHERE f.project_id = ? AND s.kind NOT IN ('import', 'export')",
        (project_id,),
    ).fetchone()[0]
    lang = conn.execute(
        "SELECT language FROM files WHERE project_id = ? AND language IS NOT NULL "
        "GROUP BY language ORDER BY COUNT(*) DESC, language LIMIT 1",
        (project_id,),
    ).fetchone()
    conn.execute(
        "UPDATE projects SET total_files = ?, total_symbols = ?, primary_language = ? WHERE id = ?",
        (total_files, total_symbols, lang["language"] if lang else None, project_id),
    )


# -- files --


def upsert_file(
    conn: sqlite3.Connection,
    project_id: int,
    path: str,
    *,
    language: str | None,
    size_bytes: int,
    line_count: int,
    content_hash: str,
    complexity: int,
    is_doc: bool,
    is_test: bool,
    is_config: bool,
) -> int:
    """Insert or update a file record keyed on (project, path). Returns the file id.

    Coupling and cohesion are left as-is; they are refreshed project-wide after a run.
    """
    row = conn.execute(
        "SELECT id FROM files WHERE project_id = ? AND path = ?",
        (project_id, path),
    ).fetchone()
    record = {
        "language": language,
        "size_bytes": size_bytes,
        "line_count": line_count,
        "content_hash": content_hash,
        "complexity": complexity,
        "is_doc": int(is_doc),
        "is_test": int(is_test),
        "is_config": int(is_config),
    }
    if row:
        # None is stored as NULL here, not skipped
        assignments = ", ".join(f"{col} = ?" for col in record)
        conn.execute(f"UPDATE files SET {assignments} WHERE id = ?", [*record.values(), row["id"]])
        return row["id"]
    return insert(conn, "files", project_id=project_id, path=path, **record)


def update_file_metrics(
    conn: sqlite3.Connection,
    file_id: int,
    efferent_coupling: int,
    afferent_coupling: int,
    cohesion: float,
) -> None:
    conn.execute(
        "UPDATE files SET efferent_coupling = ?, afferent_coupling = ?, cohesion = ? WHERE id = ?",
        (efferent_coupling, afferent_coupling, cohesion, file_id),
    )


def get_file_hashes(conn: sqlite3.Connection, project_id: int) -> dict[str, str]:
    rows = conn.execute(
        "SELECT path, content_hash FROM files WHERE project_id = ?", (project_id,),
    ).fetchall()
    return {r["path"]: r["content_hash"] for r in rows}


def get_file_ids(conn: sqlite3.Connection, project_id: int) -> dict[str, int]:
    rows = conn.execute(
        "SELECT id, path FROM files WHERE project_id = ?", (project_id,),
    ).fetchall()
    return {r["path"]: r["id"] for r in rows}


def list_files(conn: sqlite3.Connection, project_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM files WHERE project_id = ? ORDER BY path", (project_id,),
    ).fetchall()


def clear_file_children(conn: sqlite3.Connection, file_id: int) -> None:
    """Delete a file's symbols, outgoing edges and any references touching them."""
    conn.execute(
        "DELETE FROM symbol_references WHERE source_file_id = ? "
        "OR target_symbol_id IN (SELECT id FROM symbols WHERE file_id = ?) "
        "OR dependency_id IN (SELECT id FROM dependencies WHERE source_file_id = ?)",
        (file_id, file_id, file_id),
    )
    conn.execute("DELETE FROM dependencies WHERE source_file_id = ?", (file_id,))
    conn.execute("DELETE FROM symbols WHERE file_id = ?", (file_id,))


def delete_file_data(conn: sqlite3.Connection, file_id: int) -> None:
    """Remove a file and everything it owns. Incoming edges become unresolved."""
    clear_file_children(conn, file_id)
    conn.execute(
        "UPDATE dependencies SET target_file_id = NULL WHERE target_file_id = ?", (file_id,),
    )
    conn.execute("DELETE FROM files WHERE id = ?", (file_id,))


# -- symbols --


def insert_symbol(
    conn: sqlite3.Connection,
    file_id: int,
    name: str,
    kind: str,
    start_line: int,
    end_line: int,
    exported: bool = False,
    signature: str | None = None,
    docstring: str | None = None,
    complexity: int | None = None,
) -> int:
    """Insert a symbol. Returns the symbol id."""
    return insert(
        conn, "symbols",
        file_id=file_id, kind=kind, name=name, start_line=start_line, end_line=end_line,
        exported=int(exported), signature=signature, docstring=docstring, complexity=complexity,
    )


def list_symbols(conn: sqlite3.Connection, project_id: int) -> list[sqlite3.Row]:
    """All symbols of a project, with their file path."""
    return conn.execute(
        "SELECT s.*, f.path AS file_path FROM symbols s JOIN files f ON s.file_id = f.id "
        "WHERE f.project_id = ? ORDER BY f.path, s.start_line, s.id",
        (project_id,),
    ).fetchall()


# -- dependencies --


def insert_dependency(
    conn: sqlite3.Connection,
    project_id: int,
    source_file_id: int,
    target_file_id: int | None,
    import_specifier: str,
    kind: str,
    imported_names: list[str] | None = None,
) -> int:
    """Insert a file-level dependency edge. Returns the dependency id."""
    return insert(
        conn, "dependencies",
        project_id=project_id,
        source_file_id=source_file_id,
        target_file_id=target_file_id,
        import_specifier=import_specifier,
        kind=kind,
        imported_names=json.dumps(imported_names or []),
    )


def list_dependencies(conn: sqlite3.Connection, project_id: int) -> list[sqlite3.Row]:
    """All edges of a project with source path and language, and target path (NULL when unresolved)."""
    return conn.execute(
        "SELECT d.*, s.path AS source_path, s.language AS source_language, t.path AS target_path "
        "FROM dependencies d "
        "JOIN files s ON d.source_file_id = s.id "
        "LEFT JOIN files t ON d.target_file_id = t.id "
        "WHERE d.project_id = ? ORDER BY s.path, d.id",
        (project_id,),
    ).fetchall()


def list_unresolved_dependencies(conn: sqlite3.Connection, project_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        "SELECT d.*, s.path AS source_path, s.language AS source_language "
        "FROM dependencies d JOIN files s ON d.source_file_id = s.id "
        "WHERE d.project_id = ? AND d.target_file_id IS NULL ORDER BY d.id",
        (project_id,),
    ).fetchall()


def set_dependency_target(conn: sqlite3.Connection, dependency_id: int, target_file_id: int) -> None:
    conn.execute(
        "UPDATE dependencies SET target_file_id = ? WHERE id = ?", (target_file_id, dependency_id),
    )


# -- symbol references --


def clear_symbol_references(conn: sqlite3.Connection, project_id: int) -> None:
    conn.execute(
        "DELETE FROM symbol_references WHERE source_file_id IN "
        "(SELECT id FROM files WHERE project_id = ?)",
        (project_id,),
    )


def insert_symbol_reference(
    conn: sqlite3.Connection,
    source_file_id: int,
    target_symbol_id: int,
    dependency_id: int,
) -> int:
    return insert(
        conn, "symbol_references",
        source_file_id=source_file_id, target_symbol_id=target_symbol_id, dependency_id=dependency_id,
    )


def list_referenced_symbol_ids(conn: sqlite3.Connection, project_id: int) -> set[int]:
    rows = conn.execute(
        "SELECT DISTINCT r.target_symbol_id FROM symbol_references r "
        "JOIN files f ON r.source_file_id = f.id WHERE f.project_id = ?",
        (project_id,),
    ).fetchall()
    return {r[0] for r in rows}


# -- findings --


def replace_findings(conn: sqlite3.Connection, project_id: int, findings) -> int:
    """Swap the project's findings for ``findings``. Returns the number inserted."""
    conn.execute("DELETE FROM findings WHERE project_id = ?", (project_id,))
    now = utc_now()
    for f in findings:
        insert(
            conn, "findings",
            project_id=project_id,
            category=f.category,
            severity=f.severity,
            title=f.title,
            description=f.description,
            evidence=json.dumps(f.evidence, sort_keys=True),
            suggestion=f.suggestion,
            created_at=now,
        )
    return len(findings)


def list_findings(
    conn: sqlite3.Connection,
    project_id: int,
    *,
    category: str | None = None,
    severity: str | None = None,
) -> list[sqlite3.Row]:
    sql = "SELECT * FROM findings WHERE project_id = ?"
    params: list = [project_id]
    if category:
        sql += " AND category = ?"
        params.append(category)
    if severity:
        sql += " AND severity = ?"
        params.append(severity)
    sql += (
        " ORDER BY CASE severity WHEN 'high' THEN 0 WHEN 'medium' THEN 1 ELSE 2 END,"
        " category, id"
    )
    return conn.execute(sql, params).fetchall()


# -- index runs --


def insert_index_run(
    conn: sqlite3.Connection,
    project_id: int,
    layer: str,
    files_total: int = 0,
) -> int:
    """Start a run in status 'running'. Returns the run id."""
    return insert(
        conn, "index_runs",
        project_id=project_id, layer=layer, status="running",
        files_processed=0, files_total=files_total, started_at=utc_now(),
    )


def update_index_run(
    conn: sqlite3.Connection,
    run_id: int,
    *,
    files_processed: int | None = None,
    files_total: int | None = None,
) -> None:
    changed = set_columns(
        conn, "index_runs",
        {"files_processed": files_processed, "files_total": files_total},
        "id = ? AND status = 'running'", [run_id],
    )
    if changed == 0:
        raise RuntimeError(f"No running index_run with id={run_id} to update")


def _finish_index_run(
    conn: sqlite3.Connection,
    run_id: int,
    status: str,
    duration_ms: int,
    error: str | None,
) -> None:
    # Guarded on 'running' so a run is terminated exactly once
    cursor = conn.execute(
        "UPDATE index_runs SET status = ?, completed_at = ?, duration_ms = ?, error = ? "
        "WHERE id = ? AND status = 'running'",
        (status, utc_now(), duration_ms, error, run_id),
    )
    if cursor.rowcount == 0:
        raise RuntimeError(f"index_run id={run_id} is not running; cannot mark {status}")


def complete_index_run(conn: sqlite3.Connection, run_id: int, duration_ms: int) -> None:
    _finish_index_run(conn, run_id, "completed", duration_ms, None)


def fail_index_run(conn: sqlite3.Connection, run_id: int, duration_ms: int, error: str) -> None:
    _finish_index_run(conn, run_id, "failed", duration_ms, error)


def get_index_run(conn: sqlite3.Connection, run_id: int) -> sqlite3.Row | None:
    return conn.execute("SELECT * FROM index_runs WHERE id = ?", (run_id,)).fetchone()


def list_index_runs(conn: sqlite3.Connection, project_id: int) -> list[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM index_runs WHERE project_id = ? ORDER BY id", (project_id,),
    ).fetchall()
