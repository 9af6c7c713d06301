"""DDL for the structural model database."""

import sqlite3


def create_schema(conn: sqlite3.Connection) -> None:
    """Create tables and indexes. Idempotent."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS projects (
            id INTEGER PRIMARY KEY,
            path TEXT NOT NULL UNIQUE,
            last_indexed_commit TEXT,
            index_status TEXT NOT NULL DEFAULT 'pending',
            total_files INTEGER NOT NULL DEFAULT 0,
            total_symbols INTEGER NOT NULL DEFAULT 0,
            primary_language TEXT,
            indexed_at TEXT,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS files (
            id INTEGER PRIMARY KEY,
            project_id INTEGER NOT NULL REFERENCES projects(id),
            path TEXT NOT NULL,
            language TEXT,
            size_bytes INTEGER NOT NULL,
            line_count INTEGER NOT NULL,
            content_hash TEXT NOT NULL,
            complexity INTEGER NOT NULL DEFAULT 0,
            efferent_coupling INTEGER NOT NULL DEFAULT 0,
            afferent_coupling INTEGER NOT NULL DEFAULT 0,
            cohesion REAL NOT NULL DEFAULT 1.0,
            is_doc INTEGER NOT NULL DEFAULT 0,
            is_test INTEGER NOT NULL DEFAULT 0,
            is_config INTEGER NOT NULL DEFAULT 0,
            UNIQUE (project_id, path)
        );

        CREATE TABLE IF NOT EXISTS symbols (
            id INTEGER PRIMARY KEY,
            file_id INTEGER NOT NULL REFERENCES files(id),
            kind TEXT NOT NULL,
            name TEXT NOT NULL,
            start_line INTEGER NOT NULL,
            end_line INTEGER NOT NULL,
            exported INTEGER NOT NULL DEFAULT 0,
            signature TEXT,
            docstring TEXT,
            complexity INTEGER
        );

        CREATE TABLE IF NOT EXISTS dependencies (
            id INTEGER PRIMARY KEY,
            project_id INTEGER NOT NULL REFERENCES projects(id),
            source_file_id INTEGER NOT NULL REFERENCES files(id),
            target_file_id INTEGER REFERENCES files(id),
            import_specifier TEXT NOT NULL,
            kind TEXT NOT NULL,
            imported_names TEXT NOT NULL DEFAULT '[]'
        );

        CREATE TABLE IF NOT EXISTS symbol_references (
            id INTEGER PRIMARY KEY,
            source_file_id INTEGER NOT NULL REFERENCES files(id),
            target_symbol_id INTEGER NOT NULL REFERENCES symbols(id),
            dependency_id INTEGER NOT NULL REFERENCES dependencies(id)
        );

        CREATE TABLE IF NOT EXISTS findings (
            id INTEGER PRIMARY KEY,
            project_id INTEGER NOT NULL REFERENCES projects(id),
            category TEXT NOT NULL,
            severity TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            evidence TEXT NOT NULL DEFAULT '{}',
            suggestion TEXT,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS index_runs (
            id INTEGER PRIMARY KEY,
            project_id INTEGER NOT NULL REFERENCES projects(id),
            layer TEXT NOT NULL,
            status TEXT NOT NULL,
            files_processed INTEGER NOT NULL DEFAULT 0,
            files_total INTEGER NOT NULL DEFAULT 0,
            started_at TEXT NOT NULL,
            completed_at TEXT,
            duration_ms INTEGER,
            error TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_files_project ON files(project_id);
        CREATE INDEX IF NOT EXISTS idx_symbols_file ON symbols(file_id);
        CREATE INDEX IF NOT EXISTS idx_symbols_name ON symbols(name);
        CREATE INDEX IF NOT EXISTS idx_deps_source ON dependencies(source_file_id);
        CREATE INDEX IF NOT EXISTS idx_deps_target ON dependencies(target_file_id);
        CREATE INDEX IF NOT EXISTS idx_deps_project ON dependencies(project_id);
        CREATE INDEX IF NOT EXISTS idx_refs_target ON symbol_references(target_symbol_id);
        CREATE INDEX IF NOT EXISTS idx_refs_source ON symbol_references(source_file_id);
        CREATE INDEX IF NOT EXISTS idx_findings_project ON findings(project_id);
        CREATE INDEX IF NOT EXISTS idx_index_runs_project ON index_runs(project_id);
    """)
