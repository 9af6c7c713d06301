"""Connection factory for the project database."""

import sqlite3
from pathlib import Path

from archscan.constants import DATA_DIR
from archscan.db.schema import create_schema

DB_FILENAME = "archscan.sqlite"


def db_path(repo_path: Path) -> Path:
    return repo_path / DATA_DIR / DB_FILENAME


def get_connection(repo_path: Path, *, read_only: bool = False) -> sqlite3.Connection:
    """Open the project database under ``<repo>/.archscan/``.

    Args:
        repo_path: Root of the target repository.
        read_only: Open in read-only mode (URI ?mode=ro).

    Returns:
        A configured sqlite3.Connection with WAL mode, foreign keys, and Row factory.

    Raises:
        FileNotFoundError: If ``read_only`` and the database doesn't exist yet.
    """
    db_file = db_path(repo_path)

    if read_only:
        if not db_file.exists():
            raise FileNotFoundError(
                f"Database not found at {db_file}. Run 'archscan index' first."
            )
        # RFC 8089: file:///C:/... for Windows paths
        posix = db_file.as_posix()
        if len(posix) >= 2 and posix[1] == ":":
            posix = "/" + posix
        conn = sqlite3.connect(f"file://{posix}?mode=ro", uri=True)
    else:
        db_file.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_file))

    conn.row_factory = sqlite3.Row
    if not read_only:
        conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    # Idempotent CREATE TABLE IF NOT EXISTS
    if not read_only:
        create_schema(conn)
        conn.commit()

    return conn
