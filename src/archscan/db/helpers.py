"""SQL statement builders used by db.queries."""

import sqlite3
from datetime import datetime, timezone


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def insert(conn: sqlite3.Connection, table: str, **values) -> int:
    """INSERT one row from keyword columns and return its id."""
    columns = ", ".join(values)
    placeholders = ", ".join("?" for _ in values)
    cursor = conn.execute(
        f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", list(values.values()),
    )
    return cursor.lastrowid


def set_columns(
    conn: sqlite3.Connection,
    table: str,
    fields: dict,
    where: str,
    where_params: list,
) -> int:
    """UPDATE the non-None ``fields`` on rows matching ``where``.

    Returns the number of rows changed. Raises ValueError when every field is None.
    """
    changes = {col: val for col, val in fields.items() if val is not None}
    if not changes:
        raise ValueError(f"no {table} columns to update")
    assignments = ", ".join(f"{col} = ?" for col in changes)
    cursor = conn.execute(
        f"UPDATE {table} SET {assignments} WHERE {where}",
        list(changes.values()) + list(where_params),
    )
    return cursor.rowcount
