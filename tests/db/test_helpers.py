"""Tests for db/helpers.py."""

import pytest

from archscan.db.helpers import insert, set_columns, utc_now


class TestInsert:
    def test_returns_row_id(self, conn):
        first = insert(conn, "projects", path="/a", created_at=utc_now())
        second = insert(conn, "projects", path="/b", created_at=utc_now())
        assert second == first + 1
        row = conn.execute("SELECT path FROM projects WHERE id = ?", (second,)).fetchone()
        assert row["path"] == "/b"


class TestSetColumns:
    def test_skips_none_fields(self, conn):
        pid = insert(conn, "projects", path="/a", created_at="t0", primary_language="python")
        changed = set_columns(
            conn, "projects", {"index_status": "indexed", "primary_language": None}, "id = ?", [pid],
        )
        assert changed == 1
        row = conn.execute("SELECT * FROM projects WHERE id = ?", (pid,)).fetchone()
        assert row["index_status"] == "indexed"
        assert row["primary_language"] == "python"

    def test_no_match_returns_zero(self, conn):
        assert set_columns(conn, "projects", {"index_status": "x"}, "id = ?", [99]) == 0

    def test_all_none_rejected(self, conn):
        with pytest.raises(ValueError, match="no projects columns"):
            set_columns(conn, "projects", {"index_status": None}, "id = ?", [1])
