"""Shared test fixtures."""

import pytest

from archscan.db import queries
from archscan.db.connection import get_connection


@pytest.fixture
def tmp_repo(tmp_path):
    """Create a temporary directory acting as a repo root."""
    return tmp_path


@pytest.fixture
def conn(tmp_repo):
    """Return a DB connection in a temp repo."""
    conn = get_connection(tmp_repo)
    yield conn
    conn.close()


@pytest.fixture
def project_id(conn, tmp_repo):
    """Register tmp_repo as a project and return its id."""
    pid = queries.upsert_project(conn, str(tmp_repo))
    conn.commit()
    return pid
