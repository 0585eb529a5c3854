"""Alembic migration tests (run against a throwaway SQLite file)."""

import os
import subprocess
import sys

import pytest
from sqlalchemy import create_engine, inspect

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _run_alembic(database_url: str, *args: str) -> subprocess.CompletedProcess[str]:
    """Run alembic with DATABASE_URL pointing at the test database."""
    env = os.environ.copy()
    env["DATABASE_URL"] = database_url
    return subprocess.run(
        [sys.executable, "-m", "alembic", *args],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=60,
        env=env,
    )


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+pysqlite:///{tmp_path / 'migrations.db'}"


def test_single_head() -> None:
    result = _run_alembic("sqlite+pysqlite:///:memory:", "heads")
    assert result.returncode == 0, result.stderr
    assert result.stdout.strip().splitlines() == ["20261019_initial (head)"]


def test_upgrade_creates_schema(database_url: str) -> None:
    result = _run_alembic(database_url, "upgrade", "head")
    assert result.returncode == 0, result.stderr

    engine = create_engine(database_url)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert {
            "users",
            "user_roles",
            "workspaces",
            "workspace_members",
            "workspace_invitations",
            "pending_intents",
        } <= tables
        invitation_uniques = {
            tuple(c["column_names"])
            for c in inspector.get_unique_constraints("workspace_invitations")
        }
        invitation_uniques |= {
            tuple(i["column_names"])
            for i in inspector.get_indexes("workspace_invitations")
            if i["unique"]
        }
        assert ("workspace_id", "email") in invitation_uniques
    finally:
        engine.dispose()


def test_downgrade_to_base(database_url: str) -> None:
    assert _run_alembic(database_url, "upgrade", "head").returncode == 0
    result = _run_alembic(database_url, "downgrade", "base")
    assert result.returncode == 0, result.stderr

    engine = create_engine(database_url)
    try:
        assert "workspace_invitations" not in inspect(engine).get_table_names()
    finally:
        engine.dispose()
