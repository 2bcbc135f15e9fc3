"""Integration tests for the Alembic-backed db CLI commands."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect
from typer.testing import CliRunner

from pack_manager.cli.app import app

runner = CliRunner()

ALEMBIC_INI = str(Path(__file__).resolve().parents[3] / "alembic.ini")


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "migrated.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{path}")
    return path


def _tables(path: Path) -> list[str]:
    engine = create_engine(f"sqlite:///{path}")
    try:
        return inspect(engine).get_table_names()
    finally:
        engine.dispose()


class TestDbCommands:
    def test_upgrade_creates_operations_table(self, db_path: Path) -> None:
        result = runner.invoke(app, ["db", "upgrade", "--config", ALEMBIC_INI])

        assert result.exit_code == 0, result.output
        assert "operations" in _tables(db_path)

    def test_downgrade_drops_operations_table(self, db_path: Path) -> None:
        runner.invoke(app, ["db", "upgrade", "--config", ALEMBIC_INI])

        result = runner.invoke(app, ["db", "downgrade", "base", "--config", ALEMBIC_INI])

        assert result.exit_code == 0, result.output
        assert "operations" not in _tables(db_path)

    def test_current(self, db_path: Path) -> None:
        runner.invoke(app, ["db", "upgrade", "--config", ALEMBIC_INI])
        result = runner.invoke(app, ["db", "current", "--config", ALEMBIC_INI])
        assert result.exit_code == 0, result.output
        assert "001" in result.output

    def test_repeated_invocations_in_one_process(self, db_path: Path) -> None:
        for args in (["upgrade"], ["current"], ["downgrade", "base"], ["current"], ["upgrade"], ["current"]):
            result = runner.invoke(app, ["db", *args, "--config", ALEMBIC_INI])
            assert result.exit_code == 0, (args, result.output)

        assert "operations" in _tables(db_path)
        assert "001" in result.output
