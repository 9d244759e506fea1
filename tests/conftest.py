"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from schemastep.models import Catalog, Migration, ParsedMigration


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    """Provide an empty migrations directory for tests."""
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Provide a SQLite URL for a file in the temp directory."""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def make_migration() -> Callable[..., Migration]:
    """Build migrations with one CREATE/DROP statement pair by default."""

    def factory(
        migration_id: str,
        up: tuple[str, ...] | None = None,
        down: tuple[str, ...] | None = None,
        reversible: bool = True,
        use_transaction: bool = True,
    ) -> Migration:
        table = f"t_{migration_id}"
        if up is None:
            up = (f"CREATE TABLE {table} (id integer);",)
        if down is None and reversible:
            down = (f"DROP TABLE {table};",)
        return Migration(
            id=migration_id,
            up=ParsedMigration(statements=up, use_transaction=use_transaction),
            down=ParsedMigration(statements=down, use_transaction=use_transaction) if down else None,
        )

    return factory


@pytest.fixture
def catalog(make_migration) -> Catalog:
    """Three reversible migrations: 001_a < 002_b < 003_c."""
    return Catalog(make_migration(i) for i in ["001_a", "002_b", "003_c"])
