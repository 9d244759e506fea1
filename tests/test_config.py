"""Tests for the configuration module."""

from pathlib import Path

import pytest
import yaml

from schemastep.config import Config, DatabaseConfig
from schemastep.driver import DEFAULT_TABLE


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    """Keep SCHEMASTEP_* variables from the outer environment out of tests."""
    for name in [
        "SCHEMASTEP_DATABASE_URL",
        "SCHEMASTEP_MIGRATIONS_DIR",
        "SCHEMASTEP_LOG_LEVEL",
        "SCHEMASTEP_LOG_JSON",
    ]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    """Create a sample config file for testing."""
    config = {
        "log_level": "DEBUG",
        "log_json": False,
        "migrations_dir": str(tmp_path / "sql"),
        "database": {"url": "postgresql://app:secret@db/app", "table": "app_versions"},
    }
    config_path = tmp_path / "schemastep.yaml"
    with open(config_path, "w") as f:
        yaml.dump(config, f)
    return config_path


def test_config_load(sample_config_yaml: Path, tmp_path: Path) -> None:
    """Test loading a valid configuration file."""
    config = Config.load(sample_config_yaml)

    assert config.log_level == "DEBUG"
    assert config.log_json is False
    assert config.migrations_dir == tmp_path / "sql"
    assert config.database.url == "postgresql://app:secret@db/app"
    assert config.database.table == "app_versions"


def test_config_load_not_found() -> None:
    """Test that missing config file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        Config.load(Path("/nonexistent/schemastep.yaml"))


def test_config_load_empty_file(tmp_path: Path) -> None:
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("")

    config = Config.load(config_path)

    assert config.database.url == "sqlite:///schemastep.db"


def test_config_load_not_a_mapping(tmp_path: Path) -> None:
    config_path = tmp_path / "list.yaml"
    config_path.write_text("- one\n- two\n")

    with pytest.raises(ValueError, match="mapping"):
        Config.load(config_path)


def test_config_load_or_default_missing() -> None:
    """Test that load_or_default returns defaults when file missing."""
    config = Config.load_or_default(Path("/nonexistent/schemastep.yaml"))

    assert config.log_level == "INFO"
    assert config.log_json is True


def test_config_defaults() -> None:
    """Test that default values are set correctly."""
    config = Config()

    assert config.log_level == "INFO"
    assert config.log_json is True
    assert config.migrations_dir == Path("migrations")
    assert config.database.url == "sqlite:///schemastep.db"
    assert config.database.table == DEFAULT_TABLE


def test_config_env_override(sample_config_yaml: Path, monkeypatch) -> None:
    """Test environment variable overrides."""
    monkeypatch.setenv("SCHEMASTEP_LOG_LEVEL", "ERROR")
    monkeypatch.setenv("SCHEMASTEP_LOG_JSON", "true")
    monkeypatch.setenv("SCHEMASTEP_DATABASE_URL", "sqlite:///override.db")
    monkeypatch.setenv("SCHEMASTEP_MIGRATIONS_DIR", "/srv/migrations")

    config = Config.load(sample_config_yaml)

    assert config.log_level == "ERROR"
    assert config.log_json is True
    assert config.database.url == "sqlite:///override.db"
    # The env URL replaces only the URL, not the rest of the database block
    assert config.database.table == "app_versions"
    assert config.migrations_dir == Path("/srv/migrations")


def test_env_override_applies_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("SCHEMASTEP_DATABASE_URL", "sqlite:///from_env.db")

    config = Config.load_or_default(Path("/nonexistent/schemastep.yaml"))

    assert config.database.url == "sqlite:///from_env.db"


def test_log_level_validation() -> None:
    """Test that invalid log level is rejected."""
    with pytest.raises(ValueError):
        Config(log_level="INVALID")


def test_log_level_case_insensitive() -> None:
    """Test that log level is case insensitive."""
    config = Config(log_level="debug")
    assert config.log_level == "DEBUG"


def test_table_name_validation() -> None:
    with pytest.raises(ValueError):
        DatabaseConfig(table="versions; DROP TABLE users")


def test_table_name_from_file(tmp_path: Path) -> None:
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("database:\n  table: 'bad name'\n")

    with pytest.raises(ValueError):
        Config.load(config_path)
