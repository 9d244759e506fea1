"""Configuration loading and validation for schemastep."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from schemastep.driver.sql import DEFAULT_TABLE, validate_table_name


class DatabaseConfig(BaseModel):
    """Database configuration."""

    url: str = "sqlite:///schemastep.db"
    table: str = DEFAULT_TABLE

    @field_validator("table")
    @classmethod
    def validate_table(cls, v: str) -> str:
        """Validate table is a plain SQL identifier."""
        return validate_table_name(v)


class Config(BaseModel):
    """Root configuration for schemastep."""

    log_level: str = "INFO"
    log_json: bool = True
    migrations_dir: Path = Path("migrations")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log_level is valid."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v_upper

    @staticmethod
    def _apply_env(data: dict) -> dict:
        """Overlay SCHEMASTEP_* environment variables onto raw config data."""
        if "SCHEMASTEP_DATABASE_URL" in os.environ:
            data["database"] = {
                **(data.get("database") or {}),
                "url": os.environ["SCHEMASTEP_DATABASE_URL"],
            }
        if "SCHEMASTEP_MIGRATIONS_DIR" in os.environ:
            data["migrations_dir"] = os.environ["SCHEMASTEP_MIGRATIONS_DIR"]
        if "SCHEMASTEP_LOG_LEVEL" in os.environ:
            data["log_level"] = os.environ["SCHEMASTEP_LOG_LEVEL"]
        if "SCHEMASTEP_LOG_JSON" in os.environ:
            data["log_json"] = os.environ["SCHEMASTEP_LOG_JSON"].lower() == "true"
        return data

    @classmethod
    def load(cls, config_path: Path | str = Path("schemastep.yaml")) -> "Config":
        """Load configuration from YAML file with env var overlay.

        Args:
            config_path: Path to YAML configuration file.

        Returns:
            Validated Config instance.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config is invalid.
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"Configuration must be a mapping: {config_path}")

        return cls.model_validate(cls._apply_env(yaml_config))

    @classmethod
    def load_or_default(cls, config_path: Path | str | None = None) -> "Config":
        """Load configuration, falling back to defaults if file not found.

        Environment overrides apply to the defaults as well.

        Args:
            config_path: Optional path to YAML configuration file.

        Returns:
            Config instance (from file or defaults).
        """
        if config_path is None:
            for path in [Path("schemastep.yaml"), Path("schemastep.yml")]:
                if path.exists():
                    return cls.load(path)
            return cls.model_validate(cls._apply_env({}))

        try:
            return cls.load(config_path)
        except FileNotFoundError:
            return cls.model_validate(cls._apply_env({}))
