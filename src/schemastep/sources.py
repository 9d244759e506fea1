"""Migration sources.

A source turns stored migration text into a Catalog. Parsing continues past
a broken file so every problem is reported in one go.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path

from schemastep.errors import CatalogError, ParseError
from schemastep.logging import get_logger
from schemastep.models import Catalog
from schemastep.parser import parse_migration

log = get_logger("sources")

MIGRATION_SUFFIX = ".sql"

NAME_RE = re.compile(r"^[a-z0-9_]+$")

TEMPLATE = """\
-- +migrate Up


-- +migrate Down

"""


def _build_catalog(sources: Mapping[str, str]) -> Catalog:
    catalog = Catalog()
    errors: list[ParseError] = []

    for migration_id in sorted(sources):
        try:
            catalog.add(parse_migration(migration_id, sources[migration_id]))
        except ParseError as e:
            log.error("migration_parse_failed", id=migration_id, error=str(e))
            errors.append(e)

    if errors:
        raise CatalogError(errors)
    return catalog


class MemorySource:
    """Migrations held as strings, keyed by ID."""

    def __init__(self, sources: Mapping[str, str]) -> None:
        self.sources = dict(sources)

    def load(self) -> Catalog:
        return _build_catalog(self.sources)


class DirectorySource:
    """Migrations stored as ``<id>.sql`` files in one directory.

    Attributes:
        path: Directory holding the migration files.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def files(self) -> list[Path]:
        """List migration files, sorted by name.

        Raises:
            FileNotFoundError: If the directory does not exist.
        """
        if not self.path.is_dir():
            raise FileNotFoundError(f"Migrations directory not found: {self.path}")
        return sorted(p for p in self.path.glob(f"*{MIGRATION_SUFFIX}") if p.is_file())

    def load(self) -> Catalog:
        """Parse every migration file.

        Raises:
            FileNotFoundError: If the directory does not exist.
            CatalogError: If any file failed to parse.
        """
        sources = {path.stem: path.read_text(encoding="utf-8") for path in self.files()}
        catalog = _build_catalog(sources)
        log.info("migrations_loaded", count=len(catalog), directory=str(self.path))
        return catalog


def new_migration_file(directory: Path | str, name: str, now: datetime | None = None) -> Path:
    """Create an empty migration file named ``<timestamp>_<name>.sql``.

    Args:
        directory: Migrations directory; created if missing.
        name: Lowercase snake_case description.
        now: Timestamp to use (defaults to the current local time).

    Returns:
        Path of the created file.

    Raises:
        ValueError: If the name is not lowercase snake_case.
        FileExistsError: If the file already exists.
    """
    if not NAME_RE.match(name):
        raise ValueError(f"Migration name must match [a-z0-9_]+: {name!r}")

    timestamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / f"{timestamp}_{name}{MIGRATION_SUFFIX}"
    if path.exists():
        raise FileExistsError(f"Migration already exists: {path}")

    path.write_text(TEMPLATE, encoding="utf-8")
    log.info("migration_created", path=str(path))
    return path
