"""Pydantic models for schemastep entities.

Migrations are parsed once when loaded and never mutated afterwards, so all
models here are frozen.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemastep.errors import DuplicateMigration, NoRollbackAvailable


# =============================================================================
# Enums
# =============================================================================


class Direction(str, Enum):
    """Direction a migration is applied in."""

    UP = "up"
    DOWN = "down"


# =============================================================================
# Migration Models
# =============================================================================


class ParsedMigration(BaseModel):
    """One statement group of a migration (its Up or its Down block)."""

    model_config = ConfigDict(frozen=True)

    statements: tuple[str, ...] = ()
    use_transaction: bool = True

    @property
    def is_empty(self) -> bool:
        return not self.statements


class Migration(BaseModel):
    """A named, ordered unit of schema-change statements.

    The ID doubles as the sort key: IDs are compared as strings, so
    timestamp prefixes must be zero padded.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    up: ParsedMigration = Field(default_factory=ParsedMigration)
    down: ParsedMigration | None = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Reject blank IDs and IDs with surrounding whitespace."""
        if not v or v != v.strip():
            raise ValueError(f"Invalid migration ID: {v!r}")
        return v

    @property
    def reversible(self) -> bool:
        """True when the migration has at least one Down statement."""
        return self.down is not None and not self.down.is_empty

    def statements_for(self, direction: Direction) -> ParsedMigration:
        """Return the statement group for a direction.

        Raises:
            NoRollbackAvailable: If DOWN is requested and there is no Down block.
        """
        if direction == Direction.UP:
            return self.up
        if not self.reversible:
            raise NoRollbackAvailable(self.id)
        assert self.down is not None
        return self.down


class PlannedMigration(BaseModel):
    """A migration paired with the direction it should be applied in."""

    model_config = ConfigDict(frozen=True)

    migration: Migration
    direction: Direction

    @property
    def id(self) -> str:
        return self.migration.id

    @property
    def statements(self) -> ParsedMigration:
        return self.migration.statements_for(self.direction)

    def __str__(self) -> str:
        return f"{self.direction.value}:{self.id}"


class MigrationStatus(BaseModel):
    """Applied/pending state of one catalog migration."""

    id: str
    applied: bool
    reversible: bool


class StatusReport(BaseModel):
    """Status of a catalog against a store's applied versions."""

    migrations: list[MigrationStatus] = Field(default_factory=list)
    unknown: list[str] = Field(default_factory=list)

    @property
    def pending(self) -> list[MigrationStatus]:
        return [m for m in self.migrations if not m.applied]

    @property
    def applied(self) -> list[MigrationStatus]:
        return [m for m in self.migrations if m.applied]


# =============================================================================
# Catalog
# =============================================================================


class Catalog:
    """In-memory registry of known migrations, indexed by ID.

    Iteration always yields migrations in ascending ID order regardless of
    insertion order.
    """

    def __init__(self, migrations: Iterable[Migration] = ()) -> None:
        self._migrations: dict[str, Migration] = {}
        for migration in migrations:
            self.add(migration)

    def add(self, migration: Migration) -> None:
        """Register a migration.

        Raises:
            DuplicateMigration: If a migration with the same ID exists.
        """
        if migration.id in self._migrations:
            raise DuplicateMigration(migration.id)
        self._migrations[migration.id] = migration

    def get(self, migration_id: str) -> Migration | None:
        return self._migrations.get(migration_id)

    def ids(self) -> list[str]:
        """Return all IDs in ascending order."""
        return sorted(self._migrations)

    def __iter__(self) -> Iterator[Migration]:
        for migration_id in self.ids():
            yield self._migrations[migration_id]

    def __contains__(self, migration_id: object) -> bool:
        return migration_id in self._migrations

    def __len__(self) -> int:
        return len(self._migrations)

    def __repr__(self) -> str:
        return f"Catalog({len(self)} migrations)"
