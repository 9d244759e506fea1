"""Error taxonomy for schemastep.

Every error raised by the parser, planner, executor and drivers derives from
MigrationError so callers can catch the whole family at once. Errors carry
the identifiers needed to diagnose a failure (migration ID, direction,
statement) as attributes as well as in the message.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schemastep.models import Direction, PlannedMigration


class MigrationError(Exception):
    """Base class for all schemastep errors."""


class StoreConnectionError(MigrationError):
    """The backing store could not be reached, pinged or read."""


class DriverClosedError(MigrationError):
    """A driver method was called after close()."""


class MigrationCancelled(MigrationError):
    """The operation was cancelled or its deadline passed."""


class ParseError(MigrationError):
    """Migration source text is malformed.

    Attributes:
        migration_id: ID of the migration whose source failed to parse.
        direction: Block the problem was found in, or None when it is not
            tied to a block (e.g. a missing Up marker).
        line: 1-based line number, when known.
    """

    def __init__(
        self,
        migration_id: str,
        message: str,
        direction: Direction | None = None,
        line: int | None = None,
    ) -> None:
        self.migration_id = migration_id
        self.direction = direction
        self.line = line
        self.reason = message

        where = migration_id
        if direction is not None:
            where += f" ({direction.value})"
        if line is not None:
            where += f" line {line}"
        super().__init__(f"{where}: {message}")


class CatalogError(MigrationError):
    """One or more migration sources failed to parse."""

    def __init__(self, errors: list[ParseError]) -> None:
        self.errors = errors
        details = "; ".join(str(e) for e in errors)
        super().__init__(f"{len(errors)} migration(s) failed to parse: {details}")


class DuplicateMigration(MigrationError):
    """Two migrations share the same ID."""

    def __init__(self, migration_id: str) -> None:
        self.migration_id = migration_id
        super().__init__(f"Duplicate migration ID: {migration_id}")


class NoRollbackAvailable(MigrationError):
    """A Down was requested for a migration without a Down block."""

    def __init__(self, migration_id: str) -> None:
        self.migration_id = migration_id
        super().__init__(f"Migration {migration_id} has no down statements")


class UnknownMigration(MigrationError):
    """The store references migration IDs that are not in the catalog."""

    def __init__(self, migration_ids: list[str]) -> None:
        self.migration_ids = migration_ids
        super().__init__(f"Unknown migration(s): {', '.join(migration_ids)}")


class StatementExecutionError(MigrationError):
    """A statement failed while applying a migration.

    The underlying backend error is available as ``__cause__``.
    """

    def __init__(
        self,
        migration_id: str,
        direction: Direction,
        statement: str,
        index: int,
        error: BaseException,
    ) -> None:
        self.migration_id = migration_id
        self.direction = direction
        self.statement = statement
        self.index = index
        super().__init__(
            f"Error executing statement {index + 1} of {migration_id} "
            f"({direction.value}): {error}\n{statement}"
        )


class VersionRecordError(MigrationError):
    """Statements ran but the version record could not be updated."""

    def __init__(self, migration_id: str, direction: Direction, error: BaseException) -> None:
        self.migration_id = migration_id
        self.direction = direction
        super().__init__(
            f"Error updating migration versions for {migration_id} ({direction.value}): {error}"
        )


class ExecutionError(MigrationError):
    """Execution of a plan stopped at a failing migration.

    Attributes:
        migration_id: The migration that failed.
        direction: Direction it was being applied in.
        completed: Number of planned migrations that finished before it.
        applied: The planned migrations that finished, in order.
    """

    def __init__(
        self,
        migration_id: str,
        direction: Direction,
        applied: list[PlannedMigration],
        error: BaseException,
    ) -> None:
        self.migration_id = migration_id
        self.direction = direction
        self.applied = applied
        self.completed = len(applied)
        super().__init__(
            f"Migration {migration_id} ({direction.value}) failed after "
            f"{self.completed} successful migration(s): {error}"
        )
