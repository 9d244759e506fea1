"""Driver protocol definition."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from schemastep.cancel import Cancellation
from schemastep.models import PlannedMigration


@runtime_checkable
class Driver(Protocol):
    """
    Protocol for storage backends.

    A driver is responsible for:
    - Executing the statement group of a planned migration
    - Recording (Up) or removing (Down) the migration ID in its version table
    - Reporting which migration IDs are currently applied

    Calls on one driver must be serialized; a driver owns its connection
    exclusively and must not be shared between concurrent runs.
    """

    def versions(self, cancel: Cancellation | None = None) -> list[str]:
        """
        Return all applied migration IDs.

        Callers must not rely on any order unless the backend documents one.
        """
        ...

    def migrate(self, planned: PlannedMigration, cancel: Cancellation | None = None) -> None:
        """
        Apply one planned migration.

        Transactional groups run with the version-record update as one atomic
        unit: any failure leaves the store untouched. Non-transactional groups
        run statement by statement and stop at the first failure, leaving
        earlier statements applied and the version record unchanged.

        Raises:
            StatementExecutionError: A statement failed.
            VersionRecordError: Statements succeeded but recording failed.
            MigrationCancelled: The token was cancelled mid-migration.
        """
        ...

    def close(self, cancel: Cancellation | None = None) -> None:
        """Release held resources. Must not be called while migrate() runs."""
        ...
