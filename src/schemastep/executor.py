"""Plan execution.

Walks a planned sequence in order, one driver call per item, and stops at
the first failure. Items are never reordered or run in parallel: later
migrations may depend on schema left by earlier ones.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field

from schemastep.cancel import Cancellation, check
from schemastep.driver.base import Driver
from schemastep.errors import ExecutionError
from schemastep.logging import get_logger
from schemastep.models import PlannedMigration

log = get_logger("executor")


class ExecutionResult(BaseModel):
    """Outcome of a fully successful execution."""

    applied: list[PlannedMigration] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.applied)


def execute(
    planned: Sequence[PlannedMigration],
    driver: Driver,
    cancel: Cancellation | None = None,
) -> ExecutionResult:
    """Apply planned migrations through a driver, failing fast.

    Args:
        planned: Migrations in execution order.
        driver: Driver to apply them with.
        cancel: Optional cancellation token, checked before every item and
            passed on to the driver.

    Returns:
        ExecutionResult listing every applied item.

    Raises:
        ExecutionError: On the first failure. Carries the failing migration
            ID, its direction and how many items completed before it; the
            original error is chained as ``__cause__``.
    """
    done: list[PlannedMigration] = []

    for item in planned:
        log.info("migration_started", id=item.id, direction=item.direction.value)
        try:
            check(cancel)
            driver.migrate(item, cancel=cancel)
        except Exception as e:
            log.error(
                "migration_failed",
                id=item.id,
                direction=item.direction.value,
                completed=len(done),
                error=str(e),
            )
            raise ExecutionError(item.id, item.direction, list(done), e) from e

        done.append(item)
        log.info("migration_applied", id=item.id, direction=item.direction.value)

    if done:
        log.info("migrations_complete", count=len(done))
    else:
        log.info("no_pending_migrations")

    return ExecutionResult(applied=done)
