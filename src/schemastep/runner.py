"""Migration runner for schemastep.

This module ties the pieces together:
- Reading applied versions from a driver
- Planning against a catalog
- Executing the plan

Every function takes the driver and catalog explicitly; nothing is looked up
from process-wide state. There are no automatic retries: a failed run is
re-invoked by the caller once the cause is fixed.
"""

from __future__ import annotations

from schemastep.cancel import Cancellation
from schemastep.driver.base import Driver
from schemastep.executor import ExecutionResult, execute
from schemastep.logging import get_logger
from schemastep.models import Catalog, Migration, MigrationStatus, PlannedMigration, StatusReport
from schemastep.planner import Target, find_unknown, plan

log = get_logger("runner")


def plan_for(
    driver: Driver,
    catalog: Catalog,
    target: Target,
    cancel: Cancellation | None = None,
) -> list[PlannedMigration]:
    """Plan a target against the driver's current applied versions."""
    applied = driver.versions(cancel=cancel)
    return plan(catalog, applied, target)


def migrate(
    driver: Driver,
    catalog: Catalog,
    limit: int | None = None,
    version: str | None = None,
    cancel: Cancellation | None = None,
) -> ExecutionResult:
    """Apply pending migrations.

    Args:
        driver: Driver for the target store.
        catalog: All known migrations.
        limit: Maximum number of migrations to apply. If None, apply all.
        version: Apply pending migrations up to and including this ID.
        cancel: Optional cancellation token.

    Returns:
        ExecutionResult for the applied migrations.
    """
    planned = plan_for(driver, catalog, Target.pending(limit=limit, version=version), cancel)
    log.info("applying_migrations", count=len(planned))
    return execute(planned, driver, cancel=cancel)


def rollback(
    driver: Driver,
    catalog: Catalog,
    count: int | None = 1,
    version: str | None = None,
    cancel: Cancellation | None = None,
) -> ExecutionResult:
    """Revert the most recently applied migrations.

    Args:
        driver: Driver for the target store.
        catalog: All known migrations.
        count: Number of migrations to revert.
        version: Revert every applied migration above this ID.
        cancel: Optional cancellation token.

    Returns:
        ExecutionResult for the reverted migrations.
    """
    planned = plan_for(driver, catalog, Target.rollback(count=count, version=version), cancel)
    log.info("rolling_back_migrations", count=len(planned))
    return execute(planned, driver, cancel=cancel)


def pending(driver: Driver, catalog: Catalog, cancel: Cancellation | None = None) -> list[Migration]:
    """Get migrations that haven't been applied yet."""
    return [p.migration for p in plan_for(driver, catalog, Target.pending(), cancel)]


def status(driver: Driver, catalog: Catalog, cancel: Cancellation | None = None) -> StatusReport:
    """Report which catalog migrations are applied.

    Unlike planning, drift does not raise here: applied IDs missing from the
    catalog are listed in ``StatusReport.unknown``.
    """
    applied = set(driver.versions(cancel=cancel))
    return StatusReport(
        migrations=[
            MigrationStatus(id=m.id, applied=m.id in applied, reversible=m.reversible)
            for m in catalog
        ],
        unknown=find_unknown(catalog, applied),
    )
