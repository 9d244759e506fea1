"""Migration planning.

The planner is a pure function of the catalog, the store's applied IDs and a
target: it performs no I/O, so it can be tested against synthetic applied
sets. All validation happens before anything is returned, which means a plan
that would fail (drift, missing Down blocks) fails before the executor
touches the store.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from schemastep.errors import NoRollbackAvailable, UnknownMigration
from schemastep.logging import get_logger
from schemastep.models import Catalog, Direction, PlannedMigration

log = get_logger("planner")


class Target(BaseModel):
    """Desired end state of a plan.

    Attributes:
        direction: UP applies pending migrations, DOWN rolls back applied ones.
        limit: Maximum number of migrations to plan.
        version: For UP, apply pending migrations up to and including this
            ID. For DOWN, roll back every applied migration above this ID.
    """

    model_config = ConfigDict(frozen=True)

    direction: Direction = Direction.UP
    limit: int | None = Field(default=None, ge=1)
    version: str | None = None

    @model_validator(mode="before")
    @classmethod
    def default_rollback_limit(cls, data: Any) -> Any:
        """A rollback with neither limit nor version reverts one migration."""
        if (
            isinstance(data, dict)
            and data.get("direction") == Direction.DOWN
            and data.get("limit") is None
            and data.get("version") is None
        ):
            return {**data, "limit": 1}
        return data

    @classmethod
    def pending(cls, limit: int | None = None, version: str | None = None) -> "Target":
        return cls(direction=Direction.UP, limit=limit, version=version)

    @classmethod
    def rollback(cls, count: int | None = 1, version: str | None = None) -> "Target":
        return cls(direction=Direction.DOWN, limit=count, version=version)


def find_unknown(catalog: Catalog, applied: Iterable[str]) -> list[str]:
    """Return applied IDs missing from the catalog, sorted."""
    return sorted({v for v in applied if v not in catalog})


def plan(catalog: Catalog, applied: Iterable[str], target: Target | None = None) -> list[PlannedMigration]:
    """Compute the ordered migrations needed to reach a target.

    Up plans walk the catalog in ascending ID order and emit every migration
    not yet applied. A gap (an older migration never applied while newer ones
    were) is applied in catalog order, never reordered.

    Down plans walk the applied IDs in descending order.

    Args:
        catalog: All known migrations.
        applied: IDs the store reports as applied, in any order.
        target: Desired end state. Defaults to applying everything pending.

    Returns:
        PlannedMigrations in execution order.

    Raises:
        UnknownMigration: If an applied ID (or the target version) is not in
            the catalog.
        NoRollbackAvailable: If a selected migration has no Down block.
    """
    target = target or Target.pending()
    applied_set = set(applied)

    unknown = find_unknown(catalog, applied_set)
    if unknown:
        log.error("applied_migrations_not_in_catalog", ids=unknown)
        raise UnknownMigration(unknown)

    if target.version is not None and target.version not in catalog:
        raise UnknownMigration([target.version])

    if target.direction == Direction.UP:
        planned = _plan_up(catalog, applied_set, target)
    else:
        planned = _plan_down(catalog, applied_set, target)

    log.debug(
        "plan_computed",
        direction=target.direction.value,
        count=len(planned),
        ids=[p.id for p in planned],
    )
    return planned


def _plan_up(catalog: Catalog, applied: set[str], target: Target) -> list[PlannedMigration]:
    planned: list[PlannedMigration] = []
    for migration in catalog:
        if migration.id in applied:
            continue
        if target.version is not None and migration.id > target.version:
            break
        planned.append(PlannedMigration(migration=migration, direction=Direction.UP))
        if target.limit is not None and len(planned) >= target.limit:
            break
    return planned


def _plan_down(catalog: Catalog, applied: set[str], target: Target) -> list[PlannedMigration]:
    selected = sorted(applied, reverse=True)
    if target.version is not None:
        selected = [v for v in selected if v > target.version]
    if target.limit is not None:
        selected = selected[: target.limit]

    planned: list[PlannedMigration] = []
    for migration_id in selected:
        migration = catalog.get(migration_id)
        assert migration is not None
        if not migration.reversible:
            raise NoRollbackAvailable(migration_id)
        planned.append(PlannedMigration(migration=migration, direction=Direction.DOWN))
    return planned
