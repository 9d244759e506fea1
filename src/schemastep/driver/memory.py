"""In-memory driver.

A reference model of the driver contract, used in tests. It
tracks committed statement effects in ``log`` so partial-failure behaviour
can be observed without a database.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from schemastep.cancel import Cancellation, check
from schemastep.errors import DriverClosedError, StatementExecutionError, VersionRecordError
from schemastep.logging import get_logger
from schemastep.models import Direction, PlannedMigration

log = get_logger("driver.memory")


class MemoryDriver:
    """Driver that keeps its applied versions and statement log in memory.

    Attributes:
        applied: Applied migration IDs in the order they were applied.
        log: Statements whose effects are committed, in execution order.
        fail_on: Predicate deciding whether a statement fails.
        fail_record: When True, every version-record update fails.
    """

    def __init__(
        self,
        applied: Iterable[str] = (),
        fail_on: Callable[[str], bool] | None = None,
        fail_record: bool = False,
    ) -> None:
        self.applied: list[str] = list(applied)
        self.log: list[str] = []
        self.fail_on = fail_on
        self.fail_record = fail_record
        self.closed = False

    def _ensure_open(self) -> None:
        if self.closed:
            raise DriverClosedError("memory driver is closed")

    def _execute(self, planned: PlannedMigration, index: int, statement: str) -> None:
        if self.fail_on is not None and self.fail_on(statement):
            raise StatementExecutionError(
                planned.id,
                planned.direction,
                statement,
                index,
                RuntimeError("statement rejected"),
            )

    def _record(self, planned: PlannedMigration, applied: list[str]) -> None:
        if self.fail_record:
            raise VersionRecordError(
                planned.id, planned.direction, RuntimeError("version record rejected")
            )
        if planned.direction == Direction.UP:
            if planned.id not in applied:
                applied.append(planned.id)
        elif planned.id in applied:
            applied.remove(planned.id)

    def migrate(self, planned: PlannedMigration, cancel: Cancellation | None = None) -> None:
        self._ensure_open()
        group = planned.statements

        if group.use_transaction:
            # Stage everything, publish only once the whole group succeeded
            staged: list[str] = []
            applied = list(self.applied)
            for index, statement in enumerate(group.statements):
                check(cancel)
                self._execute(planned, index, statement)
                staged.append(statement)
            check(cancel)
            self._record(planned, applied)
            self.log.extend(staged)
            self.applied = applied
        else:
            for index, statement in enumerate(group.statements):
                check(cancel)
                self._execute(planned, index, statement)
                self.log.append(statement)
            self._record(planned, self.applied)

        log.debug("memory_migration_applied", id=planned.id, direction=planned.direction.value)

    def versions(self, cancel: Cancellation | None = None) -> list[str]:
        self._ensure_open()
        check(cancel)
        return sorted(self.applied, reverse=True)

    def close(self, cancel: Cancellation | None = None) -> None:
        self._ensure_open()
        self.closed = True
