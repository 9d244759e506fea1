"""Tests for the in-memory driver.

The memory driver is the reference model of the driver contract, so these
tests pin down the observable guarantees every backend must provide.
"""

import pytest

from schemastep.cancel import Cancellation
from schemastep.driver import Driver, MemoryDriver
from schemastep.errors import (
    DriverClosedError,
    MigrationCancelled,
    NoRollbackAvailable,
    StatementExecutionError,
    VersionRecordError,
)
from schemastep.models import Direction, PlannedMigration

STATEMENTS = ("s1 ok", "s2 error", "s3 ok")


def _fails_on_error(statement: str) -> bool:
    return "error" in statement


def _up(migration) -> PlannedMigration:
    return PlannedMigration(migration=migration, direction=Direction.UP)


def _down(migration) -> PlannedMigration:
    return PlannedMigration(migration=migration, direction=Direction.DOWN)


class TestMemoryDriverBasics:
    """Tests for applying and reverting."""

    def test_implements_driver_protocol(self) -> None:
        assert isinstance(MemoryDriver(), Driver)

    def test_up_records_version(self, make_migration) -> None:
        driver = MemoryDriver()

        driver.migrate(_up(make_migration("001_a")))

        assert driver.versions() == ["001_a"]
        assert driver.log == ["CREATE TABLE t_001_a (id integer);"]

    def test_versions_are_descending(self, make_migration) -> None:
        driver = MemoryDriver()
        for migration_id in ["001_a", "003_c", "002_b"]:
            driver.migrate(_up(make_migration(migration_id)))

        assert driver.versions() == ["003_c", "002_b", "001_a"]

    def test_up_then_down_round_trip(self, make_migration) -> None:
        driver = MemoryDriver(applied=["001_a"])
        before = driver.versions()
        migration = make_migration("002_b")

        driver.migrate(_up(migration))
        driver.migrate(_down(migration))

        assert driver.versions() == before

    def test_down_without_down_block(self, make_migration) -> None:
        driver = MemoryDriver(applied=["001_a"])

        with pytest.raises(NoRollbackAvailable):
            driver.migrate(_down(make_migration("001_a", reversible=False)))

        assert driver.versions() == ["001_a"]

    def test_close_then_use_fails(self) -> None:
        driver = MemoryDriver()
        driver.close()

        with pytest.raises(DriverClosedError):
            driver.versions()
        with pytest.raises(DriverClosedError):
            driver.close()


class TestMemoryDriverFailures:
    """Tests for partial failure behaviour."""

    def test_non_transactional_failure_keeps_earlier_statements(self, make_migration) -> None:
        driver = MemoryDriver(fail_on=_fails_on_error)
        migration = make_migration("001_a", up=STATEMENTS, use_transaction=False)

        with pytest.raises(StatementExecutionError) as exc_info:
            driver.migrate(_up(migration))

        assert driver.log == ["s1 ok"]
        assert driver.versions() == []
        assert exc_info.value.index == 1
        assert exc_info.value.statement == "s2 error"
        assert exc_info.value.migration_id == "001_a"

    def test_transactional_failure_applies_nothing(self, make_migration) -> None:
        driver = MemoryDriver(fail_on=_fails_on_error)
        migration = make_migration("001_a", up=STATEMENTS, use_transaction=True)

        with pytest.raises(StatementExecutionError):
            driver.migrate(_up(migration))

        assert driver.log == []
        assert driver.versions() == []

    def test_version_record_failure_transactional(self, make_migration) -> None:
        driver = MemoryDriver(fail_record=True)

        with pytest.raises(VersionRecordError):
            driver.migrate(_up(make_migration("001_a")))

        assert driver.log == []
        assert driver.versions() == []

    def test_version_record_failure_non_transactional(self, make_migration) -> None:
        """Statements stay applied while the record is missing: the diverged state."""
        driver = MemoryDriver(fail_record=True)

        with pytest.raises(VersionRecordError):
            driver.migrate(_up(make_migration("001_a", use_transaction=False)))

        assert driver.log == ["CREATE TABLE t_001_a (id integer);"]
        assert driver.versions() == []


class TestMemoryDriverCancellation:
    """Tests for cancellation mid-migration."""

    def _cancel_after_first(self, cancel: Cancellation):
        def fail_on(statement: str) -> bool:
            if statement == "s1 ok":
                cancel.cancel()
            return False

        return fail_on

    def test_cancel_non_transactional(self, make_migration) -> None:
        cancel = Cancellation()
        driver = MemoryDriver(fail_on=self._cancel_after_first(cancel))
        migration = make_migration("001_a", up=("s1 ok", "s2 ok"), use_transaction=False)

        with pytest.raises(MigrationCancelled):
            driver.migrate(_up(migration), cancel=cancel)

        assert driver.log == ["s1 ok"]
        assert driver.versions() == []

    def test_cancel_transactional(self, make_migration) -> None:
        cancel = Cancellation()
        driver = MemoryDriver(fail_on=self._cancel_after_first(cancel))
        migration = make_migration("001_a", up=("s1 ok", "s2 ok"), use_transaction=True)

        with pytest.raises(MigrationCancelled):
            driver.migrate(_up(migration), cancel=cancel)

        assert driver.log == []
        assert driver.versions() == []

    def test_expired_deadline(self, make_migration) -> None:
        driver = MemoryDriver()

        with pytest.raises(MigrationCancelled, match="deadline"):
            driver.migrate(_up(make_migration("001_a")), cancel=Cancellation(timeout=0))

        assert driver.versions() == []
