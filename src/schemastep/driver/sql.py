"""SQLAlchemy driver.

Works against any database SQLAlchemy has a dialect for; SQLite and
PostgreSQL are the ones exercised. Migration statements are sent to the
DBAPI verbatim (no bind-parameter parsing), so colons and percent signs in
migration SQL are safe.
"""

from __future__ import annotations

import re
from typing import Any

from sqlalchemy import column, create_engine, delete, event, insert, select, text
from sqlalchemy import table as table_clause
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from schemastep.cancel import Cancellation, check
from schemastep.errors import (
    DriverClosedError,
    StatementExecutionError,
    StoreConnectionError,
    VersionRecordError,
)
from schemastep.logging import get_logger
from schemastep.models import Direction, PlannedMigration

log = get_logger("driver.sql")

DEFAULT_TABLE = "schema_migration"

TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_table_name(name: str) -> str:
    """Ensure a version table name is a plain SQL identifier."""
    if not TABLE_NAME_RE.match(name):
        raise ValueError(f"Invalid version table name: {name!r}")
    return name


def enable_sqlite_transactional_ddl(engine: Engine) -> None:
    """Make pysqlite wrap DDL in real transactions.

    The sqlite3 module only opens a transaction implicitly before DML, so a
    CREATE TABLE inside ``engine.begin()`` would otherwise commit on its own.
    Connections switched to AUTOCOMMIT are left alone.
    """
    if engine.dialect.name != "sqlite" or event.contains(engine, "begin", _emit_sqlite_begin):
        return
    event.listen(engine, "connect", _disable_pysqlite_autobegin)
    event.listen(engine, "begin", _emit_sqlite_begin)


def _disable_pysqlite_autobegin(dbapi_connection: Any, connection_record: Any) -> None:
    dbapi_connection.isolation_level = None


def _emit_sqlite_begin(conn: Connection) -> None:
    if conn.get_execution_options().get("isolation_level") != "AUTOCOMMIT":
        conn.exec_driver_sql("BEGIN")


class SqlDriver:
    """Driver backed by a SQLAlchemy engine.

    Use ``SqlDriver.connect(url)`` to let the driver own its engine, or
    ``SqlDriver.from_engine(engine)`` to reuse an engine (and its pool) owned
    by the caller.

    Attributes:
        engine: The SQLAlchemy engine.
        table_name: Name of the version-tracking table.
    """

    def __init__(self, engine: Engine, table: str = DEFAULT_TABLE, dispose_on_close: bool = True) -> None:
        self.engine = engine
        self.table_name = validate_table_name(table)
        self.dispose_on_close = dispose_on_close
        self.closed = False
        self._versions = table_clause(self.table_name, column("version"))

    @classmethod
    def connect(cls, url: str, table: str = DEFAULT_TABLE, **engine_kwargs: Any) -> SqlDriver:
        """Create an engine for ``url``, ping it and ensure the version table.

        Raises:
            StoreConnectionError: If the URL is invalid or the store cannot
                be reached.
        """
        try:
            engine = create_engine(url, **engine_kwargs)
        except (SQLAlchemyError, ImportError) as e:
            raise StoreConnectionError(f"Cannot create engine for {url!r}: {e}") from e

        try:
            return cls._open(engine, table, dispose_on_close=True)
        except Exception:
            engine.dispose()
            raise

    @classmethod
    def from_engine(cls, engine: Engine, table: str = DEFAULT_TABLE, dispose_on_close: bool = False) -> SqlDriver:
        """Wrap an existing engine. The engine is not disposed on close by default."""
        return cls._open(engine, table, dispose_on_close=dispose_on_close)

    @classmethod
    def _open(cls, engine: Engine, table: str, dispose_on_close: bool) -> SqlDriver:
        enable_sqlite_transactional_ddl(engine)
        driver = cls(engine, table=table, dispose_on_close=dispose_on_close)
        driver.ping()
        driver.ensure_version_table()
        return driver

    def ping(self) -> None:
        """Check the store is reachable."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreConnectionError(
                f"Cannot connect to {self.engine.url.render_as_string(hide_password=True)}: {e}"
            ) from e

    def ensure_version_table(self) -> None:
        """Create the version table if it does not exist. Safe on every startup."""
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    text(
                        f"CREATE TABLE IF NOT EXISTS {self.table_name} "
                        "(version varchar(255) not null primary key)"
                    )
                )
        except SQLAlchemyError as e:
            raise StoreConnectionError(f"Cannot create version table {self.table_name}: {e}") from e

    def _ensure_open(self) -> None:
        if self.closed:
            raise DriverClosedError("sql driver is closed")

    # =========================================================================
    # Driver protocol
    # =========================================================================

    def migrate(self, planned: PlannedMigration, cancel: Cancellation | None = None) -> None:
        """Apply one planned migration (see Driver.migrate)."""
        self._ensure_open()
        group = planned.statements

        log.debug(
            "sql_migration_started",
            id=planned.id,
            direction=planned.direction.value,
            statements=len(group.statements),
            transaction=group.use_transaction,
        )

        if group.use_transaction:
            # Leaving the block with an exception rolls back statements and record together
            with self.engine.begin() as conn:
                self._run_statements(conn, planned, cancel)
                check(cancel)
                self._record_version(conn, planned)
        else:
            with self.engine.connect() as conn:
                conn.execution_options(isolation_level="AUTOCOMMIT")
                self._run_statements(conn, planned, cancel)
                self._record_version(conn, planned)

    def versions(self, cancel: Cancellation | None = None) -> list[str]:
        """Return applied IDs, newest first."""
        self._ensure_open()
        check(cancel)
        query = select(self._versions.c.version).order_by(self._versions.c.version.desc())
        try:
            with self.engine.connect() as conn:
                return list(conn.execute(query).scalars().all())
        except SQLAlchemyError as e:
            raise StoreConnectionError(f"Cannot read version table {self.table_name}: {e}") from e

    def close(self, cancel: Cancellation | None = None) -> None:
        self._ensure_open()
        self.closed = True
        if self.dispose_on_close:
            self.engine.dispose()

    # =========================================================================
    # Internals
    # =========================================================================

    def _run_statements(self, conn: Connection, planned: PlannedMigration, cancel: Cancellation | None) -> None:
        for index, statement in enumerate(planned.statements.statements):
            check(cancel)
            try:
                conn.exec_driver_sql(statement, execution_options={"no_parameters": True})
            except SQLAlchemyError as e:
                raise StatementExecutionError(
                    planned.id, planned.direction, statement, index, e
                ) from e

    def _record_version(self, conn: Connection, planned: PlannedMigration) -> None:
        if planned.direction == Direction.UP:
            stmt = insert(self._versions).values(version=planned.id)
        else:
            stmt = delete(self._versions).where(self._versions.c.version == planned.id)

        try:
            conn.execute(stmt)
        except SQLAlchemyError as e:
            raise VersionRecordError(planned.id, planned.direction, e) from e
