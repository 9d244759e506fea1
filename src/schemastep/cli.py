"""Command-line interface for schemastep."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import click
import yaml
from sqlalchemy.engine import make_url

from schemastep import __version__
from schemastep.config import Config
from schemastep.errors import ExecutionError, MigrationError
from schemastep.logging import get_logger, setup_logging
from schemastep.models import Catalog, PlannedMigration

if TYPE_CHECKING:
    from schemastep.driver.sql import SqlDriver
    from schemastep.planner import Target

log = get_logger("cli")


@click.group()
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Set logging level (overrides config).",
)
@click.option(
    "--log-json/--no-log-json",
    default=None,
    help="Output logs as JSON or human-readable format (overrides config).",
)
@click.option("--database-url", default=None, help="Database URL (overrides config).")
@click.option(
    "--migrations-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Migrations directory (overrides config).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: Path | None,
    log_level: str | None,
    log_json: bool | None,
    database_url: str | None,
    migrations_dir: Path | None,
) -> None:
    """schemastep - ordered, reversible schema migrations.

    Applies SQL migration files in ID order and records each applied ID in
    the database, so running it again only applies what is new.
    """
    ctx.ensure_object(dict)

    try:
        config = Config.load_or_default(config_file)
    except (ValueError, yaml.YAMLError) as e:
        _fail(f"Invalid configuration: {e}")
    if database_url is not None:
        config.database.url = database_url
    if migrations_dir is not None:
        config.migrations_dir = migrations_dir

    ctx.obj["config"] = config
    ctx.obj["config_file"] = config_file

    effective_log_level = log_level or config.log_level
    effective_log_json = log_json if log_json is not None else config.log_json
    setup_logging(json_output=effective_log_json, level=effective_log_level)


@contextmanager
def _session(config: Config) -> Iterator[tuple["SqlDriver", Catalog]]:
    """Load the catalog and open a driver, closing it afterwards."""
    from schemastep.driver.sql import SqlDriver
    from schemastep.sources import DirectorySource

    catalog = DirectorySource(config.migrations_dir).load()
    driver = SqlDriver.connect(config.database.url, table=config.database.table)
    try:
        yield driver, catalog
    finally:
        driver.close()


def _safe_url(url: str) -> str:
    """Render a database URL with its password masked."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except Exception:
        return url


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(1)


def _echo_plan(planned: list[PlannedMigration], verb: str) -> None:
    if not planned:
        click.echo(f"Nothing to {verb}")
        return
    click.echo(f"Would {verb} {len(planned)} migration(s):")
    for item in planned:
        click.echo(f"  {item.direction.value:<4} {item.id}")


def _run(ctx: click.Context, target: "Target", dry_run: bool) -> None:
    from schemastep.executor import execute
    from schemastep.runner import plan_for

    config = ctx.obj["config"]
    verb = "apply" if target.direction.value == "up" else "roll back"

    try:
        with _session(config) as (driver, catalog):
            planned = plan_for(driver, catalog, target)
            if dry_run:
                _echo_plan(planned, verb)
                return
            result = execute(planned, driver)
    except ExecutionError as e:
        click.echo(f"Completed {e.completed} migration(s) before the failure", err=True)
        _fail(str(e))
    except (MigrationError, FileNotFoundError) as e:
        log.error("command_failed", error=str(e))
        _fail(str(e))

    if result.count == 0:
        click.echo(f"Nothing to {verb}")
    else:
        past = "Applied" if verb == "apply" else "Rolled back"
        click.echo(f"{past} {result.count} migration(s)")
        for item in result.applied:
            click.echo(f"  {item.id}")


@cli.command()
def version() -> None:
    """Print version information."""
    click.echo(f"schemastep {__version__}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show migration status."""
    from schemastep.runner import status as get_status

    config = ctx.obj["config"]

    try:
        with _session(config) as (driver, catalog):
            report = get_status(driver, catalog)
    except (MigrationError, FileNotFoundError) as e:
        _fail(str(e))

    click.echo(f"Database: {_safe_url(config.database.url)}")
    click.echo(f"Migrations: {config.migrations_dir}")
    click.echo(f"Available migrations: {len(report.migrations)}")
    for entry in report.migrations:
        state = "applied" if entry.applied else "pending"
        note = "" if entry.reversible else " (irreversible)"
        click.echo(f"  {state:<8} {entry.id}{note}")

    if report.pending:
        click.echo(f"Pending migrations: {len(report.pending)}")
    else:
        click.echo("No pending migrations")

    if report.unknown:
        click.echo(f"Unknown applied migrations: {', '.join(report.unknown)}", err=True)


@cli.command()
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Maximum migrations to apply.")
@click.option("--version", "target_version", default=None, help="Apply up to and including this ID.")
@click.option("--dry-run", is_flag=True, help="Show the plan without applying it.")
@click.pass_context
def up(ctx: click.Context, limit: int | None, target_version: str | None, dry_run: bool) -> None:
    """Apply pending migrations."""
    from schemastep.planner import Target

    _run(ctx, Target.pending(limit=limit, version=target_version), dry_run)


@cli.command()
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Migrations to roll back (default: 1).")
@click.option("--version", "target_version", default=None, help="Roll back every migration above this ID.")
@click.option("--dry-run", is_flag=True, help="Show the plan without applying it.")
@click.pass_context
def down(ctx: click.Context, limit: int | None, target_version: str | None, dry_run: bool) -> None:
    """Roll back applied migrations."""
    from schemastep.planner import Target

    _run(ctx, Target.rollback(count=limit, version=target_version), dry_run)


@cli.command()
@click.argument("name")
@click.pass_context
def new(ctx: click.Context, name: str) -> None:
    """Create a new migration file."""
    from schemastep.sources import new_migration_file

    config = ctx.obj["config"]
    try:
        path = new_migration_file(config.migrations_dir, name)
    except (ValueError, FileExistsError) as e:
        _fail(str(e))

    click.echo(f"Created migration: {path}")


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command(name="check")
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=True, path_type=Path),
    default="schemastep.yaml",
    help="Path to configuration file.",
)
def config_check(config_file: Path) -> None:
    """Validate configuration file."""
    try:
        cfg = Config.load(config_file)
        click.echo(f"Configuration valid: {config_file}")
        click.echo(f"  Database URL: {_safe_url(cfg.database.url)}")
        click.echo(f"  Version table: {cfg.database.table}")
        click.echo(f"  Migrations directory: {cfg.migrations_dir}")
        click.echo(f"  Log level: {cfg.log_level}")
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except Exception as e:
        click.echo(f"Configuration error: {e}", err=True)
        raise SystemExit(1)
