"""schemastep - ordered, reversible schema migrations."""

from schemastep.errors import (
    ExecutionError,
    MigrationError,
    NoRollbackAvailable,
    ParseError,
    UnknownMigration,
)
from schemastep.executor import ExecutionResult, execute
from schemastep.models import Catalog, Direction, Migration, ParsedMigration, PlannedMigration
from schemastep.parser import parse, parse_migration
from schemastep.planner import Target, plan

__version__ = "0.1.0"

__all__ = [
    "Catalog",
    "Direction",
    "ExecutionError",
    "ExecutionResult",
    "Migration",
    "MigrationError",
    "NoRollbackAvailable",
    "ParseError",
    "ParsedMigration",
    "PlannedMigration",
    "Target",
    "UnknownMigration",
    "__version__",
    "execute",
    "parse",
    "parse_migration",
    "plan",
]
