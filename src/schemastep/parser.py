"""Migration source parsing.

A migration source is SQL text split into blocks by marker comments:

    -- +migrate Up
    CREATE TABLE people (id int);

    -- +migrate Down notransaction
    DROP TABLE people;

Markers:
- ``-- +migrate Up`` / ``-- +migrate Down`` start a block. The optional
  ``notransaction`` option runs that block's statements one at a time
  instead of inside a single transaction.
- ``-- +migrate StatementBegin`` / ``-- +migrate StatementEnd`` bracket a
  statement that contains semicolons of its own (function bodies, DO blocks).

Outside StatementBegin/End a statement ends on the line whose code ends
with a semicolon.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from schemastep.errors import ParseError
from schemastep.logging import get_logger
from schemastep.models import Direction, Migration, ParsedMigration

log = get_logger("parser")

MARKER_RE = re.compile(r"^--\s*\+migrate\s+(?P<command>\S+)(?P<options>.*)$", re.IGNORECASE)

OPTION_NO_TRANSACTION = "notransaction"


@dataclass
class _Block:
    """Statements collected for one direction while parsing."""

    direction: Direction
    use_transaction: bool = True
    statements: list[str] = field(default_factory=list)

    def freeze(self) -> ParsedMigration:
        return ParsedMigration(
            statements=tuple(self.statements),
            use_transaction=self.use_transaction,
        )


def _ends_statement(line: str) -> bool:
    """Check whether a line's code (ignoring a trailing comment) ends with ';'.

    A trailing comment starts at the first whitespace-separated word that
    begins with ``--``; a ``--`` inside a word such as ``'a--b'`` is code.
    """
    last = ""
    for word in line.split():
        if word.startswith("--"):
            break
        last = word
    return last.endswith(";")


class _Parser:
    """Line-by-line state machine over one migration source."""

    def __init__(self, migration_id: str) -> None:
        self.migration_id = migration_id
        self.blocks: dict[Direction, _Block] = {}
        self.current: _Block | None = None
        self.buffer: list[str] = []
        self.in_statement_block = False
        self.lineno = 0

    def error(self, message: str, direction: Direction | None = None) -> ParseError:
        if direction is None and self.current is not None:
            direction = self.current.direction
        return ParseError(self.migration_id, message, direction=direction, line=self.lineno)

    def parse(self, source: str) -> tuple[ParsedMigration, ParsedMigration | None]:
        for self.lineno, line in enumerate(source.splitlines(), start=1):
            stripped = line.strip()

            if stripped.startswith("--"):
                match = MARKER_RE.match(stripped)
                if match:
                    self.handle_marker(match.group("command"), match.group("options").split())
                    continue
                # Plain comment: keep it only if it sits inside a statement
                if self.buffer or self.in_statement_block:
                    self.buffer.append(line)
                continue

            if self.current is None:
                if stripped:
                    raise self.error("SQL found before the first '+migrate Up' marker")
                continue

            if not stripped and not self.buffer:
                continue

            self.buffer.append(line)
            if not self.in_statement_block and _ends_statement(stripped):
                self.flush_statement()

        self.finish_block()

        up = self.blocks.get(Direction.UP)
        if up is None:
            raise ParseError(self.migration_id, "no '+migrate Up' marker found")

        down = self.blocks.get(Direction.DOWN)
        if down is None or not down.statements:
            return up.freeze(), None
        return up.freeze(), down.freeze()

    def handle_marker(self, command: str, options: list[str]) -> None:
        command = command.lower()

        if command in (Direction.UP.value, Direction.DOWN.value):
            self.start_block(Direction(command), options)
        elif command == "statementbegin":
            if self.current is None:
                raise self.error("StatementBegin found before the first '+migrate Up' marker")
            if self.in_statement_block:
                raise self.error("StatementBegin found inside another StatementBegin")
            if self.buffer_has_code():
                raise self.error("statement before StatementBegin is not terminated by ';'")
            self.buffer = []
            self.in_statement_block = True
        elif command == "statementend":
            if not self.in_statement_block:
                raise self.error("StatementEnd found without a matching StatementBegin")
            self.flush_statement()
            self.in_statement_block = False
        else:
            raise self.error(f"unknown '+migrate' command: {command}")

    def start_block(self, direction: Direction, options: list[str]) -> None:
        if direction in self.blocks:
            raise self.error(f"duplicate '+migrate {direction.value.capitalize()}' marker", direction)
        if direction == Direction.DOWN and Direction.UP not in self.blocks:
            raise self.error("'+migrate Down' marker found before '+migrate Up'", direction)

        self.finish_block()

        block = _Block(direction=direction)
        for option in options:
            if option.lower() == OPTION_NO_TRANSACTION:
                block.use_transaction = False
            else:
                raise self.error(f"unknown '+migrate' option: {option}", direction)

        self.blocks[direction] = block
        self.current = block

    def finish_block(self) -> None:
        if self.current is None:
            return
        if self.in_statement_block:
            raise self.error("block ends inside an unterminated StatementBegin")
        if self.buffer_has_code():
            raise self.error("statement is not terminated by ';'")
        self.buffer = []

    def buffer_has_code(self) -> bool:
        return any(line.strip() and not line.strip().startswith("--") for line in self.buffer)

    def flush_statement(self) -> None:
        assert self.current is not None
        statement = "\n".join(self.buffer).strip()
        self.buffer = []
        if statement:
            self.current.statements.append(statement)


def parse(migration_id: str, source: str) -> tuple[ParsedMigration, ParsedMigration | None]:
    """Split migration source into its Up and Down statement groups.

    Args:
        migration_id: ID of the migration, used in error messages.
        source: Raw migration source text.

    Returns:
        (up, down) tuple. ``down`` is None when the source has no Down block
        or the Down block has no statements (an irreversible migration).

    Raises:
        ParseError: If markers are malformed or a statement boundary cannot
            be determined.
    """
    return _Parser(migration_id).parse(source)


def parse_migration(migration_id: str, source: str) -> Migration:
    """Parse source text into a Migration."""
    up, down = parse(migration_id, source)
    log.debug(
        "migration_parsed",
        id=migration_id,
        up_statements=len(up.statements),
        down_statements=len(down.statements) if down else 0,
        up_transaction=up.use_transaction,
    )
    return Migration(id=migration_id, up=up, down=down)
