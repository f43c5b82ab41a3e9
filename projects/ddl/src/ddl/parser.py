"""DDL parsing into a schema graph.

Parsing runs in two passes. The first pass reads every statement into
table drafts keyed by name and collects key and foreign key constraints.
The second pass applies the constraints against the complete set of
drafts, so a constraint may name a table declared further down, and then
builds the graph through the mutation engine. Nothing is returned unless
every statement parses and every reference resolves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Literal, NamedTuple

from ddl.tokenizer import Statement, Token, TokenKind, split_statements
from ddl.type_conversion import (
    TYPE_CONTINUATIONS,
    TYPE_KEYWORDS,
    sql_to_column_type,
)
from erd.engine import MutationEngine
from erd.errors import ParseError, UnresolvedReferenceError, UnsupportedTypeError
from erd.layout import grid_positions
from erd.types import ColumnSpec, ColumnType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from erd.graph import SchemaGraph
    from erd.settings import LayoutSettings
    from erd.types import Position

logger = getLogger(__name__)

type ForeignKeyPair = tuple[tuple[str, str], tuple[str, str]]

# Words that start a column option; DEFAULT expressions stop before them
COLUMN_OPTION_WORDS = frozenset(
    (
        "CONSTRAINT",
        "NOT",
        "NULL",
        "PRIMARY",
        "UNIQUE",
        "REFERENCES",
        "CHECK",
        "DEFAULT",
        "COLLATE",
        "GENERATED",
        "AUTO_INCREMENT",
        "AUTOINCREMENT",
        "IDENTITY",
        "COMMENT",
    ),
)


class ParseResult(NamedTuple):
    """A parsed graph and the initial position of each table."""

    graph: SchemaGraph
    positions: dict[str, Position]


@dataclass
class ColumnDraft:
    """Column read from a CREATE TABLE body."""

    name: str
    type: ColumnType
    primary_key: bool = False
    unique: bool = False
    nullable: bool = True


@dataclass
class TableDraft:
    """Table read from a CREATE TABLE statement."""

    name: str
    statement: Statement
    columns: dict[str, ColumnDraft] = field(default_factory=dict)


@dataclass
class KeyDraft:
    """PRIMARY KEY or UNIQUE constraint waiting for pass two."""

    kind: Literal["primary", "unique"]
    table: str
    columns: list[str]
    statement: Statement
    token: Token


@dataclass
class ForeignKeyDraft:
    """FOREIGN KEY constraint waiting for pass two."""

    table: str
    columns: list[str]
    referenced_table: str
    referenced_columns: list[str] | None
    statement: Statement
    token: Token


@dataclass
class Drafts:
    """Everything collected by pass one."""

    tables: dict[str, TableDraft] = field(default_factory=dict)
    keys: list[KeyDraft] = field(default_factory=list)
    foreign_keys: list[ForeignKeyDraft] = field(default_factory=list)


class Cursor:
    """Sequential reader over the tokens of one statement or clause."""

    def __init__(
        self,
        tokens: Sequence[Token],
        statement: Statement,
        source: str,
    ) -> None:
        """Start reading at the first token."""
        self.tokens = tokens
        self.statement = statement
        self.source = source
        self.index = 0

    def error(
        self,
        message: str,
        token: Token | None = None,
        error: type[ParseError] = ParseError,
    ) -> ParseError:
        """Build an error located at a token, the current one by default."""
        token = token or self.peek() or (self.tokens[-1] if self.tokens else None)
        position = token.start if token else self.statement.start
        return error(
            message,
            statement=self.statement.text,
            position=position,
            source=self.source,
        )

    @property
    def at_end(self) -> bool:
        """True when every token has been consumed."""
        return self.index >= len(self.tokens)

    def peek(self, offset: int = 0) -> Token | None:
        """Look ahead without consuming."""
        index = self.index + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def advance(self) -> Token:
        """Consume and return the next token."""
        token = self.peek()
        if token is None:
            msg = "Unexpected end of statement"
            raise self.error(msg)
        self.index += 1
        return token

    def at_words(self, *words: str) -> bool:
        """Check whether the next tokens are the given keywords."""
        return all(
            (token := self.peek(offset)) is not None and token.is_word(word)
            for offset, word in enumerate(words)
        )

    def accept(self, *words: str) -> bool:
        """Consume the given keyword sequence if it comes next."""
        if self.at_words(*words):
            self.index += len(words)
            return True
        return False

    def accept_any(self, *words: str) -> bool:
        """Consume the next token if it is one of the given keywords."""
        token = self.peek()
        if token is not None and token.is_word(*words):
            self.index += 1
            return True
        return False

    def expect(self, *words: str) -> None:
        """Consume the given keyword sequence or fail."""
        if not self.accept(*words):
            msg = f"Expected {' '.join(words)}"
            raise self.error(msg)

    def at_punct(self, char: str) -> bool:
        """Check whether the next token is the given punctuation."""
        token = self.peek()
        return token is not None and token.is_punct(char)

    def expect_punct(self, char: str) -> None:
        """Consume the given punctuation or fail."""
        if not self.at_punct(char):
            msg = f"Expected '{char}'"
            raise self.error(msg)
        self.index += 1

    def identifier(self) -> str:
        """Read a bare or quoted identifier."""
        token = self.peek()
        if token is None or not token.is_identifier:
            msg = "Expected an identifier"
            raise self.error(msg)
        self.index += 1
        return token.value

    def qualified_identifier(self) -> str:
        """Read ``name`` or ``schema.name`` and return the last part."""
        name = self.identifier()
        while self.at_punct("."):
            self.index += 1
            name = self.identifier()
        return name

    def identifier_list(self) -> list[str]:
        """Read a parenthesized, comma-separated list of identifiers."""
        self.expect_punct("(")
        names = [self.identifier()]
        self.accept_any("ASC", "DESC")
        while self.at_punct(","):
            self.index += 1
            names.append(self.identifier())
            self.accept_any("ASC", "DESC")
        self.expect_punct(")")
        return names

    def skip(self) -> None:
        """Skip one token, or a whole parenthesized group."""
        if not self.at_punct("("):
            self.advance()
            return
        depth = 0
        while True:
            token = self.advance()
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                depth -= 1
                if depth == 0:
                    return


def split_top_level(tokens: Sequence[Token]) -> list[list[Token]]:
    """Split tokens on commas that are not nested in parentheses."""
    items: list[list[Token]] = [[]]
    depth = 0
    for token in tokens:
        if token.is_punct("("):
            depth += 1
        elif token.is_punct(")"):
            depth -= 1
        elif token.is_punct(",") and depth == 0:
            items.append([])
            continue
        items[-1].append(token)
    return items


def _parenthesized_body(cursor: Cursor) -> list[Token]:
    """Consume ``( ... )`` and return the tokens in between."""
    cursor.expect_punct("(")
    start, depth = cursor.index, 1
    while depth:
        token = cursor.advance()
        if token.is_punct("("):
            depth += 1
        elif token.is_punct(")"):
            depth -= 1
    return list(cursor.tokens[start : cursor.index - 1])


def _skip_reference_options(cursor: Cursor) -> None:
    """Skip referential actions and deferral clauses after REFERENCES."""
    while True:
        if cursor.accept("ON", "DELETE") or cursor.accept("ON", "UPDATE"):
            if not (
                cursor.accept("CASCADE")
                or cursor.accept("RESTRICT")
                or cursor.accept("NO", "ACTION")
                or cursor.accept("SET", "NULL")
                or cursor.accept("SET", "DEFAULT")
            ):
                msg = "Unknown referential action"
                raise cursor.error(msg)
        elif cursor.accept("MATCH"):
            cursor.advance()
        elif cursor.accept("NOT", "DEFERRABLE") or cursor.accept("DEFERRABLE"):
            continue
        elif cursor.accept("INITIALLY", "DEFERRED") or cursor.accept(
            "INITIALLY",
            "IMMEDIATE",
        ):
            continue
        elif cursor.accept("NOT", "VALID"):
            continue
        else:
            return


def _references(
    cursor: Cursor,
    table: str,
    columns: list[str],
    token: Token,
) -> ForeignKeyDraft:
    """Read ``REFERENCES table [(columns)]`` and the options after it."""
    cursor.expect("REFERENCES")
    referenced_table = cursor.qualified_identifier()
    referenced_columns = cursor.identifier_list() if cursor.at_punct("(") else None
    _skip_reference_options(cursor)
    return ForeignKeyDraft(
        table=table,
        columns=columns,
        referenced_table=referenced_table,
        referenced_columns=referenced_columns,
        statement=cursor.statement,
        token=token,
    )


def _starts_table_constraint(cursor: Cursor) -> bool:
    return (
        cursor.at_words("CONSTRAINT")
        or cursor.at_words("PRIMARY", "KEY")
        or cursor.at_words("FOREIGN", "KEY")
        or (cursor.at_words("UNIQUE") and not _next_is_type(cursor))
        or (cursor.at_words("CHECK") and _punct_at(cursor, 1, "("))
    )


def _punct_at(cursor: Cursor, offset: int, char: str) -> bool:
    token = cursor.peek(offset)
    return token is not None and token.is_punct(char)


def _next_is_type(cursor: Cursor) -> bool:
    """A column named ``unique`` is followed by its type, not by ``(``."""
    token = cursor.peek(1)
    return (
        token is not None
        and token.kind == TokenKind.WORD
        and not token.is_word("KEY", "INDEX")
    )


def _table_constraint(cursor: Cursor, table: str, drafts: Drafts) -> None:
    """Read one table constraint into the drafts."""
    if cursor.accept("CONSTRAINT"):
        cursor.identifier()
    token = cursor.peek()
    if token is None:
        msg = "Expected a constraint after CONSTRAINT name"
        raise cursor.error(msg)

    if cursor.accept("PRIMARY", "KEY"):
        columns = cursor.identifier_list()
        drafts.keys.append(KeyDraft("primary", table, columns, cursor.statement, token))
    elif cursor.accept("UNIQUE"):
        cursor.accept_any("KEY", "INDEX")
        if not cursor.at_punct("("):
            cursor.identifier()
        columns = cursor.identifier_list()
        drafts.keys.append(KeyDraft("unique", table, columns, cursor.statement, token))
    elif cursor.accept("FOREIGN", "KEY"):
        columns = cursor.identifier_list()
        drafts.foreign_keys.append(_references(cursor, table, columns, token))
    elif cursor.accept("CHECK"):
        cursor.skip()
    else:
        msg = "Expected PRIMARY KEY, UNIQUE, FOREIGN KEY or CHECK"
        raise cursor.error(msg)

    while not cursor.at_end:
        # Index options such as USING INDEX TABLESPACE, DEFERRABLE, NOT VALID
        cursor.skip()


def _column_type(cursor: Cursor) -> ColumnType:
    """Read a column type with its parameters and map it to the vocabulary."""
    token = cursor.peek()
    if token is None or token.kind != TokenKind.WORD:
        msg = "Expected a column type"
        raise cursor.error(msg, error=UnsupportedTypeError)
    words = [cursor.advance().value]
    while not cursor.at_end:
        if cursor.at_punct("("):
            cursor.skip()
        elif (next_token := cursor.peek()) and next_token.is_word(*TYPE_CONTINUATIONS):
            words.append(cursor.advance().value)
        else:
            break
    if (next_token := cursor.peek()) and next_token.value == "[":
        msg = f"Array types are not supported: {' '.join(words)}[]"
        raise cursor.error(msg, next_token, UnsupportedTypeError)
    try:
        return sql_to_column_type(words)
    except UnsupportedTypeError as err:
        raise cursor.error(err.message, token, UnsupportedTypeError) from err


def _skip_default(cursor: Cursor) -> None:
    cursor.skip()
    while not cursor.at_end:
        token = cursor.peek()
        if token is not None and token.is_word(*COLUMN_OPTION_WORDS):
            return
        if _starts_column(cursor) or cursor.at_punct(";"):
            return
        cursor.skip()


def _starts_column(cursor: Cursor) -> bool:
    """Spot ``name TYPE`` where only column options may follow."""
    token = cursor.peek()
    if token is None:
        return False
    if token.kind == TokenKind.QUOTED:
        return True
    next_token = cursor.peek(1)
    return (
        token.kind == TokenKind.WORD
        and next_token is not None
        and next_token.is_word(*TYPE_KEYWORDS)
    )


def _column_definition(cursor: Cursor, table: TableDraft, drafts: Drafts) -> None:
    """Read ``name type [options...]`` into the table draft."""
    name_token = cursor.peek()
    name = cursor.identifier()
    if name in table.columns:
        msg = f"Duplicate column {name!r} in table {table.name!r}"
        raise cursor.error(msg, name_token)
    column = ColumnDraft(name=name, type=_column_type(cursor))

    while not cursor.at_end:
        token = cursor.peek()
        if cursor.accept("CONSTRAINT"):
            cursor.identifier()
        elif cursor.accept("PRIMARY", "KEY"):
            column.primary_key = True
        elif cursor.accept("NOT", "NULL"):
            column.nullable = False
        elif cursor.accept("NULL"):
            column.nullable = True
        elif cursor.accept("UNIQUE"):
            cursor.accept("KEY")
            column.unique = True
        elif cursor.at_words("REFERENCES"):
            drafts.foreign_keys.append(_references(cursor, table.name, [name], token))
        elif cursor.accept("DEFAULT"):
            _skip_default(cursor)
        elif cursor.accept("COLLATE"):
            cursor.identifier()
        elif cursor.accept("COMMENT"):
            # MySQL also accepts a double-quoted comment
            cursor.advance()
        elif _starts_column(cursor):
            msg = f"Expected ',' before column {token.value!r}"  # pyright: ignore[reportOptionalMemberAccess]
            raise cursor.error(msg)
        elif cursor.at_punct(";"):
            msg = "Unexpected ';' inside table body"
            raise cursor.error(msg)
        else:
            # CHECK (...), GENERATED ... AS IDENTITY, AUTO_INCREMENT and the like
            cursor.skip()

    table.columns[name] = column


def _create_table(cursor: Cursor, drafts: Drafts) -> None:
    cursor.expect("CREATE", "TABLE")
    cursor.accept("IF", "NOT", "EXISTS")
    name_token = cursor.peek()
    name = cursor.qualified_identifier()
    if name in drafts.tables:
        msg = f"Duplicate table {name!r}"
        raise cursor.error(msg, name_token)
    if not cursor.at_punct("("):
        msg = "Expected '(' after table name"
        raise cursor.error(msg)

    table = TableDraft(name=name, statement=cursor.statement)
    body = _parenthesized_body(cursor)
    if body:
        for item in split_top_level(body):
            if not item:
                msg = "Empty column or constraint definition"
                raise cursor.error(msg)
            item_cursor = Cursor(item, cursor.statement, cursor.source)
            if _starts_table_constraint(item_cursor):
                _table_constraint(item_cursor, name, drafts)
            else:
                _column_definition(item_cursor, table, drafts)
    if not cursor.at_end:
        logger.debug("Ignoring table options after %s", name)
    drafts.tables[name] = table


def _alter_table(cursor: Cursor, drafts: Drafts) -> None:
    cursor.expect("ALTER", "TABLE")
    cursor.accept("IF", "EXISTS")
    cursor.accept("ONLY")
    name = cursor.qualified_identifier()
    actions = split_top_level(cursor.tokens[cursor.index :])
    for action in actions:
        action_cursor = Cursor(action, cursor.statement, cursor.source)
        if not action_cursor.accept("ADD"):
            msg = "Only ALTER TABLE ... ADD <constraint> is supported"
            raise action_cursor.error(msg)
        if not _starts_table_constraint(action_cursor):
            msg = "Only constraints can be added with ALTER TABLE"
            raise action_cursor.error(msg)
        _table_constraint(action_cursor, name, drafts)


def read_statements(source: str) -> Drafts:
    """Pass one: read every statement into drafts."""
    drafts = Drafts()
    for statement in split_statements(source):
        cursor = Cursor(statement.tokens, statement, source)
        if cursor.at_words("CREATE", "TABLE"):
            _create_table(cursor, drafts)
        elif cursor.at_words("ALTER", "TABLE"):
            _alter_table(cursor, drafts)
        else:
            msg = "Unrecognized statement, expected CREATE TABLE or ALTER TABLE"
            raise cursor.error(msg)
    return drafts


def _unresolved(
    message: str,
    draft: KeyDraft | ForeignKeyDraft,
    source: str,
) -> UnresolvedReferenceError:
    return UnresolvedReferenceError(
        message,
        statement=draft.statement.text,
        position=draft.token.start,
        source=source,
    )


def _lookup(
    drafts: Drafts,
    table: str,
    columns: Sequence[str],
    draft: KeyDraft | ForeignKeyDraft,
    source: str,
) -> tuple[TableDraft, list[ColumnDraft]]:
    if (table_draft := drafts.tables.get(table)) is None:
        msg = f"Unknown table {table!r}"
        raise _unresolved(msg, draft, source)
    if missing := [name for name in columns if name not in table_draft.columns]:
        msg = f"Unknown column(s) {', '.join(map(repr, missing))} in table {table!r}"
        raise _unresolved(msg, draft, source)
    return table_draft, [table_draft.columns[name] for name in columns]


def apply_keys(drafts: Drafts, source: str) -> None:
    """Pass two, part one: set primary key and unique flags."""
    for key in drafts.keys:
        _, columns = _lookup(drafts, key.table, key.columns, key, source)
        if key.kind == "primary":
            for column in columns:
                column.primary_key = True
        elif len(columns) == 1:
            columns[0].unique = True
        else:
            logger.warning(
                "Ignoring composite UNIQUE (%s) on %s",
                ", ".join(key.columns),
                key.table,
            )


def resolve_foreign_keys(drafts: Drafts, source: str) -> list[ForeignKeyPair]:
    """Pass two, part two: pair referenced and referencing columns.

    Each pair is ``((referenced table, column), (referencing table, column))``.
    """
    pairs: list[ForeignKeyPair] = []
    for fk in drafts.foreign_keys:
        _lookup(drafts, fk.table, fk.columns, fk, source)
        if fk.referenced_columns is None:
            referenced_table, _ = _lookup(drafts, fk.referenced_table, [], fk, source)
            referenced = [
                c.name for c in referenced_table.columns.values() if c.primary_key
            ]
            if len(referenced) != len(fk.columns):
                msg = (
                    f"Table {fk.referenced_table!r} has no primary key matching "
                    f"FOREIGN KEY ({', '.join(fk.columns)})"
                )
                raise _unresolved(msg, fk, source)
        else:
            referenced = fk.referenced_columns
            if len(referenced) != len(fk.columns):
                msg = "Foreign key column count does not match referenced columns"
                raise ParseError(
                    msg,
                    statement=fk.statement.text,
                    position=fk.token.start,
                    source=source,
                )
            _lookup(drafts, fk.referenced_table, referenced, fk, source)

        pairs.extend(
            ((fk.referenced_table, target), (fk.table, column))
            for target, column in zip(referenced, fk.columns, strict=True)
        )
    return pairs


def build_graph(drafts: Drafts, pairs: list[ForeignKeyPair]) -> SchemaGraph:
    """Construct the graph through the mutation engine."""
    engine = MutationEngine()
    table_ids: dict[str, str] = {}
    column_ids: dict[tuple[str, str], str] = {}

    for table in drafts.tables.values():
        table_id = engine.add_table(table.name, default_column=False)
        table_ids[table.name] = table_id
        for column in table.columns.values():
            column_ids[table.name, column.name] = engine.add_column(
                table_id,
                ColumnSpec(
                    name=column.name,
                    type=column.type,
                    primary_key=column.primary_key,
                    unique=column.unique,
                    nullable=column.nullable,
                ),
            )

    for source, target in pairs:
        engine.connect(
            table_ids[source[0]],
            column_ids[source],
            table_ids[target[0]],
            column_ids[target],
        )
    return engine.graph


def ddl_to_graph(source: str, *, layout: LayoutSettings | None = None) -> ParseResult:
    """Parse DDL text into a new schema graph with grid positions."""
    drafts = read_statements(source)
    apply_keys(drafts, source)
    pairs = resolve_foreign_keys(drafts, source)
    graph = build_graph(drafts, pairs)
    logger.info(
        "Parsed %d table(s) and %d relation(s)",
        len(graph.tables),
        len(graph.relations),
    )
    return ParseResult(graph, grid_positions(graph.tables, layout))
