"""Canonical DDL generation from a schema graph."""

from __future__ import annotations

from collections import Counter
from logging import getLogger
from typing import TYPE_CHECKING

from ddl.type_conversion import column_type_to_sql
from erd.errors import GenerationError, NotFoundError

if TYPE_CHECKING:
    from erd.graph import SchemaGraph
    from erd.types import Column, Relation, Table

logger = getLogger(__name__)


def quote_identifier(name: str) -> str:
    """Double-quote an identifier, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def column_definition(column: Column, *, sole_key: bool = False) -> str:
    """Render one column line: name, type, NOT NULL, UNIQUE."""
    parts = [quote_identifier(column.name), column_type_to_sql(column.type)]
    if not column.nullable:
        parts.append("NOT NULL")
    # A single-column primary key is already unique
    if column.unique and not (column.primary_key and sole_key):
        parts.append("UNIQUE")
    return " ".join(parts)


def create_table_statement(table: Table, indent: str = "    ") -> str:
    """Render the CREATE TABLE statement of a table."""
    keys = table.primary_keys
    lines = [
        column_definition(column, sole_key=len(keys) == 1)
        for column in table.columns
    ]
    if keys:
        key_list = ", ".join(quote_identifier(col.name) for col in keys)
        lines.append(f"PRIMARY KEY ({key_list})")

    body = f",\n{indent}".join(lines)
    if body:
        body = f"\n{indent}{body}\n"
    return f"CREATE TABLE {quote_identifier(table.name)} ({body});"


def constraint_name(prefix: str, table: str, column: str, number: int) -> str:
    """Deterministic foreign key constraint name."""
    return f"{prefix}_{table}_{column}_{number}"


def foreign_key_statement(
    graph: SchemaGraph,
    relation: Relation,
    number: int,
    prefix: str = "fk",
) -> str:
    """Render the ALTER TABLE statement for one relation.

    The relation target holds the foreign key and references the source.
    """
    try:
        source_table = graph.table(relation.source_table_id)
        source_column = graph.column(relation.source_table_id, relation.source_column_id)
        target_table = graph.table(relation.target_table_id)
        target_column = graph.column(relation.target_table_id, relation.target_column_id)
    except NotFoundError as err:
        msg = f"Relation {relation.id} cannot be resolved: {err}"
        raise GenerationError(msg) from err

    name = constraint_name(prefix, target_table.name, target_column.name, number)
    return (
        f"ALTER TABLE {quote_identifier(target_table.name)} "
        f"ADD CONSTRAINT {quote_identifier(name)} "
        f"FOREIGN KEY ({quote_identifier(target_column.name)}) "
        f"REFERENCES {quote_identifier(source_table.name)} "
        f"({quote_identifier(source_column.name)});"
    )


def graph_to_ddl(
    graph: SchemaGraph,
    *,
    indent: str = "    ",
    constraint_prefix: str = "fk",
) -> str:
    """Serialize a schema graph into canonical DDL.

    CREATE TABLE statements come first in table order, followed by one
    ALTER TABLE ... FOREIGN KEY statement per relation in relation order.

    Column flags survive a parse of the output with one exception: UNIQUE
    is left off a column that is the table's only primary key column, so
    ``unique=True`` on such a column reads back as ``False``.
    """
    duplicates = [
        name
        for name, seen in Counter(t.name for t in graph.tables.values()).items()
        if seen > 1
    ]
    if duplicates:
        msg = f"Duplicate table name(s): {', '.join(sorted(duplicates))}"
        raise GenerationError(msg)

    statements = [
        create_table_statement(table, indent) for table in graph.tables.values()
    ]
    statements.extend(
        foreign_key_statement(graph, relation, number, constraint_prefix)
        for number, relation in enumerate(graph.relations.values(), start=1)
    )
    logger.debug(
        "Generated %d CREATE TABLE and %d foreign key statement(s)",
        len(graph.tables),
        len(graph.relations),
    )
    if not statements:
        return ""
    return "\n\n".join(statements) + "\n"
