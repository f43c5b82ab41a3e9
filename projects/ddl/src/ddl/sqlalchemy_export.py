"""Dialect-specific DDL through SQLAlchemy metadata."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal
from warnings import catch_warnings, filterwarnings

from sqlalchemy import Column, ForeignKeyConstraint, MetaData, Table
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import SAWarning
from sqlalchemy.schema import CreateTable

from ddl.generator import constraint_name
from ddl.type_conversion import column_type_to_sqlalchemy
from erd.errors import GenerationError, NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.engine import Dialect

    from erd.graph import SchemaGraph

type DialectName = Literal["postgresql", "sqlite", "mysql"]

DIALECTS: dict[DialectName, Dialect] = {
    "postgresql": postgresql.dialect(),
    "sqlite": sqlite.dialect(),
    "mysql": mysql.dialect(),
}

# MySQL cannot create VARCHAR columns without a length
MYSQL_VARCHAR_LENGTH = 255


def graph_to_metadata(
    graph: SchemaGraph,
    *,
    varchar_length: int | None = None,
    constraint_prefix: str = "fk",
) -> MetaData:
    """Build SQLAlchemy tables, keys and foreign keys for a graph."""
    names = [table.name for table in graph.tables.values()]
    if len(names) != len(set(names)):
        msg = "Table names must be unique to build metadata"
        raise GenerationError(msg)

    metadata = MetaData()
    tables: dict[str, Table] = {}
    for table in graph.tables.values():
        tables[table.id] = Table(
            table.name,
            metadata,
            *(
                Column(
                    column.name,
                    column_type_to_sqlalchemy(
                        column.type,
                        varchar_length=varchar_length,
                    ),
                    primary_key=column.primary_key,
                    nullable=column.nullable,
                    unique=column.unique
                    and not (column.primary_key and len(table.primary_keys) == 1),
                )
                for column in table.columns
            ),
        )

    for number, relation in enumerate(graph.relations.values(), start=1):
        try:
            source = graph.column(relation.source_table_id, relation.source_column_id)
            target = graph.column(relation.target_table_id, relation.target_column_id)
        except NotFoundError as err:
            msg = f"Relation {relation.id} cannot be resolved: {err}"
            raise GenerationError(msg) from err
        target_table = tables[relation.target_table_id]
        source_table = tables[relation.source_table_id]
        target_table.append_constraint(
            ForeignKeyConstraint(
                [target_table.c[target.name]],
                [source_table.c[source.name]],
                name=constraint_name(
                    constraint_prefix,
                    target_table.name,
                    target.name,
                    number,
                ),
            ),
        )
    return metadata


def graph_to_dialect_ddl(graph: SchemaGraph, dialect: DialectName) -> str:
    """Compile CREATE TABLE statements for a specific database dialect."""
    varchar_length = MYSQL_VARCHAR_LENGTH if dialect == "mysql" else None
    metadata = graph_to_metadata(graph, varchar_length=varchar_length)
    with catch_warnings():
        # Cyclic foreign keys only warn; the statements are still complete
        filterwarnings("ignore", category=SAWarning)
        tables = metadata.sorted_tables
    compiled = [
        str(CreateTable(table).compile(dialect=DIALECTS[dialect])).strip() + ";"
        for table in tables
    ]
    return "\n\n".join(compiled) + "\n" if compiled else ""
