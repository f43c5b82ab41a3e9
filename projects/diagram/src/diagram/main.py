"""Conversion between schema graphs and the canvas JSON payload."""

from __future__ import annotations

from typing import TYPE_CHECKING

from diagram.schema_types import (
    ColumnSchema,
    DiagramSchema,
    RelationSchema,
    TableSchema,
)
from erd import MutationEngine, ParseError, Position, UnresolvedReferenceError
from erd.engine import coerce_cardinality, coerce_column_type
from erd.layout import grid_positions
from erd.types import ColumnSpec

if TYPE_CHECKING:
    from erd import Column, Relation, SchemaGraph, Table


def _build_column(column: Column) -> ColumnSchema:
    """Build a column schema from a graph column."""
    return {
        "id": column.id,
        "name": column.name,
        "type": column.type.value,
        "primary_key": column.primary_key,
        "foreign_key": column.foreign_key,
        "unique": column.unique,
        "nullable": column.nullable,
    }


def _build_table(table: Table, position: Position) -> TableSchema:
    """Build a table schema with its canvas position."""
    return {
        "id": table.id,
        "name": table.name,
        "position": {"x": position.x, "y": position.y},
        "columns": [_build_column(column) for column in table.columns],
    }


def _build_relation(relation: Relation) -> RelationSchema:
    """Build a relation schema from a graph relation."""
    return {
        "id": relation.id,
        "source_table": relation.source_table_id,
        "source_column": relation.source_column_id,
        "target_table": relation.target_table_id,
        "target_column": relation.target_column_id,
        "cardinality": relation.cardinality.value,
    }


def graph_to_diagram(
    graph: SchemaGraph,
    positions: dict[str, Position] | None = None,
    name: str = "schema",
) -> DiagramSchema:
    """Generate the canvas payload; tables without a position go on the grid."""
    fallback = grid_positions(graph.tables)
    positions = positions or {}
    return {
        "name": name,
        "tables": [
            _build_table(table, positions.get(table_id, fallback[table_id]))
            for table_id, table in graph.tables.items()
        ],
        "relations": [_build_relation(rel) for rel in graph.relations.values()],
    }


def diagram_to_graph(
    diagram: DiagramSchema,
) -> tuple[SchemaGraph, dict[str, Position]]:
    """Rebuild a graph from a canvas payload.

    Payload ids only wire relations to columns; the returned graph and
    positions use fresh ids. Foreign key flags are derived from relations.
    """
    engine = MutationEngine()
    table_ids: dict[str, str] = {}
    column_ids: dict[tuple[str, str], str] = {}
    positions: dict[str, Position] = {}

    try:
        for table in diagram["tables"]:
            table_id = engine.add_table(table["name"], default_column=False)
            table_ids[table["id"]] = table_id
            if position := table.get("position"):
                positions[table_id] = Position(position["x"], position["y"])
            for column in table["columns"]:
                column_ids[table["id"], column["id"]] = engine.add_column(
                    table_id,
                    ColumnSpec(
                        name=column["name"],
                        type=coerce_column_type(column["type"]),
                        primary_key=column["primary_key"],
                        unique=column["unique"],
                        nullable=column["nullable"],
                    ),
                )
    except (KeyError, TypeError) as err:
        msg = f"Malformed canvas payload: missing {err}"
        raise ParseError(msg) from err

    for relation in diagram.get("relations", []):
        try:
            source = relation["source_table"], relation["source_column"]
            target = relation["target_table"], relation["target_column"]
            engine.connect(
                table_ids[source[0]],
                column_ids[source],
                table_ids[target[0]],
                column_ids[target],
                coerce_cardinality(relation.get("cardinality", "1:N")),
            )
        except KeyError as err:
            msg = f"Relation {relation.get('id', '?')} references unknown {err}"
            raise UnresolvedReferenceError(msg) from err
        except ValueError as err:
            raise ParseError(str(err)) from err

    fallback = grid_positions(engine.graph.tables)
    for table_id, position in fallback.items():
        positions.setdefault(table_id, position)
    return engine.graph, positions
