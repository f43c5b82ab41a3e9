"""Build a schema graph from a schema suggestion payload.

The payload is the JSON document returned by the external schema
suggestion service. Its ids only wire relations to columns; the graph
receives fresh ids from the engine.
"""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import Any, NotRequired, TypedDict

from erd.engine import MutationEngine, coerce_cardinality, coerce_column_type
from erd.errors import ParseError, UnresolvedReferenceError
from erd.graph import SchemaGraph
from erd.types import Cardinality, ColumnSpec

logger = getLogger(__name__)


class SuggestedColumn(TypedDict):
    """Column as described by the suggestion service."""

    id: str
    name: str
    type: str
    isPK: NotRequired[bool]
    isFK: NotRequired[bool]
    isUnique: NotRequired[bool]
    isNullable: NotRequired[bool]


class SuggestedTable(TypedDict):
    """Table as described by the suggestion service."""

    id: str
    name: str
    columns: list[SuggestedColumn]


class SuggestedRelation(TypedDict):
    """Relation as described by the suggestion service."""

    sourceTableId: str
    sourceColumnId: str
    targetTableId: str
    targetColumnId: str
    type: NotRequired[str]


class Suggestion(TypedDict):
    """Complete suggestion payload."""

    tables: list[SuggestedTable]
    relations: NotRequired[list[SuggestedRelation]]


def _field(item: Mapping[str, object], key: str, where: str) -> Any:  # noqa: ANN401
    try:
        return item[key]
    except (KeyError, TypeError) as err:
        msg = f"Suggestion {where} is missing {key!r}"
        raise ParseError(msg) from err


def suggestion_to_graph(payload: Suggestion) -> SchemaGraph:
    """Convert a suggestion payload into a new, invariant-satisfying graph."""
    engine = MutationEngine()
    table_ids: dict[str, str] = {}
    column_ids: dict[tuple[str, str], str] = {}

    for table in _field(payload, "tables", "payload"):
        suggested_id = _field(table, "id", "table")
        new_table_id = engine.add_table(
            _field(table, "name", "table"),
            default_column=False,
        )
        table_ids[suggested_id] = new_table_id
        for column in _field(table, "columns", f"table {suggested_id!r}"):
            spec = ColumnSpec(
                name=_field(column, "name", f"column of {suggested_id!r}"),
                type=coerce_column_type(_field(column, "type", "column")),
                primary_key=bool(column.get("isPK", False)),
                unique=bool(column.get("isUnique", False)),
                nullable=bool(column.get("isNullable", True)),
            )
            column_ids[suggested_id, _field(column, "id", "column")] = (
                engine.add_column(new_table_id, spec)
            )

    for relation in payload.get("relations", []):
        source = (
            _field(relation, "sourceTableId", "relation"),
            _field(relation, "sourceColumnId", "relation"),
        )
        target = (
            _field(relation, "targetTableId", "relation"),
            _field(relation, "targetColumnId", "relation"),
        )
        try:
            cardinality = coerce_cardinality(
                relation.get("type", Cardinality.ONE_TO_MANY),
            )
        except ValueError as err:
            raise ParseError(str(err)) from err
        try:
            engine.connect(
                table_ids[source[0]],
                column_ids[source],
                table_ids[target[0]],
                column_ids[target],
                cardinality,
            )
        except KeyError as err:
            msg = (
                f"Suggested relation {'.'.join(source)} -> {'.'.join(target)} "
                "references an unknown table or column"
            )
            raise UnresolvedReferenceError(msg) from err

    logger.info(
        "Built suggested graph with %d table(s) and %d relation(s)",
        len(engine.graph.tables),
        len(engine.graph.relations),
    )
    return engine.graph
