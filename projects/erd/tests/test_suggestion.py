"""Tests for schema suggestion ingestion."""

import pytest

from erd import (
    Cardinality,
    ColumnType,
    ParseError,
    UnresolvedReferenceError,
    UnsupportedTypeError,
    suggestion_to_graph,
)
from erd.suggestion import Suggestion


@pytest.fixture(name="payload")
def fixture_payload() -> Suggestion:
    """A two-table suggestion with one relation."""
    return {
        "tables": [
            {
                "id": "users",
                "name": "users",
                "columns": [
                    {"id": "u1", "name": "id", "type": "UUID", "isPK": True},
                    {
                        "id": "u2",
                        "name": "email",
                        "type": "varchar",
                        "isUnique": True,
                        "isNullable": False,
                    },
                ],
            },
            {
                "id": "posts",
                "name": "posts",
                "columns": [
                    {"id": "p1", "name": "id", "type": "UUID", "isPK": True},
                    {"id": "p2", "name": "user_id", "type": "UUID", "isFK": False},
                ],
            },
        ],
        "relations": [
            {
                "sourceTableId": "users",
                "sourceColumnId": "u1",
                "targetTableId": "posts",
                "targetColumnId": "p2",
                "type": "1:1",
            },
        ],
    }


def test_builds_graph(payload: Suggestion) -> None:
    """Tables, flags and relations are rebuilt with fresh ids."""
    graph = suggestion_to_graph(payload)
    assert [table.name for table in graph.tables.values()] == ["users", "posts"]
    users = graph.table_by_name("users")
    posts = graph.table_by_name("posts")
    assert users is not None
    assert posts is not None
    assert users.id != "users"

    email = graph.column_by_name(users.id, "email")
    assert email is not None
    assert email.type == ColumnType.VARCHAR
    assert email.unique
    assert not email.nullable

    (relation,) = graph.relations.values()
    assert relation.cardinality == Cardinality.ONE_TO_ONE
    assert relation.source_table_id == users.id
    assert relation.target_table_id == posts.id
    user_id = graph.column(posts.id, relation.target_column_id)
    assert user_id.name == "user_id"
    assert user_id.foreign_key
    assert graph.violations() == []


def test_relations_are_optional(payload: Suggestion) -> None:
    """A payload without relations is valid."""
    del payload["relations"]
    graph = suggestion_to_graph(payload)
    assert graph.relations == {}
    assert not any(column.foreign_key for _, column in graph.columns())


def test_missing_field(payload: Suggestion) -> None:
    """Missing keys are reported as parse errors."""
    del payload["tables"][0]["columns"][0]["type"]  # type: ignore[misc]
    with pytest.raises(ParseError, match="missing 'type'"):
        suggestion_to_graph(payload)


def test_unknown_type(payload: Suggestion) -> None:
    """Types outside the vocabulary are rejected."""
    payload["tables"][1]["columns"][1]["type"] = "MONEY"
    with pytest.raises(UnsupportedTypeError):
        suggestion_to_graph(payload)


def test_unknown_endpoint(payload: Suggestion) -> None:
    """Relations must point at suggested columns."""
    payload["relations"][0]["targetColumnId"] = "p9"
    with pytest.raises(UnresolvedReferenceError) as excinfo:
        suggestion_to_graph(payload)
    assert excinfo.value.kind == "unresolved_reference"


def test_bad_cardinality(payload: Suggestion) -> None:
    """Unknown relation types are parse errors."""
    payload["relations"][0]["type"] = "many"
    with pytest.raises(ParseError, match="cardinality"):
        suggestion_to_graph(payload)
