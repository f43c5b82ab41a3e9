"""Tests for the canvas payload conversion."""

from json import dumps, loads

import pytest

from ddl import ddl_to_graph
from diagram import diagram_to_graph, graph_to_diagram
from diagram.schema_types import DiagramSchema
from erd import (
    ParseError,
    Position,
    SchemaGraph,
    UnresolvedReferenceError,
    UnsupportedTypeError,
)

SOCIAL_MEDIA_DDL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    email VARCHAR(255) UNIQUE NOT NULL,
    name VARCHAR(100)
);
CREATE TABLE posts (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (id),
    title VARCHAR(255) NOT NULL,
    published BOOLEAN
);
CREATE TABLE comments (
    id INTEGER PRIMARY KEY,
    post_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    body TEXT,
    FOREIGN KEY (post_id) REFERENCES posts (id),
    FOREIGN KEY (user_id) REFERENCES users (id)
);
"""


@pytest.fixture(name="social_media")
def fixture_social_media() -> tuple[SchemaGraph, dict[str, Position]]:
    """A parsed social media schema with grid positions."""
    return ddl_to_graph(SOCIAL_MEDIA_DDL)


def test_diagram_structure(
    social_media: tuple[SchemaGraph, dict[str, Position]],
) -> None:
    """Every table, column and relation appears in the payload."""
    graph, positions = social_media
    diagram = graph_to_diagram(graph, positions, name="social")

    assert diagram["name"] == "social"
    assert [table["name"] for table in diagram["tables"]] == [
        "users",
        "posts",
        "comments",
    ]
    assert len(diagram["relations"]) == 3

    users = diagram["tables"][0]
    assert users["position"] == {"x": 100, "y": 100}
    email = users["columns"][1]
    assert email == {
        "id": email["id"],
        "name": "email",
        "type": "VARCHAR",
        "primary_key": False,
        "foreign_key": False,
        "unique": True,
        "nullable": False,
    }


def test_relation_endpoints(
    social_media: tuple[SchemaGraph, dict[str, Position]],
) -> None:
    """Relations reference the payload's table and column ids."""
    graph, positions = social_media
    diagram = graph_to_diagram(graph, positions)
    columns = {
        (table["id"], column["id"]): f"{table['name']}.{column['name']}"
        for table in diagram["tables"]
        for column in table["columns"]
    }
    endpoints = [
        (
            columns[relation["source_table"], relation["source_column"]],
            columns[relation["target_table"], relation["target_column"]],
            relation["cardinality"],
        )
        for relation in diagram["relations"]
    ]
    assert endpoints == [
        ("users.id", "posts.user_id", "1:N"),
        ("posts.id", "comments.post_id", "1:N"),
        ("users.id", "comments.user_id", "1:N"),
    ]


def test_missing_positions_use_grid(
    social_media: tuple[SchemaGraph, dict[str, Position]],
) -> None:
    """Tables without a stored position are placed on the grid."""
    graph, _ = social_media
    diagram = graph_to_diagram(graph)
    assert diagram["tables"][2]["position"] == {"x": 700, "y": 100}


def test_payload_is_json_serializable(
    social_media: tuple[SchemaGraph, dict[str, Position]],
) -> None:
    """The payload survives a trip through JSON."""
    graph, positions = social_media
    diagram = graph_to_diagram(graph, positions)
    assert loads(dumps(diagram)) == diagram


def test_diagram_to_graph(
    social_media: tuple[SchemaGraph, dict[str, Position]],
) -> None:
    """A payload rebuilds an equivalent graph with its positions."""
    graph, positions = social_media
    diagram = graph_to_diagram(graph, positions)
    diagram["tables"][1]["position"] = {"x": 5, "y": 7}

    rebuilt, rebuilt_positions = diagram_to_graph(diagram)
    assert rebuilt.violations() == []
    assert [table.name for table in rebuilt.tables.values()] == [
        "users",
        "posts",
        "comments",
    ]
    assert len(rebuilt.relations) == 3
    posts = rebuilt.table_by_name("posts")
    assert posts is not None
    assert rebuilt_positions[posts.id] == Position(5, 7)
    user_id = rebuilt.column_by_name(posts.id, "user_id")
    assert user_id is not None
    assert user_id.foreign_key


def test_foreign_key_flags_are_derived() -> None:
    """Stale foreign_key flags in a payload are ignored."""
    diagram: DiagramSchema = {
        "name": "flags",
        "tables": [
            {
                "id": "t1",
                "name": "things",
                "position": {"x": 0, "y": 0},
                "columns": [
                    {
                        "id": "c1",
                        "name": "id",
                        "type": "integer",
                        "primary_key": True,
                        "foreign_key": True,
                        "unique": False,
                        "nullable": False,
                    },
                ],
            },
        ],
        "relations": [],
    }
    graph, positions = diagram_to_graph(diagram)
    (table,) = graph.tables.values()
    assert not table.columns[0].foreign_key
    assert positions[table.id] == Position(0, 0)


def test_malformed_payload() -> None:
    """Missing keys are parse errors."""
    with pytest.raises(ParseError, match="Malformed"):
        diagram_to_graph({"name": "x", "tables": [{"id": "t1"}], "relations": []})  # type: ignore[typeddict-item]


def test_unknown_relation_endpoint(
    social_media: tuple[SchemaGraph, dict[str, Position]],
) -> None:
    """Relations must point at columns in the payload."""
    graph, positions = social_media
    diagram = graph_to_diagram(graph, positions)
    diagram["relations"][0]["target_column"] = "missing"
    with pytest.raises(UnresolvedReferenceError):
        diagram_to_graph(diagram)


def test_unknown_type(
    social_media: tuple[SchemaGraph, dict[str, Position]],
) -> None:
    """Column types must be in the vocabulary."""
    graph, positions = social_media
    diagram = graph_to_diagram(graph, positions)
    diagram["tables"][0]["columns"][0]["type"] = "MONEY"
    with pytest.raises(UnsupportedTypeError):
        diagram_to_graph(diagram)
