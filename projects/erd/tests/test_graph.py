"""Tests for schema graph queries and invariant checks."""

import pytest

from erd import (
    Column,
    ColumnType,
    InvariantError,
    NotFoundError,
    Relation,
    SchemaGraph,
    Table,
)


@pytest.fixture(name="graph")
def fixture_graph() -> SchemaGraph:
    """Two tables joined by one relation, built by hand."""
    users = Table(
        "t1",
        "users",
        [Column("c1", "id", ColumnType.INTEGER, primary_key=True, nullable=False)],
    )
    posts = Table(
        "t2",
        "posts",
        [
            Column("c1", "id", ColumnType.INTEGER, primary_key=True),
            Column("c2", "user_id", ColumnType.INTEGER, foreign_key=True),
        ],
    )
    relation = Relation("r1", "t1", "c1", "t2", "c2")
    return SchemaGraph({"t1": users, "t2": posts}, {"r1": relation})


def test_lookups(graph: SchemaGraph) -> None:
    """Tables, columns and relations are found by id."""
    assert graph.table("t2").name == "posts"
    assert graph.column("t2", "c2").name == "user_id"
    assert graph.relation("r1").target_column_id == "c2"


def test_lookup_errors(graph: SchemaGraph) -> None:
    """Missing ids raise NotFoundError, which is also a KeyError."""
    with pytest.raises(NotFoundError, match="Unknown table id: t9"):
        graph.table("t9")
    with pytest.raises(KeyError):
        graph.column("t1", "c9")
    with pytest.raises(NotFoundError):
        graph.relation("r9")


def test_lookup_by_name(graph: SchemaGraph) -> None:
    """Name lookups return None when nothing matches."""
    assert graph.table_by_name("posts") is graph.table("t2")
    assert graph.table_by_name("comments") is None
    assert graph.column_by_name("t2", "user_id") is graph.column("t2", "c2")
    assert graph.column_by_name("t2", "title") is None


def test_relation_queries(graph: SchemaGraph) -> None:
    """Incident relations are listed per column and per table."""
    relation = graph.relation("r1")
    assert graph.relations_for_column("t1", "c1") == [relation]
    assert graph.relations_for_column("t2", "c2") == [relation]
    assert graph.relations_for_column("t2", "c1") == []
    assert graph.incoming_relations("t2", "c2") == [relation]
    assert graph.incoming_relations("t1", "c1") == []
    assert graph.relations_for_table("t1") == [relation]
    assert graph.is_referenced("t2", "c2")
    assert not graph.is_referenced("t1", "c1")


def test_columns_iterates_in_order(graph: SchemaGraph) -> None:
    """Columns come table by table in declaration order."""
    names = [(table.name, column.name) for table, column in graph.columns()]
    assert names == [("users", "id"), ("posts", "id"), ("posts", "user_id")]


def test_valid_graph_has_no_violations(graph: SchemaGraph) -> None:
    """A consistent graph passes the check."""
    assert graph.violations() == []
    graph.check()


def test_foreign_key_flag_mismatch(graph: SchemaGraph) -> None:
    """A stale flag is reported."""
    graph.column("t2", "c2").foreign_key = False
    graph.column("t1", "c1").foreign_key = True
    problems = graph.violations()
    assert len(problems) == 2
    assert "users.id" in problems[1] or "users.id" in problems[0]


def test_dangling_relation(graph: SchemaGraph) -> None:
    """Relations must point at existing columns."""
    graph.relations["r2"] = Relation("r2", "t1", "c1", "t9", "c1")
    with pytest.raises(InvariantError, match="r2 points at missing t9.c1"):
        graph.check()


def test_duplicate_column_ids_and_names(graph: SchemaGraph) -> None:
    """Column ids and names are unique per table."""
    graph.table("t1").columns.append(Column("c1", "id"))
    problems = graph.violations()
    assert any("Column id c1 repeats" in problem for problem in problems)
    assert any("Column name 'id' repeats" in problem for problem in problems)


def test_misindexed_table(graph: SchemaGraph) -> None:
    """Tables are indexed under their own id."""
    graph.tables["t3"] = Table("t4", "orphans")
    assert graph.violations() == ["Table 'orphans' is indexed under t3"]


def test_copy_is_independent(graph: SchemaGraph) -> None:
    """Copies share no mutable state."""
    clone = graph.copy()
    clone.table("t1").name = "accounts"
    clone.relations.clear()
    assert graph.table("t1").name == "users"
    assert "r1" in graph.relations
