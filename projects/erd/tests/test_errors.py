"""Tests for error kinds and messages."""

from erd import (
    DuplicateNameError,
    GenerationError,
    NotFoundError,
    ParseError,
    SchemaVizError,
    UnresolvedReferenceError,
    UnsupportedTypeError,
)


def test_kinds() -> None:
    """Every error carries a machine-readable kind."""
    assert NotFoundError("x").kind == "not_found"
    assert DuplicateNameError("x").kind == "duplicate_name"
    assert GenerationError("x").kind == "generation_error"
    assert ParseError("x").kind == "parse_error"
    assert UnsupportedTypeError("x").kind == "unsupported_type"
    assert UnresolvedReferenceError("x").kind == "unresolved_reference"


def test_hierarchy() -> None:
    """Parser errors are parse errors; all are schema errors."""
    assert issubclass(UnsupportedTypeError, ParseError)
    assert issubclass(UnresolvedReferenceError, ParseError)
    assert issubclass(ParseError, SchemaVizError)
    assert issubclass(NotFoundError, KeyError)


def test_describe() -> None:
    """Describe prefixes the kind."""
    assert NotFoundError("Unknown table id: t1").describe() == (
        "[not_found] Unknown table id: t1"
    )


def test_parse_error_location() -> None:
    """Line and column are computed from the offset."""
    source = "CREATE TABLE a (id INT);\nCREATE TABLE b (x MONEY);"
    position = source.index("MONEY")
    err = ParseError(
        "Bad type",
        statement="CREATE TABLE b (x MONEY)",
        position=position,
        source=source,
    )
    assert err.line == 2
    assert err.column == 19
    assert str(err) == "Bad type (line 2, column 19): CREATE TABLE b (x MONEY)"


def test_parse_error_snippet_is_shortened() -> None:
    """Long statements are collapsed and truncated."""
    statement = "CREATE TABLE t (\n" + ",\n".join(f"c{i} INT" for i in range(40)) + ")"
    err = ParseError("Oops", statement=statement)
    snippet = str(err).removeprefix("Oops: ")
    assert len(snippet) == 80
    assert snippet.endswith("...")
    assert "\n" not in snippet
    assert err.line is None
