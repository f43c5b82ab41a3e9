"""Error kinds raised by the schema graph, its engine and the DDL codec."""

from __future__ import annotations

from typing import ClassVar


class SchemaVizError(Exception):
    """Base class for every recoverable schema error."""

    kind: ClassVar[str] = "error"

    def describe(self) -> str:
        """Return a single line with the machine-readable kind and the message."""
        return f"[{self.kind}] {self}"


class NotFoundError(SchemaVizError, KeyError):
    """A mutation or lookup referenced an id that does not exist."""

    kind = "not_found"

    def __str__(self) -> str:
        """Avoid the quoted repr KeyError uses for its message."""
        return str(self.args[0]) if self.args else ""


class DuplicateNameError(SchemaVizError, ValueError):
    """A column name clashes with another column of the same table."""

    kind = "duplicate_name"


class InvariantError(SchemaVizError):
    """A graph breaks one or more of its structural invariants."""

    kind = "invariant_violation"

    def __init__(self, violations: list[str]) -> None:
        """Store every violation and build a combined message."""
        self.violations = violations
        super().__init__("; ".join(violations))


class GenerationError(SchemaVizError):
    """The generator met a graph it cannot serialize."""

    kind = "generation_error"


class ParseError(SchemaVizError):
    """DDL text could not be turned into a schema graph."""

    kind = "parse_error"

    def __init__(
        self,
        message: str,
        *,
        statement: str | None = None,
        position: int | None = None,
        source: str | None = None,
    ) -> None:
        """Attach the offending statement and its offset in the document."""
        self.message = message
        self.statement = statement
        self.position = position
        self.line: int | None = None
        self.column: int | None = None
        if position is not None and source is not None:
            self.line = source.count("\n", 0, position) + 1
            self.column = position - (source.rfind("\n", 0, position) + 1) + 1
        super().__init__(self._format())

    def _format(self) -> str:
        text = self.message
        if self.line is not None:
            text += f" (line {self.line}, column {self.column})"
        if self.statement:
            snippet = " ".join(self.statement.split())
            if len(snippet) > 80:
                snippet = snippet[:77] + "..."
            text += f": {snippet}"
        return text


class UnsupportedTypeError(ParseError):
    """A column type cannot be mapped onto the type vocabulary."""

    kind = "unsupported_type"


class UnresolvedReferenceError(ParseError):
    """A foreign key names a table or column that was never declared."""

    kind = "unresolved_reference"
