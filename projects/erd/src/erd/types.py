"""Type vocabulary and records of the schema graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import NamedTuple


class ColumnType(StrEnum):
    """Scalar column types supported by the editor."""

    VARCHAR = "VARCHAR"
    INTEGER = "INTEGER"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"
    UUID = "UUID"
    TEXT = "TEXT"
    JSON = "JSON"


class Cardinality(StrEnum):
    """How many rows on each side of a relation may correspond."""

    ONE_TO_ONE = "1:1"
    ONE_TO_MANY = "1:N"
    MANY_TO_MANY = "N:M"


class Position(NamedTuple):
    """Canvas position of a table."""

    x: float
    y: float


@dataclass
class Column:
    """A column owned by exactly one table.

    ``foreign_key`` is a cached flag: the engine keeps it equal to
    "at least one relation targets this column".
    """

    id: str
    name: str
    type: ColumnType = ColumnType.VARCHAR
    primary_key: bool = False
    foreign_key: bool = False
    unique: bool = False
    nullable: bool = True


@dataclass
class Table:
    """A table and its ordered columns."""

    id: str
    name: str
    columns: list[Column] = field(default_factory=list)

    def column_index(self, column_id: str) -> int | None:
        """Return the position of a column in the table, if present."""
        return next(
            (index for index, col in enumerate(self.columns) if col.id == column_id),
            None,
        )

    @property
    def primary_keys(self) -> list[Column]:
        """Primary key columns in declaration order."""
        return [col for col in self.columns if col.primary_key]


@dataclass
class Relation:
    """A weak reference pairing a source column with a target column."""

    id: str
    source_table_id: str
    source_column_id: str
    target_table_id: str
    target_column_id: str
    cardinality: Cardinality = Cardinality.ONE_TO_MANY


@dataclass
class ColumnSpec:
    """Request to create a column.

    A ``name`` of ``None`` lets the engine pick a free ``new_column`` name.
    """

    name: str | None = None
    type: ColumnType = ColumnType.VARCHAR
    primary_key: bool = False
    unique: bool = False
    nullable: bool = True


DEFAULT_KEY_COLUMN = ColumnSpec(
    name="id",
    type=ColumnType.INTEGER,
    primary_key=True,
    nullable=False,
)
