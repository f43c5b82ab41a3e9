"""TypedDict schemas for the canvas JSON payload."""

from typing import TypedDict


class ColumnSchema(TypedDict):
    """Schema for a column as drawn on the canvas."""

    id: str
    name: str
    type: str
    primary_key: bool
    foreign_key: bool
    unique: bool
    nullable: bool


class PositionSchema(TypedDict):
    """Top-left corner of a table on the canvas."""

    x: float
    y: float


class TableSchema(TypedDict):
    """Schema for a table node."""

    id: str
    name: str
    position: PositionSchema
    columns: list[ColumnSchema]


class RelationSchema(TypedDict):
    """Schema for a relation edge between two column handles."""

    id: str
    source_table: str
    source_column: str
    target_table: str
    target_column: str
    cardinality: str


class DiagramSchema(TypedDict):
    """Root schema for the complete canvas payload."""

    name: str
    tables: list[TableSchema]
    relations: list[RelationSchema]
