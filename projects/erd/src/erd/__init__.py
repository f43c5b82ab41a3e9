"""Schema graph model and its mutation engine."""

from erd.engine import MutationEngine
from erd.errors import (
    DuplicateNameError,
    GenerationError,
    InvariantError,
    NotFoundError,
    ParseError,
    SchemaVizError,
    UnresolvedReferenceError,
    UnsupportedTypeError,
)
from erd.graph import SchemaGraph
from erd.layout import grid_positions
from erd.settings import Settings, load_settings
from erd.suggestion import suggestion_to_graph
from erd.types import (
    Cardinality,
    Column,
    ColumnSpec,
    ColumnType,
    Position,
    Relation,
    Table,
)

__all__ = [
    "Cardinality",
    "Column",
    "ColumnSpec",
    "ColumnType",
    "DuplicateNameError",
    "GenerationError",
    "InvariantError",
    "MutationEngine",
    "NotFoundError",
    "ParseError",
    "Position",
    "Relation",
    "SchemaGraph",
    "SchemaVizError",
    "Settings",
    "Table",
    "UnresolvedReferenceError",
    "UnsupportedTypeError",
    "grid_positions",
    "load_settings",
    "suggestion_to_graph",
]
