"""Editing session: the graph, its layout and the import/export boundary."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from threading import Lock
from typing import TYPE_CHECKING, Any

from ddl import ddl_to_graph, graph_to_ddl
from erd import MutationEngine, SchemaGraph, SchemaVizError, suggestion_to_graph
from erd.layout import grid_position, grid_positions
from erd.settings import Settings

if TYPE_CHECKING:
    from erd.suggestion import Suggestion
    from erd.types import Position

logger = getLogger(__name__)

# Engine operations that may be dispatched by name from the canvas
OPERATIONS = frozenset(
    (
        "add_table",
        "rename_table",
        "remove_table",
        "add_column",
        "update_column",
        "remove_column",
        "reorder_column",
        "connect",
        "set_cardinality",
        "disconnect",
    ),
)


@dataclass(frozen=True)
class ImportReport:
    """Summary of a successful import."""

    tables: int
    relations: int


class EditingSession:
    """One editable schema graph guarded by a single exclusive lock.

    Every mutation, import and export holds the lock for its whole
    duration, so no reader ever sees a partially applied change.
    """

    def __init__(
        self,
        graph: SchemaGraph | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Start a session on a graph, empty by default."""
        self.settings = settings or Settings()
        self._engine = MutationEngine(graph)
        self._lock = Lock()
        self.positions: dict[str, Position] = grid_positions(
            self._engine.graph.tables,
            self.settings.layout,
        )
        # Next grid slot; slots of removed tables are not reused
        self._next_slot = len(self.positions)

    @property
    def graph(self) -> SchemaGraph:
        """The current graph; replaced wholesale on import."""
        return self._engine.graph

    def _replace(self, graph: SchemaGraph, positions: dict[str, Position]) -> None:
        self._engine.replace(graph)
        self.positions = positions
        self._next_slot = len(positions)

    def apply(self, operation: str, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        """Run one mutation engine operation by name."""
        if operation not in OPERATIONS:
            msg = f"Unknown operation: {operation}"
            raise ValueError(msg)
        with self._lock:
            try:
                result = getattr(self._engine, operation)(*args, **kwargs)
            except SchemaVizError as err:
                logger.warning("%s failed: %s", operation, err.describe())
                raise
            if operation == "add_table":
                self.positions[result] = grid_position(
                    self._next_slot,
                    self.settings.layout,
                )
                self._next_slot += 1
            elif operation == "remove_table":
                self.positions.pop(args[0] if args else kwargs["table_id"], None)
            return result

    def import_ddl(self, text: str) -> ImportReport:
        """Replace the graph with parsed DDL, or leave it untouched on error."""
        with self._lock:
            try:
                graph, positions = ddl_to_graph(text, layout=self.settings.layout)
                self._replace(graph, positions)
            except SchemaVizError as err:
                logger.warning("Import failed: %s", err.describe())
                raise
            logger.info(
                "Imported %d table(s) and %d relation(s)",
                len(graph.tables),
                len(graph.relations),
            )
            return ImportReport(len(graph.tables), len(graph.relations))

    def export_ddl(self) -> str:
        """Generate canonical DDL for the current graph."""
        with self._lock:
            try:
                return graph_to_ddl(
                    self.graph,
                    indent=self.settings.ddl.indent,
                    constraint_prefix=self.settings.ddl.constraint_prefix,
                )
            except SchemaVizError as err:
                logger.warning("Export failed: %s", err.describe())
                raise

    def load_suggestion(self, payload: Suggestion) -> ImportReport:
        """Replace the graph with a schema suggestion, or leave it untouched."""
        with self._lock:
            try:
                graph = suggestion_to_graph(payload)
                self._replace(graph, grid_positions(graph.tables, self.settings.layout))
            except SchemaVizError as err:
                logger.warning("Suggestion rejected: %s", err.describe())
                raise
            return ImportReport(len(graph.tables), len(graph.relations))
