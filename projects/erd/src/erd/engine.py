"""Invariant-preserving mutations of a schema graph.

Every public operation validates its arguments before touching the graph,
so a call that raises leaves the graph exactly as it was.
"""

from __future__ import annotations

from dataclasses import fields
from logging import getLogger
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from erd.errors import DuplicateNameError, InvariantError, UnsupportedTypeError
from erd.graph import SchemaGraph
from erd.types import (
    DEFAULT_KEY_COLUMN,
    Cardinality,
    Column,
    ColumnSpec,
    ColumnType,
    Relation,
    Table,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable

logger = getLogger(__name__)

type IdFactory = Callable[[str], str]

COLUMN_FIELDS = frozenset(f.name for f in fields(Column) if f.name != "id")
COLUMN_FLAGS = frozenset(("primary_key", "foreign_key", "unique", "nullable"))
DEFAULT_TABLE_NAME = "new_table"
DEFAULT_COLUMN_NAME = "new_column"


def random_id(prefix: str) -> str:
    """Return a random identifier such as ``t-1f0c9a2b7d3e``."""
    return f"{prefix}-{uuid4().hex[:12]}"


def coerce_column_type(value: ColumnType | str) -> ColumnType:
    """Convert a type name into the vocabulary, case-insensitively."""
    try:
        return ColumnType(str(value).upper())
    except ValueError as err:
        msg = f"Unsupported column type: {value!r}"
        raise UnsupportedTypeError(msg) from err


def coerce_cardinality(value: Cardinality | str) -> Cardinality:
    """Convert a cardinality label such as ``1:N`` into the enum."""
    try:
        return Cardinality(str(value).upper())
    except ValueError as err:
        msg = f"Unknown cardinality: {value!r}"
        raise ValueError(msg) from err


class MutationEngine:
    """The only sanctioned way to change a :class:`SchemaGraph`."""

    def __init__(
        self,
        graph: SchemaGraph | None = None,
        id_factory: IdFactory = random_id,
    ) -> None:
        """Wrap a graph, creating an empty one when none is given."""
        self.graph = graph if graph is not None else SchemaGraph()
        self._id_factory = id_factory

    def _fresh_id(self, prefix: str, taken: Collection[str]) -> str:
        new_id = self._id_factory(prefix)
        while new_id in taken:
            new_id = self._id_factory(prefix)
        return new_id

    def _free_column_name(self, table: Table) -> str:
        names = {col.name for col in table.columns}
        name, suffix = DEFAULT_COLUMN_NAME, 1
        while name in names:
            name = f"{DEFAULT_COLUMN_NAME}_{suffix}"
            suffix += 1
        return name

    def _refresh_foreign_keys(self, endpoints: Iterable[tuple[str, str]]) -> None:
        """Re-derive the foreign key flag of the given surviving columns."""
        for table_id, column_id in endpoints:
            table = self.graph.tables.get(table_id)
            if table is None:
                continue
            index = table.column_index(column_id)
            if index is None:
                continue
            table.columns[index].foreign_key = self.graph.is_referenced(
                table_id,
                column_id,
            )

    # Tables

    def add_table(
        self,
        name: str = DEFAULT_TABLE_NAME,
        *,
        default_column: bool = True,
    ) -> str:
        """Create a table, by default with an integer ``id`` primary key."""
        table_id = self._fresh_id("t", self.graph.tables)
        table = Table(id=table_id, name=name)
        self.graph.tables[table_id] = table
        if default_column:
            self.add_column(table_id, DEFAULT_KEY_COLUMN)
        logger.debug("Added table %s (%s)", name, table_id)
        return table_id

    def rename_table(self, table_id: str, name: str) -> None:
        """Rename a table; duplicate table names are allowed."""
        table = self.graph.table(table_id)
        logger.debug("Renamed table %s from %s to %s", table_id, table.name, name)
        table.name = name

    def remove_table(self, table_id: str) -> list[str]:
        """Remove a table, its columns and every incident relation.

        Returns the ids of the removed relations.
        """
        table = self.graph.table(table_id)
        removed = self.graph.relations_for_table(table_id)
        for rel in removed:
            del self.graph.relations[rel.id]
        del self.graph.tables[table_id]
        self._refresh_foreign_keys(
            (rel.target_table_id, rel.target_column_id) for rel in removed
        )
        logger.debug(
            "Removed table %s with %d relation(s)",
            table.name,
            len(removed),
        )
        return [rel.id for rel in removed]

    # Columns

    def add_column(self, table_id: str, spec: ColumnSpec | None = None) -> str:
        """Append a column to a table and return its id."""
        table = self.graph.table(table_id)
        spec = spec or ColumnSpec()
        column_type = coerce_column_type(spec.type)
        if spec.name is None:
            name = self._free_column_name(table)
        elif any(col.name == spec.name for col in table.columns):
            msg = f"Column {spec.name!r} already exists in table {table.name!r}"
            raise DuplicateNameError(msg)
        else:
            name = spec.name

        column_id = self._fresh_id("c", [col.id for col in table.columns])
        table.columns.append(
            Column(
                id=column_id,
                name=name,
                type=column_type,
                primary_key=spec.primary_key,
                unique=spec.unique,
                nullable=spec.nullable,
            ),
        )
        logger.debug("Added column %s.%s (%s)", table.name, name, column_id)
        return column_id

    def update_column(self, table_id: str, column_id: str, **changes: Any) -> None:  # noqa: ANN401
        """Merge the supplied fields into a column.

        ``foreign_key`` is accepted for compatibility with editors that
        toggle it, but the flag is always re-derived from the relations.
        """
        table = self.graph.table(table_id)
        column = self.graph.column(table_id, column_id)

        if unknown := set(changes) - COLUMN_FIELDS:
            msg = f"Unknown column field(s): {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        if "name" in changes and not isinstance(changes["name"], str):
            msg = f"Column name must be a string, got {changes['name']!r}"
            raise ValueError(msg)
        if flags := [
            key
            for key in COLUMN_FLAGS & changes.keys()
            if not isinstance(changes[key], bool)
        ]:
            msg = f"Column flag(s) must be booleans: {', '.join(sorted(flags))}"
            raise ValueError(msg)
        if "type" in changes:
            changes["type"] = coerce_column_type(changes["type"])
        if "name" in changes and any(
            col.name == changes["name"] and col.id != column_id
            for col in table.columns
        ):
            msg = f"Column {changes['name']!r} already exists in table {table.name!r}"
            raise DuplicateNameError(msg)

        for key, value in changes.items():
            setattr(column, key, value)

        if "foreign_key" in changes:
            derived = self.graph.is_referenced(table_id, column_id)
            if derived != column.foreign_key:
                logger.debug(
                    "Ignoring foreign_key=%s on %s.%s, relations say %s",
                    column.foreign_key,
                    table.name,
                    column.name,
                    derived,
                )
            column.foreign_key = derived
        logger.debug("Updated column %s.%s: %s", table.name, column.name, changes)

    def remove_column(self, table_id: str, column_id: str) -> list[str]:
        """Remove a column and every relation using it.

        Returns the ids of the removed relations.
        """
        table = self.graph.table(table_id)
        column = self.graph.column(table_id, column_id)
        removed = self.graph.relations_for_column(table_id, column_id)
        for rel in removed:
            del self.graph.relations[rel.id]
        table.columns.remove(column)
        self._refresh_foreign_keys(
            (rel.target_table_id, rel.target_column_id) for rel in removed
        )
        logger.debug(
            "Removed column %s.%s with %d relation(s)",
            table.name,
            column.name,
            len(removed),
        )
        return [rel.id for rel in removed]

    def reorder_column(self, table_id: str, from_index: int, to_index: int) -> None:
        """Move a column to another position inside its table."""
        table = self.graph.table(table_id)
        size = len(table.columns)
        for index in (from_index, to_index):
            if not 0 <= index < size:
                msg = f"Column index {index} out of range for table {table.name!r}"
                raise IndexError(msg)
        table.columns.insert(to_index, table.columns.pop(from_index))

    # Relations

    def connect(
        self,
        source_table_id: str,
        source_column_id: str,
        target_table_id: str,
        target_column_id: str,
        cardinality: Cardinality | str = Cardinality.ONE_TO_MANY,
    ) -> str:
        """Relate two columns and mark the target as a foreign key."""
        self.graph.column(source_table_id, source_column_id)
        target = self.graph.column(target_table_id, target_column_id)
        cardinality = coerce_cardinality(cardinality)

        relation_id = self._fresh_id("r", self.graph.relations)
        self.graph.relations[relation_id] = Relation(
            id=relation_id,
            source_table_id=source_table_id,
            source_column_id=source_column_id,
            target_table_id=target_table_id,
            target_column_id=target_column_id,
            cardinality=cardinality,
        )
        target.foreign_key = True
        logger.debug("Connected relation %s (%s)", relation_id, cardinality)
        return relation_id

    def set_cardinality(self, relation_id: str, cardinality: Cardinality | str) -> None:
        """Change the cardinality label of a relation."""
        relation = self.graph.relation(relation_id)
        relation.cardinality = coerce_cardinality(cardinality)

    def disconnect(self, relation_id: str) -> None:
        """Remove a relation and re-derive its target's foreign key flag."""
        relation = self.graph.relation(relation_id)
        del self.graph.relations[relation_id]
        self._refresh_foreign_keys(
            [(relation.target_table_id, relation.target_column_id)],
        )
        logger.debug("Disconnected relation %s", relation_id)

    # Whole graph

    def reconcile(self) -> list[Column]:
        """Re-derive every foreign key flag and return the columns that changed."""
        changed: list[Column] = []
        for table, column in self.graph.columns():
            derived = self.graph.is_referenced(table.id, column.id)
            if column.foreign_key != derived:
                column.foreign_key = derived
                changed.append(column)
        return changed

    def replace(self, graph: SchemaGraph) -> None:
        """Swap in a complete graph after checking its invariants."""
        if problems := graph.violations():
            raise InvariantError(problems)
        self.graph = graph
        logger.debug(
            "Replaced graph with %d table(s) and %d relation(s)",
            len(graph.tables),
            len(graph.relations),
        )
