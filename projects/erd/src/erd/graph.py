"""The schema graph aggregate and its invariant predicates."""

from __future__ import annotations

from collections import Counter
from copy import deepcopy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from erd.errors import InvariantError, NotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from erd.types import Column, Relation, Table


@dataclass
class SchemaGraph:
    """Tables and relations of one schema.

    Both mappings keep insertion order, which is the default layout and
    DDL emission order. The graph is only changed through
    :class:`erd.engine.MutationEngine`; every method here is read-only.
    """

    tables: dict[str, Table] = field(default_factory=dict)
    relations: dict[str, Relation] = field(default_factory=dict)

    def table(self, table_id: str) -> Table:
        """Return the table with the given id."""
        try:
            return self.tables[table_id]
        except KeyError as err:
            msg = f"Unknown table id: {table_id}"
            raise NotFoundError(msg) from err

    def column(self, table_id: str, column_id: str) -> Column:
        """Return a column of a table by id."""
        table = self.table(table_id)
        index = table.column_index(column_id)
        if index is None:
            msg = f"Unknown column id {column_id} in table {table.name!r}"
            raise NotFoundError(msg)
        return table.columns[index]

    def relation(self, relation_id: str) -> Relation:
        """Return the relation with the given id."""
        try:
            return self.relations[relation_id]
        except KeyError as err:
            msg = f"Unknown relation id: {relation_id}"
            raise NotFoundError(msg) from err

    def table_by_name(self, name: str) -> Table | None:
        """Return the first table with the given name."""
        return next((t for t in self.tables.values() if t.name == name), None)

    def column_by_name(self, table_id: str, name: str) -> Column | None:
        """Return the column of a table with the given name."""
        return next((c for c in self.table(table_id).columns if c.name == name), None)

    def relations_for_column(self, table_id: str, column_id: str) -> list[Relation]:
        """Relations that use the column as source or target."""
        return [
            rel
            for rel in self.relations.values()
            if (rel.source_table_id, rel.source_column_id) == (table_id, column_id)
            or (rel.target_table_id, rel.target_column_id) == (table_id, column_id)
        ]

    def incoming_relations(self, table_id: str, column_id: str) -> list[Relation]:
        """Relations that target the column."""
        return [
            rel
            for rel in self.relations.values()
            if (rel.target_table_id, rel.target_column_id) == (table_id, column_id)
        ]

    def relations_for_table(self, table_id: str) -> list[Relation]:
        """Relations with the table on either end."""
        return [
            rel
            for rel in self.relations.values()
            if table_id in (rel.source_table_id, rel.target_table_id)
        ]

    def is_referenced(self, table_id: str, column_id: str) -> bool:
        """Derived foreign key state of a column, computed from the relations."""
        return any(
            (rel.target_table_id, rel.target_column_id) == (table_id, column_id)
            for rel in self.relations.values()
        )

    def columns(self) -> Iterator[tuple[Table, Column]]:
        """Iterate over every column together with its table."""
        for table in self.tables.values():
            for column in table.columns:
                yield table, column

    def copy(self) -> SchemaGraph:
        """Return an independent deep copy."""
        return deepcopy(self)

    def violations(self) -> list[str]:
        """Describe every invariant the graph currently breaks."""
        problems: list[str] = []

        for table_id, table in self.tables.items():
            if table.id != table_id:
                problems.append(f"Table {table.name!r} is indexed under {table_id}")
            for column_id, count in Counter(c.id for c in table.columns).items():
                if count > 1:
                    problems.append(
                        f"Column id {column_id} repeats in table {table.name!r}",
                    )
            for name, count in Counter(c.name for c in table.columns).items():
                if count > 1:
                    problems.append(f"Column name {name!r} repeats in {table.name!r}")

        for rel in self.relations.values():
            endpoints = (
                (rel.source_table_id, rel.source_column_id),
                (rel.target_table_id, rel.target_column_id),
            )
            for table_id, column_id in endpoints:
                table = self.tables.get(table_id)
                if table is None or table.column_index(column_id) is None:
                    problems.append(
                        f"Relation {rel.id} points at missing {table_id}.{column_id}",
                    )

        for table, column in self.columns():
            referenced = self.is_referenced(table.id, column.id)
            if column.foreign_key != referenced:
                problems.append(
                    f"Column {table.name}.{column.name} has foreign_key="
                    f"{column.foreign_key} but is "
                    f"{'' if referenced else 'not '}targeted by a relation",
                )

        return problems

    def check(self) -> None:
        """Raise InvariantError if any invariant is broken."""
        if problems := self.violations():
            raise InvariantError(problems)
