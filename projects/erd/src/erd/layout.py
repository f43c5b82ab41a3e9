"""Initial display positions for tables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from erd.settings import LayoutSettings
from erd.types import Position

if TYPE_CHECKING:
    from collections.abc import Iterable


def grid_position(index: int, layout: LayoutSettings) -> Position:
    """Position of the n-th table in a row-major grid."""
    if layout.columns < 1:
        msg = f"Grid needs at least one column, got {layout.columns}"
        raise ValueError(msg)
    row, col = divmod(index, layout.columns)
    return Position(
        x=layout.origin_x + col * layout.spacing_x,
        y=layout.origin_y + row * layout.spacing_y,
    )


def grid_positions(
    table_ids: Iterable[str],
    layout: LayoutSettings | None = None,
) -> dict[str, Position]:
    """Assign grid positions to tables in the given order."""
    layout = layout or LayoutSettings()
    if layout.columns < 1:
        msg = f"Grid needs at least one column, got {layout.columns}"
        raise ValueError(msg)
    return {
        table_id: grid_position(index, layout)
        for index, table_id in enumerate(table_ids)
    }
