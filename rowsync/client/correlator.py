from __future__ import annotations

from collections.abc import Iterable

from ..models.row import Row

"""Positional correlation between visible rows and the wire arrays.

A row's position is its 0-based index in render order. Every field array,
the ``row_id`` array and both index lists refer to rows only by this
position, so positions must not move between building a payload and
handling its response. ``generation`` increases on every renumber, which
lets a submit cycle notice that the sequence changed under it.
"""

__all__ = [
    "IndexCorrelator",
]


class IndexCorrelator:
    def __init__(self) -> None:
        self._rows: list[Row] = []
        self.generation = 0

    def renumber(self, rows: Iterable[Row]) -> None:
        """Assign contiguous positions 0..n-1 in the given order."""
        self._rows = list(rows)
        for i, row in enumerate(self._rows):
            row.position = i
        self.generation += 1

    def rows(self) -> list[Row]:
        return list(self._rows)

    def row_at(self, position: int) -> Row | None:
        if 0 <= position < len(self._rows):
            return self._rows[position]
        return None

    def position_of(self, row: Row) -> int | None:
        for i, candidate in enumerate(self._rows):
            if candidate is row:
                return i
        return None

    def __len__(self) -> int:
        return len(self._rows)
