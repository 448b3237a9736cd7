from __future__ import annotations

from ..models.row import Row, RowState
from .events import ROW_CHANGED, STATE_CHANGED, FormEvents

"""Dirty-state tracking for field edits."""

__all__ = [
    "FormError",
    "ChangeTracker",
]


class FormError(ValueError):
    """Client-side misuse: unknown field, or a row that is not on the form."""


class ChangeTracker:
    def __init__(self, events: FormEvents) -> None:
        self.events = events

    def on_field_change(self, row: Row, field: str, new_value: str | None) -> RowState:
        """Store the edit and recompute the row state from all of its fields.

        Reverting one field while another still differs keeps the row
        modified; reverting every field makes it unchanged again. The stale
        error marker on the edited input is dropped right away.
        """
        if field not in row.fields:
            raise FormError(f"row has no field {field!r}")
        before = row.state
        row.fields[field] = "" if new_value is None else str(new_value)
        after = row.state
        row.modified_marker = after is RowState.MODIFIED
        row.errors.pop(field, None)

        self.events.emit(ROW_CHANGED, row, field)
        if after is not before:
            self.events.emit(STATE_CHANGED, row, before, after)
        return after
