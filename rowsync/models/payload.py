from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .row import RowIdentity

"""Wire payload models shared by the client builder and the server decoder.

The wire shape is positional: one array per field plus ``row_id[]``, all
ordered by row position, and two JSON index lists naming the positions that
changed. ``RowRecord`` is the structured per-row view the server works with
once the arrays are decoded.
"""

__all__ = [
    "ChangeSet",
    "SyncPayload",
    "RowRecord",
    "ROW_ID_KEY",
    "MODIFIED_KEY",
    "NEW_KEY",
    "CSRF_KEY",
]

ROW_ID_KEY = "row_id"
MODIFIED_KEY = "modified_rows"
NEW_KEY = "new_rows"
CSRF_KEY = "csrf_token"


@dataclass(frozen=True)
class ChangeSet:
    positions_modified: tuple[int, ...] = ()
    positions_new: tuple[int, ...] = ()

    @property
    def selected(self) -> list[int]:
        """Positions to validate, ascending, each once."""
        return sorted(set(self.positions_modified) | set(self.positions_new))

    def __bool__(self) -> bool:
        return bool(self.positions_modified or self.positions_new)


@dataclass(frozen=True)
class SyncPayload:
    """One submit, as it travels on the wire."""
    csrf_token: str
    field_names: tuple[str, ...]
    columns: dict[str, list[Any]]  # field -> values ordered by position
    row_ids: list[str]
    changes: ChangeSet = field(default_factory=ChangeSet)

    @property
    def row_count(self) -> int:
        return len(self.row_ids)

    def value_at(self, name: str, position: int) -> Any:
        # short arrays read as missing values, never as an IndexError
        values = self.columns.get(name) or []
        return values[position] if position < len(values) else None

    def form_items(self) -> list[tuple[str, str]]:
        """Form-encoded (name, value) pairs in the exact wire shape."""
        items: list[tuple[str, str]] = [(CSRF_KEY, self.csrf_token)]
        for name in self.field_names:
            for value in self.columns.get(name, []):
                items.append((f"{name}[]", "" if value is None else str(value)))
        for rid in self.row_ids:
            items.append((f"{ROW_ID_KEY}[]", rid))
        items.append((MODIFIED_KEY, json.dumps(list(self.changes.positions_modified))))
        items.append((NEW_KEY, json.dumps(list(self.changes.positions_new))))
        return items

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {CSRF_KEY: self.csrf_token}
        for name in self.field_names:
            body[name] = list(self.columns.get(name, []))
        body[ROW_ID_KEY] = list(self.row_ids)
        body[MODIFIED_KEY] = list(self.changes.positions_modified)
        body[NEW_KEY] = list(self.changes.positions_new)
        return body


@dataclass(frozen=True)
class RowRecord:
    position: int
    identity: RowIdentity
    fields: dict[str, Any]
