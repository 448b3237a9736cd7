from __future__ import annotations

from collections.abc import Sequence

from ..models.payload import ChangeSet, SyncPayload
from ..models.row import Row, RowState

"""Outgoing payload assembly.

Every visible row goes out, changed or not; the two index lists tell the
server which positions to look at. Values are copied, so edits made while a
request is in flight never leak into it.
"""

__all__ = [
    "SyncPayloadBuilder",
]


class SyncPayloadBuilder:
    def __init__(self, field_names: Sequence[str]) -> None:
        self.field_names = tuple(field_names)

    def build(self, rows: Sequence[Row], csrf_token: str) -> SyncPayload:
        """Serialize ``rows`` (already in position order) with their change metadata."""
        columns = {name: [row.fields.get(name, "") for row in rows] for name in self.field_names}
        modified: list[int] = []
        new: list[int] = []
        for position, row in enumerate(rows):
            state = row.state
            if state is RowState.MODIFIED:
                modified.append(position)
            elif state is RowState.NEW:
                new.append(position)
        return SyncPayload(
            csrf_token=csrf_token,
            field_names=self.field_names,
            columns=columns,
            row_ids=[row.identity.wire_value() for row in rows],
            changes=ChangeSet(positions_modified=tuple(modified), positions_new=tuple(new)),
        )
