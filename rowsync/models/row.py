from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

"""Row identity and change-tracking models.

A row is either persistent (it exists in the store under an integer id) or
temporary (created in the form, not yet inserted). The tag is fixed at
creation; the server classifies insert vs update from it alone.
"""

__all__ = [
    "DEFAULT_TEMPORARY_PREFIX",
    "Persistent",
    "Temporary",
    "RowIdentity",
    "RowState",
    "Row",
    "parse_wire_identity",
]

DEFAULT_TEMPORARY_PREFIX = "new_"


@dataclass(frozen=True)
class Persistent:
    """Identity of a row that already exists in the store."""
    id: int

    def wire_value(self) -> str:
        return str(self.id)


@dataclass(frozen=True)
class Temporary:
    """Identity of a row added client-side and not yet inserted.

    The token always starts with a reserved, non-numeric prefix, so it can
    never be parsed as a persistent id and never compares equal to one.
    """
    token: str

    def wire_value(self) -> str:
        return self.token


RowIdentity = Union[Persistent, Temporary]


class RowState(str, Enum):
    UNCHANGED = "unchanged"
    MODIFIED = "modified"
    NEW = "new"


@dataclass(eq=False)
class Row:
    """One visible row of the form.

    Rows compare by object identity: two rows holding the same values are
    still two different inputs on screen.
    """
    identity: RowIdentity
    fields: dict[str, str]  # field name -> current value, in column order
    originals: dict[str, str] = field(default_factory=dict)  # last loaded values
    position: int = -1  # index in the visible sequence, set by the correlator
    modified_marker: bool = False  # visual "row changed" flag
    errors: dict[str, str] = field(default_factory=dict)  # field -> rendered message

    @property
    def is_new(self) -> bool:
        return isinstance(self.identity, Temporary)

    @property
    def state(self) -> RowState:
        if self.is_new:
            return RowState.NEW
        for name, value in self.fields.items():
            if value != self.originals.get(name, ""):
                return RowState.MODIFIED
        return RowState.UNCHANGED


def parse_wire_identity(raw: str | None, prefix: str = DEFAULT_TEMPORARY_PREFIX) -> RowIdentity | None:
    """Decode a ``row_id[]`` entry.

    Returns None when the text is neither a temporary token nor a
    non-negative integer.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    if text.startswith(prefix) and len(text) > len(prefix):
        return Temporary(text)
    if text.isascii() and text.isdigit():
        return Persistent(int(text))
    return None
