from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from ..models.payload import ROW_ID_KEY
from .correlator import IndexCorrelator

logger = logging.getLogger(__name__)

"""Re-attach server validation errors to the inputs they came from.

Keys look like ``field.position``. The key is split on its first ``.``, the
position is resolved to the row currently shown there, and that row's
``field`` input (or its hidden ``row_id`` input) gets the first message. A key with no ``.`` names a single
standalone input of the form. Keys that resolve to nothing are returned so
the caller can surface them some other way.
"""

__all__ = [
    "ErrorMapper",
]


class ErrorMapper:
    def __init__(self, correlator: IndexCorrelator, standalone: dict[str, str]) -> None:
        self.correlator = correlator
        self.standalone = standalone  # input name -> message, for non-array inputs

    def clear(self) -> None:
        for row in self.correlator.rows():
            row.errors.clear()
        self.standalone.clear()

    def apply(self, errors: Mapping[str, Sequence[str]]) -> list[str]:
        """Reset all markers, then mark every input named in ``errors``.

        Returns the keys that could not be attached to a visible input.
        """
        self.clear()
        unmapped: list[str] = []
        for key, messages in errors.items():
            message = messages[0] if messages else ""
            name, sep, tail = key.partition(".")
            if not sep:
                self.standalone[key] = message
                continue
            row = self.correlator.row_at(int(tail)) if tail.isascii() and tail.isdigit() else None
            if row is None or (name not in row.fields and name != ROW_ID_KEY):
                unmapped.append(key)
                continue
            row.errors[name] = message
        if unmapped:
            logger.warning("could not attach %d error key(s): %s", len(unmapped), ", ".join(unmapped))
        return unmapped
