from __future__ import annotations

import itertools
import secrets

from ..models.row import DEFAULT_TEMPORARY_PREFIX, Temporary

"""Temporary identity generation for rows added in the form.

Each form gets its own generator, so two forms never share a counter. Tokens
carry a reserved non-numeric prefix and therefore never collide with a
persistent id.
"""

__all__ = [
    "TemporaryIdGenerator",
]


class TemporaryIdGenerator:
    """Issues ``<prefix><n>`` tokens (n = 1, 2, ...) or random tokens.

    A generator never returns the same token twice.
    """

    def __init__(self, prefix: str = DEFAULT_TEMPORARY_PREFIX, *, random_tokens: bool = False) -> None:
        if not prefix or prefix[0].isdigit():
            raise ValueError(f"temporary id prefix must start with a non-digit: {prefix!r}")
        self.prefix = prefix
        self.random_tokens = random_tokens
        self._counter = itertools.count(1)
        self._issued: set[str] = set()

    def next(self) -> Temporary:
        while True:
            if self.random_tokens:
                suffix = secrets.token_hex(8)
            else:
                suffix = str(next(self._counter))
            token = f"{self.prefix}{suffix}"
            if token not in self._issued:
                self._issued.add(token)
                return Temporary(token)
