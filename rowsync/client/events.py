from __future__ import annotations

from collections.abc import Callable
from typing import Any

"""Observer registration scoped to one form.

Handlers are registered on the form's own ``FormEvents`` instead of a
document-wide registry, and every registration returns a ``Subscription``
that removes exactly that handler. ``FormEvents.close()`` removes them all
when the form goes away.
"""

__all__ = [
    "ROW_CHANGED",
    "STATE_CHANGED",
    "ROW_ADDED",
    "ROW_REMOVED",
    "ERRORS_APPLIED",
    "SAVED",
    "RELOADED",
    "FormEvents",
    "Subscription",
]

ROW_CHANGED = "row_changed"  # (row, field)
STATE_CHANGED = "state_changed"  # (row, old_state, new_state)
ROW_ADDED = "row_added"  # (row,)
ROW_REMOVED = "row_removed"  # (row,)
ERRORS_APPLIED = "errors_applied"  # (error_map, unmapped_keys)
SAVED = "saved"  # ()
RELOADED = "reloaded"  # ()

EVENTS = frozenset({ROW_CHANGED, STATE_CHANGED, ROW_ADDED, ROW_REMOVED, ERRORS_APPLIED, SAVED, RELOADED})

Handler = Callable[..., Any]


class Subscription:
    def __init__(self, events: FormEvents, event: str, handler: Handler) -> None:
        self._events = events
        self.event = event
        self.handler = handler
        self.active = True

    def close(self) -> None:
        if self.active:
            self._events._remove(self)
            self.active = False

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class FormEvents:
    def __init__(self) -> None:
        self._subs: dict[str, list[Subscription]] = {e: [] for e in EVENTS}
        self.closed = False

    def subscribe(self, event: str, handler: Handler) -> Subscription:
        if self.closed:
            raise RuntimeError("form events already torn down")
        if event not in self._subs:
            raise ValueError(f"unknown form event: {event!r}")
        sub = Subscription(self, event, handler)
        self._subs[event].append(sub)
        return sub

    def emit(self, event: str, *args: Any) -> None:
        # copy: a handler may unsubscribe itself while we iterate
        for sub in list(self._subs[event]):
            sub.handler(*args)

    def count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._subs[event])
        return sum(len(s) for s in self._subs.values())

    def close(self) -> None:
        """Drop every subscription, in reverse registration order per event."""
        for subs in self._subs.values():
            for sub in reversed(list(subs)):
                sub.close()
        self.closed = True

    def _remove(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.event, [])
        if sub in subs:
            subs.remove(sub)
