from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ..models.outcome import SubmitOutcome
from ..models.payload import SyncPayload
from .form import SyncForm

"""One submit round trip.

The network is not part of the client core: a transport is any callable that
sends a payload and returns ``(status, json_body)``. It may raise ``OSError``
(``ConnectionError`` and friends) when no response arrives. The submit is
not retried and a second submit is not blocked while one is in flight.
"""

__all__ = [
    "Transport",
    "SyncClient",
]

Transport = Callable[[SyncPayload], tuple[int, Any]]


class SyncClient:
    def __init__(self, form: SyncForm, transport: Transport) -> None:
        self.form = form
        self.transport = transport
        self.in_flight = 0

    def submit(self, csrf_token: str | None = None) -> SubmitOutcome:
        cycle = self.form.begin_submit(csrf_token)
        self.in_flight += 1
        try:
            status, body = self.transport(cycle.payload)
        except OSError as e:
            return self.form.transport_failed(e)
        finally:
            self.in_flight -= 1
        return self.form.complete_submit(cycle, status, body)
