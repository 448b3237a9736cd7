from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from .row import Persistent

"""Result models for a sync request.

Server side, one request ends as exactly one of ``Accepted``,
``ValidationRejected`` or ``PersistenceFault``. Client side, one submit ends
as one of ``Saved``, ``Rejected``, ``ServerFault`` or ``TransportFailure``.
Failures are values here, not exceptions.
"""

__all__ = [
    "ErrorMap",
    "AcceptedRows",
    "ApplyResult",
    "SyncStats",
    "Accepted",
    "ValidationRejected",
    "PersistenceFault",
    "SyncOutcome",
    "Saved",
    "Rejected",
    "ServerFault",
    "TransportFailure",
    "SubmitOutcome",
]

ErrorMap = dict[str, list[str]]  # "<field>.<position>" -> messages


@dataclass(frozen=True)
class AcceptedRows:
    """Rows that passed validation, split by identity tag."""
    updates: list[tuple[Persistent, dict[str, Any]]] = field(default_factory=list)
    inserts: list[dict[str, Any]] = field(default_factory=list)  # temporary token dropped

    def __len__(self) -> int:
        return len(self.updates) + len(self.inserts)


@dataclass(frozen=True)
class ApplyResult:
    updated: int = 0
    inserted: int = 0
    skipped: int = 0  # update targets no longer present in the store
    inserted_ids: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class SyncStats:
    """Per-request counters rendered into the SUMMARY line."""
    rows: int  # visible rows on the wire
    modified: int  # positions flagged modified
    new: int  # positions flagged new
    validated: int  # positions actually examined
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    applied: ApplyResult = field(default_factory=ApplyResult)


@dataclass(frozen=True)
class Accepted:
    applied: ApplyResult
    stats: SyncStats | None = None

    http_status = 200

    def body(self) -> dict[str, Any]:
        return {"success": True}


@dataclass(frozen=True)
class ValidationRejected:
    errors: ErrorMap
    message: str = "Validation failed"
    stats: SyncStats | None = None

    http_status = 422

    def body(self) -> dict[str, Any]:
        return {"success": False, "message": self.message, "errors": self.errors}


@dataclass(frozen=True)
class PersistenceFault:
    """Persistence failed after validation passed.

    ``applied`` counts the writes that happened before the failure; they are
    committed unless the store runs in transactional mode.
    """
    message: str
    applied: ApplyResult = field(default_factory=ApplyResult)
    stats: SyncStats | None = None

    http_status = 500

    def body(self) -> dict[str, Any]:
        return {"success": False, "message": self.message}


SyncOutcome = Union[Accepted, ValidationRejected, PersistenceFault]


@dataclass(frozen=True)
class Saved:
    """Server accepted the submit; the form must reload to see canonical state."""
    reload_required: bool = True


@dataclass(frozen=True)
class Rejected:
    errors: ErrorMap
    message: str = "Validation failed"
    unmapped: list[str] = field(default_factory=list)  # keys with no matching input


@dataclass(frozen=True)
class ServerFault:
    """HTTP 500 from the server.

    ``message`` is whatever the server chose to expose; sanitize it before
    showing it to untrusted viewers.
    """
    message: str


@dataclass(frozen=True)
class TransportFailure:
    status: int | None  # None when no response came back at all
    message: str = "Error saving changes. Please try again."


SubmitOutcome = Union[Saved, Rejected, ServerFault, TransportFailure]
