"""Domain models for selective row synchronization.

Row identities and change state, the positional wire payload, and the
result variants a sync request or a client submit can end in.
"""

from .error_record import ErrorRecord
from .outcome import (
    Accepted,
    AcceptedRows,
    ApplyResult,
    PersistenceFault,
    Rejected,
    Saved,
    ServerFault,
    SyncStats,
    TransportFailure,
    ValidationRejected,
)
from .payload import ChangeSet, RowRecord, SyncPayload
from .row import Persistent, Row, RowState, Temporary, parse_wire_identity

__all__ = [
    # Rows
    "Persistent",
    "Temporary",
    "Row",
    "RowState",
    "parse_wire_identity",
    # Wire
    "ChangeSet",
    "SyncPayload",
    "RowRecord",
    # Results
    "AcceptedRows",
    "ApplyResult",
    "SyncStats",
    "Accepted",
    "ValidationRejected",
    "PersistenceFault",
    "Saved",
    "Rejected",
    "ServerFault",
    "TransportFailure",
    # Logging
    "ErrorRecord",
]
