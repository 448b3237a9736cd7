from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per failing key of a rejected request, or one record for a
persistence fault. ``position`` is -1 when the error is not tied to a row
(plain keys such as ``modified_rows``, or a request-level fault).

The record shape is fixed by ``rowsync/contracts/error_log_schema.json``.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        request_id: Identifier of the sync request the error belongs to
        key: Compound error key (``field.position``) or plain input name
        position: Row position, -1 when the key has no position
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: First message for the key, or the fault description
    """
    timestamp: str  # ISO8601 UTC
    request_id: str
    key: str
    position: int  # -1 when unknown
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(request_id: str, key: str, position: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            request_id=request_id,
            key=key,
            position=position,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line with no extra keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
