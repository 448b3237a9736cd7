from __future__ import annotations

import threading
from datetime import UTC, datetime
from pathlib import Path

from rowsync.models.error_record import ErrorRecord

"""Error log buffering.

Rejected and faulted sync requests are written as JSON Lines (fixed schema,
no extra keys). The file ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC) is named on
first use and appended to on every flush.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush appends JSON Lines.

    One buffer is shared by every request a process serves, possibly from
    several threads at once. All access goes through one lock, and a flush
    writes each buffered record exactly once.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        with self._lock:
            return self._ensure_path()

    def _ensure_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        with self._lock:
            self._records.append(record)

    def extend(self, records: list[ErrorRecord]) -> None:
        with self._lock:
            self._records.extend(records)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        with self._lock:
            return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path, or None if nothing was written.

        If the write fails the records stay buffered for the next flush.
        """
        with self._lock:
            if not self._records:
                return None
            fp = self._ensure_path()
            lines = "".join(r.to_json_line() + "\n" for r in self._records)
            with fp.open("a", encoding="utf-8") as f:
                f.write(lines)
            self._records.clear()
            return fp
