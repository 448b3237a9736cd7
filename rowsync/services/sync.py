from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import UTC, datetime

from ..config.loader import SyncConfig
from ..db.store import RowStore
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary
from ..models.error_record import ErrorRecord
from ..models.outcome import (
    Accepted,
    ApplyResult,
    ErrorMap,
    PersistenceFault,
    SyncOutcome,
    SyncStats,
    ValidationRejected,
)
from ..models.payload import MODIFIED_KEY, NEW_KEY, ROW_ID_KEY
from .persistence import PersistenceApplier, PersistenceError
from .summary import render_summary_line
from .validation import ValidationDispatcher
from .wire import DecodedRequest

logger = logging.getLogger(__name__)

"""Sync request orchestration.

One call to ``SyncService.process`` handles one submit:

1. validate the flagged positions (decode problems are merged in)
2. on any error: log one error record per key, return ``ValidationRejected``
3. otherwise open a store and apply updates and inserts
4. return ``Accepted``, or ``PersistenceFault`` if a write failed

The store is opened only when there is something to write, so a submit with
no modified or new rows never touches the database. A SUMMARY line is logged
for every request.
"""

__all__ = [
    "StoreFactory",
    "SyncService",
]

StoreFactory = Callable[[], AbstractContextManager[RowStore]]


def _error_type(key: str) -> str:
    name = key.partition(".")[0]
    if key in (MODIFIED_KEY, NEW_KEY):
        return "INVALID_METADATA"
    if name == ROW_ID_KEY:
        return "INVALID_ROW_ID"
    return "VALIDATION_FAILED"


def _key_position(key: str) -> int:
    _, sep, tail = key.partition(".")
    return int(tail) if sep and tail.isascii() and tail.isdigit() else -1


def _log_summary(status: str, stats: SyncStats) -> None:
    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(status, stats)[len("SUMMARY "):])


class SyncService:
    def __init__(self, config: SyncConfig, error_log: ErrorLogBuffer | None = None) -> None:
        self.config = config
        self.dispatcher = ValidationDispatcher(config.fields, config.temporary_id_prefix)
        self.error_log = error_log if error_log is not None else ErrorLogBuffer()

    def process(
        self,
        decoded: DecodedRequest,
        store_factory: StoreFactory,
        request_id: str | None = None,
    ) -> SyncOutcome:
        request_id = request_id or uuid.uuid4().hex
        start_time = datetime.now(UTC)
        payload = decoded.payload
        changes = payload.changes

        validation = self.dispatcher.validate(payload, pre_errors=decoded.errors)

        def _stats(applied: ApplyResult) -> SyncStats:
            end_time = datetime.now(UTC)
            return SyncStats(
                rows=payload.row_count,
                modified=len(changes.positions_modified),
                new=len(changes.positions_new),
                validated=len(validation.records),
                start_time=start_time,
                end_time=end_time,
                elapsed_seconds=(end_time - start_time).total_seconds(),
                applied=applied,
            )

        if not validation.ok:
            self._log_rejection(request_id, validation.errors)
            stats = _stats(ApplyResult())
            _log_summary("rejected", stats)
            return ValidationRejected(errors=validation.errors, stats=stats)

        accepted = validation.accepted
        if not accepted:
            stats = _stats(ApplyResult())
            _log_summary("accepted", stats)
            return Accepted(applied=ApplyResult(), stats=stats)

        try:
            with store_factory() as store:
                applied = PersistenceApplier(store).apply(accepted)
        except PersistenceError as e:
            return self._fault(request_id, e.message, e.applied, _stats)
        except Exception as e:
            logger.exception("unexpected failure while persisting request %s", request_id)
            return self._fault(request_id, str(e) or e.__class__.__name__, ApplyResult(), _stats)

        stats = _stats(applied)
        _log_summary("accepted", stats)
        return Accepted(applied=applied, stats=stats)

    def _fault(
        self,
        request_id: str,
        message: str,
        applied: ApplyResult,
        make_stats: Callable[[ApplyResult], SyncStats],
    ) -> PersistenceFault:
        self.error_log.append(ErrorRecord.create(request_id, "", -1, "PERSISTENCE_FAULT", message))
        self._flush()
        stats = make_stats(applied)
        _log_summary("fault", stats)
        return PersistenceFault(message=message, applied=applied, stats=stats)

    def _log_rejection(self, request_id: str, errors: ErrorMap) -> None:
        records = [
            ErrorRecord.create(
                request_id,
                key,
                _key_position(key),
                _error_type(key),
                messages[0] if messages else "",
            )
            for key, messages in errors.items()
        ]
        self.error_log.extend(records)
        self._flush()

    def _flush(self) -> None:
        try:
            path = self.error_log.flush()
        except OSError as e:
            logger.warning("could not write error log: %s", e)
            return
        if path is not None:
            logger.debug("error log written: %s", path)
