from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..models.outcome import Rejected, Saved, ServerFault, SubmitOutcome, TransportFailure
from ..models.payload import SyncPayload
from ..models.row import DEFAULT_TEMPORARY_PREFIX, Persistent, Row, RowState, parse_wire_identity
from .change_tracker import ChangeTracker, FormError
from .correlator import IndexCorrelator
from .error_mapper import ErrorMapper
from .events import ERRORS_APPLIED, RELOADED, ROW_ADDED, ROW_REMOVED, SAVED, FormEvents
from .payload_builder import SyncPayloadBuilder
from .temp_ids import TemporaryIdGenerator

logger = logging.getLogger(__name__)

"""Client-side model of the editable table form.

``SyncForm`` owns the visible rows and wires the pieces together: edits go
through the ``ChangeTracker``, add/delete renumber positions through the
``IndexCorrelator``, ``begin_submit`` freezes a payload, and
``complete_submit`` turns the server's answer into a ``SubmitOutcome``
(marking inputs through the ``ErrorMapper`` on 422).

A successful submit does not patch rows in place: the form is flagged
``needs_reload`` and the caller is expected to ``reload`` it from fresh
server state, which is also how inserted rows get their real ids.
"""

__all__ = [
    "FormError",
    "SubmitCycle",
    "SyncForm",
]

SAVED_NOTICE = "Changes saved successfully!"
TRANSPORT_NOTICE = "Error saving changes. Please try again."


@dataclass(frozen=True)
class SubmitCycle:
    """One in-flight submit: the frozen payload and the row layout it was built from."""
    payload: SyncPayload
    generation: int
    rows: tuple[Row, ...]


RowRef = Row | int


class SyncForm:
    def __init__(
        self,
        field_names: Sequence[str],
        rows: Iterable[Mapping[str, Any]] = (),
        *,
        id_column: str = "id",
        id_generator: TemporaryIdGenerator | None = None,
        temporary_prefix: str = DEFAULT_TEMPORARY_PREFIX,
    ) -> None:
        self.field_names = tuple(field_names)
        self.id_column = id_column
        self.temporary_prefix = temporary_prefix
        self.ids = id_generator or TemporaryIdGenerator(temporary_prefix)
        self.events = FormEvents()
        self.correlator = IndexCorrelator()
        self.tracker = ChangeTracker(self.events)
        self.builder = SyncPayloadBuilder(self.field_names)
        self.input_errors: dict[str, str] = {}  # standalone (non-array) inputs
        self.error_mapper = ErrorMapper(self.correlator, self.input_errors)
        self.csrf_token: str | None = None
        self.needs_reload = False
        self.notice: str | None = None
        self._rows: list[Row] = []
        self._load(rows)

    @classmethod
    def from_listing(cls, listing: Mapping[str, Any], **kwargs: Any) -> SyncForm:
        """Build a form from the ``GET /rows`` document."""
        form = cls(listing["fields"], **kwargs)
        form._load_listing(listing)
        return form

    # -- rows -----------------------------------------------------------

    @property
    def rows(self) -> tuple[Row, ...]:
        return tuple(self._rows)

    def _persistent_row(self, row_id: Any, values: Mapping[str, Any]) -> Row:
        loaded = {name: "" if values.get(name) is None else str(values.get(name)) for name in self.field_names}
        return Row(identity=Persistent(int(row_id)), fields=dict(loaded), originals=dict(loaded))

    def _load(self, rows: Iterable[Mapping[str, Any]]) -> None:
        self._rows = [self._persistent_row(r[self.id_column], r) for r in rows]
        self.correlator.renumber(self._rows)

    def _load_listing(self, listing: Mapping[str, Any]) -> None:
        rows: list[Row] = []
        for entry in sorted(listing.get("rows", []), key=lambda e: e["position"]):
            identity = parse_wire_identity(entry["row_id"], self.temporary_prefix)
            if not isinstance(identity, Persistent):
                raise FormError(f"listing row has no persistent id: {entry['row_id']!r}")
            rows.append(self._persistent_row(identity.id, entry.get("values", {})))
        self._rows = rows
        self.csrf_token = listing.get("csrf_token")
        self.correlator.renumber(self._rows)

    def _resolve(self, ref: RowRef) -> Row:
        if isinstance(ref, Row):
            if self.correlator.position_of(ref) is None:
                raise FormError("row is not on this form")
            return ref
        row = self.correlator.row_at(ref)
        if row is None:
            raise FormError(f"no row at position {ref}")
        return row

    def row_at(self, position: int) -> Row:
        return self._resolve(position)

    def add_row(self) -> Row:
        """Append an empty row with a fresh temporary identity."""
        row = Row(identity=self.ids.next(), fields={name: "" for name in self.field_names})
        self._rows.append(row)
        self.correlator.renumber(self._rows)
        self.events.emit(ROW_ADDED, row)
        return row

    def delete_row(self, ref: RowRef) -> Row:
        """Remove a row from the form. Nothing is sent to the server for it."""
        row = self._resolve(ref)
        self._rows.remove(row)
        self.correlator.renumber(self._rows)
        row.position = -1
        self.events.emit(ROW_REMOVED, row)
        return row

    def edit(self, ref: RowRef, field: str, value: str | None) -> RowState:
        return self.tracker.on_field_change(self._resolve(ref), field, value)

    def positions(self, state: RowState) -> list[int]:
        return [i for i, r in enumerate(self._rows) if r.state is state]

    # -- submit cycle ---------------------------------------------------

    def begin_submit(self, csrf_token: str | None = None) -> SubmitCycle:
        token = csrf_token if csrf_token is not None else (self.csrf_token or "")
        self.notice = None
        payload = self.builder.build(self._rows, token)
        logger.debug(
            "submit rows=%d modified=%s new=%s",
            payload.row_count,
            list(payload.changes.positions_modified),
            list(payload.changes.positions_new),
        )
        return SubmitCycle(payload=payload, generation=self.correlator.generation, rows=tuple(self._rows))

    def complete_submit(self, cycle: SubmitCycle, status: int | None, body: Any) -> SubmitOutcome:
        """Interpret the server response for ``cycle``."""
        if cycle.generation != self.correlator.generation:
            logger.warning(
                "rows were added or removed while the submit was in flight; "
                "errors are attached by current position and may land on the wrong row"
            )
        data = body if isinstance(body, Mapping) else {}

        if status == 200 and data.get("success") is True:
            self.needs_reload = True
            self.notice = SAVED_NOTICE
            self.events.emit(SAVED)
            return Saved()

        if status == 422 or (status == 200 and isinstance(data.get("errors"), Mapping)):
            errors = {
                k: list(v) if isinstance(v, (list, tuple)) else [v]
                for k, v in (data.get("errors") or {}).items()
            }
            unmapped = self.error_mapper.apply(errors)
            message = str(data.get("message") or "Validation failed")
            self.notice = message
            self.events.emit(ERRORS_APPLIED, errors, unmapped)
            return Rejected(errors=errors, message=message, unmapped=unmapped)

        if status in (200, 500):
            message = str(data.get("message") or "Server error")
            self.notice = f"Error: {message}"
            return ServerFault(message=message)

        logger.error("submit failed with HTTP status %s", status)
        self.notice = TRANSPORT_NOTICE
        return TransportFailure(status=status, message=TRANSPORT_NOTICE)

    def transport_failed(self, error: Exception) -> TransportFailure:
        logger.error("submit failed before a response arrived: %s", error)
        self.notice = TRANSPORT_NOTICE
        return TransportFailure(status=None, message=TRANSPORT_NOTICE)

    def reload(self, listing: Mapping[str, Any]) -> None:
        """Replace every row with fresh server state from a ``GET /rows`` document."""
        self._load_listing(listing)
        self.input_errors.clear()
        self.needs_reload = False
        self.events.emit(RELOADED)

    def close(self) -> None:
        """Tear down every observer registered on this form."""
        self.events.close()
