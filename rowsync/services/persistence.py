from __future__ import annotations

import logging
from typing import Any

from ..db.store import RowStore, StoreError
from ..models.outcome import AcceptedRows, ApplyResult

logger = logging.getLogger(__name__)

"""Apply validated rows to the store.

Updates go first, one ``update(id, fields)`` per modified row with exactly the
fields the form tracks. New rows follow in one ``insert_many`` call; their
temporary tokens were already dropped by validation and the assigned ids are
not sent back (the client reloads).

Not transactional by default: a failure leaves earlier writes committed and
is reported with the counts reached so far, including insert pages the store
wrote before the failing one.
"""

__all__ = [
    "PersistenceError",
    "PersistenceApplier",
]


class PersistenceError(Exception):
    """A store write failed; ``applied`` counts what was written before it."""

    def __init__(self, message: str, applied: ApplyResult, rolled_back: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.applied = applied
        self.rolled_back = rolled_back


def _normalize(fields: dict[str, Any]) -> dict[str, Any]:
    # blank text is stored as NULL
    return {k: (None if isinstance(v, str) and v.strip() == "" else v) for k, v in fields.items()}


class PersistenceApplier:
    def __init__(self, store: RowStore) -> None:
        self.store = store

    def apply(self, accepted: AcceptedRows) -> ApplyResult:
        """Write accepted rows.

        Raises:
            PersistenceError: a store call failed; carries the partial counts
        """
        updated = inserted = skipped = 0
        inserted_ids: list[Any] = []
        try:
            for identity, fields in accepted.updates:
                if self.store.find_by_id(identity.id) is None:
                    logger.warning("row id=%s no longer exists; update skipped", identity.id)
                    skipped += 1
                    continue
                self.store.update(identity.id, _normalize(fields))
                updated += 1
            if accepted.inserts:
                inserted_ids = list(self.store.insert_many([_normalize(f) for f in accepted.inserts]))
                inserted = len(accepted.inserts)
        except StoreError as e:
            inserted += e.written
            partial = ApplyResult(updated=updated, inserted=inserted, skipped=skipped)
            rolled_back = self.store.rollback()
            if rolled_back:
                partial = ApplyResult(skipped=skipped)
            logger.error(
                "persistence failed after updated=%d inserted=%d (rolled_back=%s): %s",
                updated,
                inserted,
                rolled_back,
                e,
            )
            raise PersistenceError(str(e), partial, rolled_back) from e

        logger.debug("applied updated=%d inserted=%d skipped=%d", updated, inserted, skipped)
        return ApplyResult(updated=updated, inserted=inserted, skipped=skipped, inserted_ids=inserted_ids)
