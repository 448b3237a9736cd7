from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..models.outcome import ErrorMap
from ..models.payload import CSRF_KEY, MODIFIED_KEY, NEW_KEY, ROW_ID_KEY, ChangeSet, SyncPayload

"""Request body decoding.

Accepts the form-encoded wire shape (``field[]`` arrays, ``row_id[]``, JSON
index lists in ``modified_rows``/``new_rows``) or a JSON object carrying the
same keys. Problems with the index lists are returned as error-map entries
under the plain list key, so they reach the client like any other validation
error. Only a body that cannot be read at all raises ``WirePayloadError``.
"""

__all__ = [
    "WirePayloadError",
    "DecodedRequest",
    "decode_positions",
    "decode_form",
    "decode_json",
]


class WirePayloadError(ValueError):
    pass


class MultiValueForm(Protocol):
    """The part of werkzeug's MultiDict the decoder needs."""

    def getlist(self, key: str) -> list[Any]: ...

    def get(self, key: str, default: Any = None) -> Any: ...

    def __contains__(self, key: object) -> bool: ...


@dataclass(frozen=True)
class DecodedRequest:
    payload: SyncPayload
    errors: ErrorMap = field(default_factory=dict)


def _coerce_position(item: Any) -> int | None:
    if isinstance(item, bool):
        return None
    if isinstance(item, int):
        return item
    if isinstance(item, str) and item.strip().isascii() and item.strip().isdigit():
        return int(item.strip())
    return None


def decode_positions(key: str, raw: Any) -> tuple[tuple[int, ...], list[str]]:
    """Decode one index list; returns (positions, error messages).

    ``raw`` is the JSON text from a form, an already-decoded list from a JSON
    body, or None when the key was not sent (an empty list).
    """
    if raw is None or raw == "":
        return (), []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return (), [f"{key} must be a JSON list of integer positions"]
    if not isinstance(raw, list):
        return (), [f"{key} must be a JSON list of integer positions"]

    positions: list[int] = []
    errors: list[str] = []
    for item in raw:
        position = _coerce_position(item)
        if position is None:
            errors.append(f"{key} contains a non-integer position {item!r}")
        elif position not in positions:
            positions.append(position)
    return tuple(positions), errors


def _build(
    csrf_token: Any,
    field_names: Sequence[str],
    columns: dict[str, list[Any]],
    row_ids: list[Any],
    raw_modified: Any,
    raw_new: Any,
) -> DecodedRequest:
    errors: ErrorMap = {}
    modified, modified_errors = decode_positions(MODIFIED_KEY, raw_modified)
    new, new_errors = decode_positions(NEW_KEY, raw_new)
    if modified_errors:
        errors[MODIFIED_KEY] = modified_errors
    if new_errors:
        errors[NEW_KEY] = new_errors
    payload = SyncPayload(
        csrf_token="" if csrf_token is None else str(csrf_token),
        field_names=tuple(field_names),
        columns=columns,
        row_ids=["" if r is None else str(r) for r in row_ids],
        changes=ChangeSet(positions_modified=modified, positions_new=new),
    )
    return DecodedRequest(payload=payload, errors=errors)


def decode_form(form: MultiValueForm, field_names: Sequence[str]) -> DecodedRequest:
    """Decode a form-encoded submit; ``name[]`` and bare ``name`` are both accepted."""

    def _array(name: str) -> list[Any] | None:
        for key in (f"{name}[]", name):
            if key in form:
                return list(form.getlist(key))
        return None

    columns: dict[str, list[Any]] = {}
    for name in field_names:
        values = _array(name)
        if values is not None:
            columns[name] = values
    return _build(
        form.get(CSRF_KEY),
        field_names,
        columns,
        _array(ROW_ID_KEY) or [],
        form.get(MODIFIED_KEY),
        form.get(NEW_KEY),
    )


def decode_json(body: Any, field_names: Sequence[str]) -> DecodedRequest:
    """Decode a JSON submit carrying the same keys as the form shape."""
    if not isinstance(body, Mapping):
        raise WirePayloadError("request body must be a JSON object")

    def _array(name: str) -> list[Any] | None:
        for key in (name, f"{name}[]"):
            if key in body:
                value = body[key]
                if not isinstance(value, list):
                    raise WirePayloadError(f"'{key}' must be an array")
                return list(value)
        return None

    columns: dict[str, list[Any]] = {}
    for name in field_names:
        values = _array(name)
        if values is not None:
            columns[name] = values
    return _build(
        body.get(CSRF_KEY),
        field_names,
        columns,
        _array(ROW_ID_KEY) or [],
        body.get(MODIFIED_KEY),
        body.get(NEW_KEY),
    )
