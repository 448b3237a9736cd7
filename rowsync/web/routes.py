from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from ..services.wire import WirePayloadError, decode_form, decode_json
from .csrf import csrf_protect, issue_token

logger = logging.getLogger(__name__)

bp = Blueprint("rows", __name__)


def _state():
    return current_app.extensions["rowsync"]


@bp.get("")
def list_rows():
    """
    Current rows in render order, plus the session CSRF token.

    Response:
        {
            "csrf_token": "...",
            "fields": ["field1", "field2"],
            "rows": [{"position": 0, "row_id": "17", "values": {"field1": "a", ...}}, ...]
        }
    """
    state = _state()
    config = state.config
    with state.store_factory() as store:
        stored = store.all()
    rows = [
        {
            "position": i,
            "row_id": str(r[config.id_column]),
            "values": {name: r.get(name) for name in config.field_names},
        }
        for i, r in enumerate(stored)
    ]
    return jsonify({
        "csrf_token": issue_token(),
        "fields": list(config.field_names),
        "rows": rows,
    })


@bp.post("/sync")
@csrf_protect
def sync_rows():
    """
    Validate and persist the modified/new rows of one submit.

    200 {"success": true}
    422 {"success": false, "message": "Validation failed", "errors": {"field.position": [...]}}
    500 {"success": false, "message": "..."}
    """
    state = _state()
    field_names = state.config.field_names
    try:
        if request.is_json:
            decoded = decode_json(request.get_json(silent=True), field_names)
        else:
            decoded = decode_form(request.form, field_names)
    except WirePayloadError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    outcome = state.service.process(decoded, state.store_factory)
    return jsonify(outcome.body()), outcome.http_status


@bp.errorhandler(Exception)
def handle_unexpected(e):
    if isinstance(e, HTTPException):
        return e
    logger.exception("unhandled error in rows endpoint")
    return jsonify({"success": False, "message": str(e) or e.__class__.__name__}), 500
