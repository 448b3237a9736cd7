from __future__ import annotations

import hmac
import secrets
from functools import wraps

from flask import current_app, jsonify, request, session

from ..models.payload import CSRF_KEY

"""Session-backed CSRF token.

``GET /rows`` issues the token (one per session) and the sync endpoint
requires it back as ``csrf_token`` (form field or JSON key) or in the
``X-CSRF-Token`` header. A mismatch answers 419 without touching the
payload.
"""

__all__ = [
    "SESSION_KEY",
    "issue_token",
    "csrf_protect",
]

SESSION_KEY = "_rowsync_csrf"
HEADER = "X-CSRF-Token"


def issue_token() -> str:
    token = session.get(SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[SESSION_KEY] = token
    return token


def _sent_token() -> str | None:
    if CSRF_KEY in request.form:
        return request.form.get(CSRF_KEY)
    if request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict) and isinstance(body.get(CSRF_KEY), str):
            return body[CSRF_KEY]
    return request.headers.get(HEADER)


def csrf_protect(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_app.config.get("ROWSYNC_CSRF_ENABLED", True):
            return view(*args, **kwargs)
        expected = session.get(SESSION_KEY)
        sent = _sent_token()
        if not expected or not sent or not hmac.compare_digest(str(expected), str(sent)):
            current_app.logger.warning("csrf token mismatch from %s", request.remote_addr)
            return jsonify({"success": False, "message": "CSRF token mismatch"}), 419
        return view(*args, **kwargs)

    return wrapper
