from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass

from flask import Flask

from ..config.loader import SyncConfig
from ..db.connection import postgres_store
from ..logging.error_log import ErrorLogBuffer
from ..services.sync import StoreFactory, SyncService
from .routes import bp as rows_bp

logger = logging.getLogger(__name__)

"""Flask application factory for the sync endpoint."""

__all__ = [
    "RowSyncState",
    "create_app",
]


@dataclass(frozen=True)
class RowSyncState:
    config: SyncConfig
    service: SyncService
    store_factory: StoreFactory


def create_app(
    config: SyncConfig,
    store_factory: StoreFactory | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> Flask:
    app = Flask(__name__)

    secret = config.server.secret_key
    if not secret:
        logger.warning("no secret key configured; sessions will not survive a restart")
        secret = secrets.token_hex(32)
    app.config["SECRET_KEY"] = secret
    app.config["ROWSYNC_CSRF_ENABLED"] = config.csrf_enabled

    if store_factory is None:
        def store_factory():
            return postgres_store(config)

    app.extensions["rowsync"] = RowSyncState(
        config=config,
        service=SyncService(config, error_log=error_log),
        store_factory=store_factory,
    )

    # Blueprints
    app.register_blueprint(rows_bp, url_prefix="/rows")

    return app
