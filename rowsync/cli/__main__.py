from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from rowsync.config.loader import DEFAULT_CONFIG_PATH, ConfigError, SyncConfig, load_config
from rowsync.db.connection import db_connection, postgres_store
from rowsync.db.store import InMemoryRowStore, RowStore
from rowsync.logging.init import set_debug, setup_logging
from rowsync.models.outcome import Accepted, ValidationRejected
from rowsync.services.sync import StoreFactory, SyncService
from rowsync.services.wire import WirePayloadError, decode_json

"""CLI entrypoint.

Subcommands:
- ``serve``: run the HTTP endpoint (Flask development server)
- ``apply FILE``: push one recorded JSON submit through validation and persistence
- ``rows``: print the current rows of the configured table, one JSON object per line

``DISABLE_DB_CONNECT=1``, or a failed connection check at startup, switches
to an in-memory store (optionally seeded with ``--seed rows.json``) so
everything can run without PostgreSQL.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_REJECTED = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so its connection settings win over the config file."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="rowsync", description="Selective row sync server")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to the YAML config")
    p.add_argument("--seed", type=Path, help="JSON list of rows for the in-memory store (mock mode)")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP endpoint")
    serve.add_argument("--host", help="Override server.host")
    serve.add_argument("--port", type=int, help="Override server.port")

    apply = sub.add_parser("apply", help="Apply a recorded JSON submit")
    apply.add_argument("payload", type=Path)

    sub.add_parser("rows", help="Print current rows")
    return p.parse_args(argv)


def _mock_store_factory(cfg: SyncConfig, seed: Path | None) -> StoreFactory:
    rows = json.loads(seed.read_text(encoding="utf-8")) if seed else []
    store = InMemoryRowStore(rows, id_column=cfg.id_column)

    @contextmanager
    def factory() -> Iterator[RowStore]:
        yield store

    return factory


def _store_factory(cfg: SyncConfig, seed: Path | None, logger) -> StoreFactory:
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> in-memory store")
        return _mock_store_factory(cfg, seed)

    try:
        with db_connection(cfg.database):
            pass
    except psycopg2.Error as e:
        logger.info(f"DB connection failed -> fallback to in-memory store: {str(e).strip()}")
        return _mock_store_factory(cfg, seed)

    def factory():
        return postgres_store(cfg)

    return factory


def _serve(cfg: SyncConfig, args: argparse.Namespace, factory: StoreFactory, logger) -> int:
    from rowsync.web import create_app

    app = create_app(cfg, store_factory=factory)
    host = args.host or cfg.server.host
    port = args.port or cfg.server.port
    logger.info(f"serving on http://{host}:{port}/rows")
    app.run(host=host, port=port, debug=args.debug, use_reloader=False)
    return EXIT_SUCCESS


def _apply(cfg: SyncConfig, path: Path, factory: StoreFactory, logger) -> int:
    if not path.exists():
        logger.error(f"payload file not found: {path}")
        return EXIT_FATAL
    try:
        body = json.loads(path.read_text(encoding="utf-8"))
        decoded = decode_json(body, cfg.field_names)
    except (json.JSONDecodeError, WirePayloadError) as e:
        logger.error(f"payload: {e}")
        return EXIT_FATAL

    outcome = SyncService(cfg).process(decoded, factory)
    if isinstance(outcome, Accepted):
        return EXIT_SUCCESS
    if isinstance(outcome, ValidationRejected):
        for key, messages in outcome.errors.items():
            logger.error(f"{key}: {'; '.join(messages)}")
        return EXIT_REJECTED
    logger.error(f"persistence: {outcome.message}")
    return EXIT_FATAL


def _print_rows(cfg: SyncConfig, factory: StoreFactory, logger) -> int:
    try:
        with factory() as store:
            rows = store.all()
    except Exception as e:
        logger.error(f"rows: {e}")
        return EXIT_FATAL
    for r in rows:
        print(json.dumps(r, ensure_ascii=False, default=str))
    logger.info(f"rows={len(rows)} table={cfg.table}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None -> read sys.argv; an explicit [] must not pick up pytest's own arguments
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    factory = _store_factory(cfg, args.seed, logger)

    if args.command == "serve":
        return _serve(cfg, args, factory, logger)
    if args.command == "apply":
        return _apply(cfg, args.payload, factory, logger)
    return _print_rows(cfg, factory, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
