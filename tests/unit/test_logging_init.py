from __future__ import annotations

import logging

from rowsync.logging.init import (
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    set_debug,
)


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord("rowsync", level, __file__, 1, msg, None, None)


def test_labels():
    fmt = LabeledFormatter()
    assert fmt.format(_record(logging.INFO, "hello")) == "INFO hello"
    assert fmt.format(_record(logging.WARNING, "careful")) == "WARN careful"
    assert fmt.format(_record(SUMMARY_LEVEL, "rows=1")) == "SUMMARY rows=1"


def test_setup_is_idempotent(app_logger):
    assert get_logger() is app_logger
    assert len(app_logger.handlers) == 1
    assert app_logger.propagate is False


def test_child_loggers_reach_handler(app_logger, capsys):
    logging.getLogger("rowsync.services.sync").warning("from a module")
    log_summary("rows=0")
    out = capsys.readouterr().out
    assert "WARN from a module" in out
    assert "SUMMARY rows=0" in out


def test_debug_toggle(app_logger, capsys):
    app_logger.debug("hidden")
    set_debug(True)
    app_logger.debug("shown")
    set_debug(False)
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "DEBUG shown" in out
