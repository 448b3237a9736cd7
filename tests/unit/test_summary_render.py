from __future__ import annotations

import doctest
from datetime import UTC, datetime

import rowsync.services.summary as summary_mod
from rowsync.models.outcome import ApplyResult, SyncStats
from rowsync.services.summary import render_summary_line

T0 = datetime(2024, 1, 1, tzinfo=UTC)


def _stats(elapsed: float, applied: ApplyResult | None = None) -> SyncStats:
    return SyncStats(
        rows=5, modified=2, new=1, validated=3,
        start_time=T0, end_time=T0, elapsed_seconds=elapsed,
        applied=applied or ApplyResult(),
    )


def test_render_full_line():
    line = render_summary_line("accepted", _stats(1.23456, ApplyResult(updated=1, inserted=1, skipped=1)))
    assert line == (
        "SUMMARY rows=5 modified=2 new=1 validated=3 "
        "updated=1 inserted=1 skipped=1 status=accepted elapsed_sec=1.235"
    )


def test_small_elapsed_has_no_exponent():
    line = render_summary_line("rejected", _stats(0.000123))
    assert line.endswith("elapsed_sec=0.000123")
    assert "e-" not in line


def test_whole_seconds():
    assert render_summary_line("fault", _stats(2.0)).endswith("status=fault elapsed_sec=2")


def test_docstring_examples():
    result = doctest.testmod(summary_mod, extraglobs={"SyncStats": SyncStats})
    assert result.failed == 0
