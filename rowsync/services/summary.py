from __future__ import annotations

from ..models.outcome import SyncStats

"""SUMMARY line rendering for one processed sync request."""


def _fmt_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for sub-10ms requests
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(status: str, stats: SyncStats) -> str:
    """Render the SUMMARY line for one request.

    Format:
    SUMMARY rows={rows} modified={m} new={n} validated={v} updated={u}
    inserted={i} skipped={s} status={status} elapsed_sec={elapsed}

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> stats = SyncStats(rows=3, modified=1, new=0, validated=1,
        ...     start_time=t, end_time=t, elapsed_seconds=0.0)
        >>> render_summary_line("accepted", stats)
        'SUMMARY rows=3 modified=1 new=0 validated=1 updated=0 inserted=0 skipped=0 status=accepted elapsed_sec=0'
    """
    applied = stats.applied
    return (
        f"SUMMARY rows={stats.rows} "
        f"modified={stats.modified} "
        f"new={stats.new} "
        f"validated={stats.validated} "
        f"updated={applied.updated} "
        f"inserted={applied.inserted} "
        f"skipped={applied.skipped} "
        f"status={status} "
        f"elapsed_sec={_fmt_seconds(stats.elapsed_seconds)}"
    )
