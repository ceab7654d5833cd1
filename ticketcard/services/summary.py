from __future__ import annotations

from ..models.processing_result import RunResult

"""SUMMARY line rendering.

Format:
SUMMARY rows={scanned} ticketed={n} already={n} waiting={n} invalid={n}
cards={created}/{ticketed} failed={n} counter={last} elapsed_sec={elapsed}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: RunResult) -> str:
    """Render the SUMMARY line for a run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 3, 7, tzinfo=timezone.utc)
        >>> r = RunResult(
        ...     scanned_rows=3, ticketed_rows=1, already_ticketed=1, waiting_rows=1,
        ...     invalid_rows=0, cards_created=1, cards_failed=0, last_ticket_number=11,
        ...     start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(r)
        'SUMMARY rows=3 ticketed=1 already=1 waiting=1 invalid=0 cards=1/1 failed=0 counter=11 elapsed_sec=2'
    """
    return (
        f"SUMMARY rows={result.scanned_rows} "
        f"ticketed={result.ticketed_rows} "
        f"already={result.already_ticketed} "
        f"waiting={result.waiting_rows} "
        f"invalid={result.invalid_rows} "
        f"cards={result.cards_created}/{result.ticketed_rows} "
        f"failed={result.cards_failed} "
        f"counter={result.last_ticket_number} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
