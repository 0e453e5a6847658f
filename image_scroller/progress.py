"""Helpers for throttling and formatting progress reports."""

from __future__ import annotations

from typing import Optional


def format_clock(seconds: float) -> str:
    """Render ``seconds`` stopwatch style: ``0:07``, ``12:30`` or ``2:05:00``."""
    whole = max(0, int(round(seconds)))
    minutes, secs = divmod(whole, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def estimate_remaining(elapsed: float, completed: int, total: int) -> Optional[float]:
    """Seconds left at the average rate so far, or ``None`` without a usable rate."""
    if elapsed <= 0.0 or not 0 < completed <= total:
        return None
    seconds_per_item = elapsed / completed
    return seconds_per_item * (total - completed)


def describe_progress(completed: int, total: int, elapsed: float) -> str:
    """Return ``completed/total (percent, time left)`` for a log line."""
    percent = (completed / total) * 100.0 if total else 100.0
    remaining = estimate_remaining(elapsed, completed, total)
    left = "estimating" if remaining is None else f"{format_clock(remaining)} left"
    return f"{completed}/{total} ({percent:0.1f}%, {left})"


def progress_interval(total: int, updates: int) -> int:
    """Return how many completions to wait between reports.

    Keeps the number of reports near ``updates`` regardless of ``total``.
    """
    if total <= 0 or updates <= 0:
        return 1
    return max(1, total // updates)


__all__ = ["describe_progress", "estimate_remaining", "format_clock", "progress_interval"]
