"""Conversions between frame delay, scroll speed and video framerate."""

from __future__ import annotations

from typing import Optional

DEFAULT_DELAY_CS = 4
MIN_DELAY_CS = 1


def delay_from_speed(pixels_per_second: float) -> int:
    """Return the per-frame delay in centiseconds for a scroll speed.

    Each frame advances the window by one pixel, so the delay is
    ``100 / speed`` centiseconds, rounded and clamped to ``MIN_DELAY_CS``.
    """
    if pixels_per_second <= 0:
        raise ValueError("Speed must be a positive number.")
    return max(MIN_DELAY_CS, int(round(100.0 / pixels_per_second)))


def resolve_delay(
    delay: Optional[int] = None,
    speed: Optional[float] = None,
    *,
    default: int = DEFAULT_DELAY_CS,
) -> int:
    if delay is not None and speed is not None:
        raise ValueError("Cannot specify both delay and speed. Please choose one.")
    if speed is not None:
        return delay_from_speed(speed)
    if delay is not None:
        if delay <= 0:
            raise ValueError("Delay must be a positive integer.")
        return delay
    return default


def framerate_for_delay(delay_cs: int) -> str:
    """Return the video framerate matching ``delay_cs`` as an ffmpeg rate string."""
    if delay_cs <= 0:
        raise ValueError("Delay must be a positive integer.")
    rate = f"{100.0 / delay_cs:.4f}".rstrip("0").rstrip(".")
    return rate or "0"


__all__ = [
    "DEFAULT_DELAY_CS",
    "MIN_DELAY_CS",
    "delay_from_speed",
    "framerate_for_delay",
    "resolve_delay",
]
