"""Frame extraction stage: cut every frame of the loop out of the base canvas."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from image_scroller.errors import FrameGenerationFailed
from image_scroller.geometry import ScrollPlan
from image_scroller.models import FrameRect, OpResult
from image_scroller.pool import run_pool
from image_scroller.raster import RasterBackend

FRAME_PREFIX = "frame_"
FRAME_SUFFIX = ".png"
MIN_FRAME_DIGITS = 5


def frame_digits(frame_count: int) -> int:
    """Width of the zero-padded index so lexical order matches frame order."""
    return max(MIN_FRAME_DIGITS, len(str(max(0, frame_count - 1))))


def frame_filename(index: int, digits: int = MIN_FRAME_DIGITS) -> str:
    return f"{FRAME_PREFIX}{index:0{digits}d}{FRAME_SUFFIX}"


def list_frame_files(frames_dir: Path) -> List[Path]:
    """Return the frame files in ``frames_dir`` in lexical (= temporal) order."""
    return sorted(frames_dir.glob(f"{FRAME_PREFIX}*{FRAME_SUFFIX}"))


def extract_frames(
    backend: RasterBackend,
    canvas_path: Path,
    plan: ScrollPlan,
    frames_dir: Path,
    *,
    workers: int,
    logger: logging.Logger,
) -> List[Path]:
    """Extract ``plan.frame_count`` frames and return their paths in order.

    Raises :class:`FrameGenerationFailed` once every frame has been attempted
    if any extraction failed or if fewer frame files exist than expected.
    """
    digits = frame_digits(plan.frame_count)
    frame_paths = [frames_dir / frame_filename(index, digits) for index in range(plan.frame_count)]
    width, height = plan.frame_size

    def extract(index: int) -> OpResult:
        x, y = plan.offset(index)
        rect = FrameRect(x=x, y=y, width=width, height=height)
        return backend.extract_frame(canvas_path, rect, frame_paths[index])

    if workers > 1:
        logger.info("Generating %s animation frames using %s parallel jobs...", plan.frame_count, workers)
    else:
        logger.info("Generating %s animation frames...", plan.frame_count)

    outcome = run_pool(
        range(plan.frame_count),
        extract,
        workers=workers,
        logger=logger,
        label="Generating frames",
    )

    if not outcome.ok:
        sample = str(outcome.first_failure) if outcome.first_failure else None
        raise FrameGenerationFailed(outcome.failed_count, sample)

    produced = len(list_frame_files(frames_dir))
    if produced != plan.frame_count:
        missing = next((path.name for path in frame_paths if not path.exists()), None)
        raise FrameGenerationFailed(
            abs(plan.frame_count - produced),
            f"Only {produced} of {plan.frame_count} frames were generated"
            + (f" (first missing: {missing})" if missing else ""),
        )

    logger.debug("Generated %s frames in %s", produced, frames_dir)
    return frame_paths


__all__ = [
    "FRAME_PREFIX",
    "extract_frames",
    "frame_digits",
    "frame_filename",
    "list_frame_files",
]
