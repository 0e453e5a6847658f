"""Optional pass that merges frame transparency into a solid background."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from image_scroller.errors import FlattenFailed
from image_scroller.models import Color, OpResult
from image_scroller.pool import run_pool
from image_scroller.raster import RasterBackend


def flatten_frames(
    backend: RasterBackend,
    frame_paths: Sequence[Path],
    background: Optional[Color],
    *,
    workers: int,
    logger: logging.Logger,
) -> int:
    """Flatten every frame in place onto ``background``.

    Does nothing when ``background`` is ``None``. Returns the number of frames
    flattened and raises :class:`FlattenFailed` after the pool drains if any
    frame could not be flattened.
    """
    if background is None:
        return 0

    color_label = "#{:02X}{:02X}{:02X}".format(*background)
    if workers > 1:
        logger.info("Flattening frames to background color: %s (using %s parallel jobs)...", color_label, workers)
    else:
        logger.info("Flattening frames to background color: %s", color_label)

    def flatten(index: int) -> OpResult:
        return backend.flatten_frame(frame_paths[index], background)

    outcome = run_pool(
        range(len(frame_paths)),
        flatten,
        workers=workers,
        logger=logger,
        label="Flattening frames",
    )
    if not outcome.ok:
        sample = str(outcome.first_failure) if outcome.first_failure else None
        raise FlattenFailed(outcome.failed_count, sample)

    logger.debug("Flattened %s frames to %s", outcome.succeeded, color_label)
    return outcome.succeeded


__all__ = ["flatten_frames"]
