"""Run coordination: plan, tile, extract, flatten and assemble one animation."""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from time import perf_counter
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from image_scroller.config import ScrollerSettings, resolve_worker_count
from image_scroller.encoding import (
    GifEncoder,
    VideoEncoder,
    detect_gpu_encoder,
    list_ffmpeg_encoders,
    select_video_codec,
)
from image_scroller.errors import AssemblyFailed, ScrollerError, TilingFailed
from image_scroller.flatten import flatten_frames
from image_scroller.frames import extract_frames
from image_scroller.geometry import ScrollPlan, build_scroll_plan, resolve_direction
from image_scroller.models import RunSummary
from image_scroller.raster import RasterBackend, create_backend
from image_scroller.timing import framerate_for_delay, resolve_delay

CANVAS_FILENAME = "base_canvas.png"
FRAMES_DIRNAME = "frames"


@dataclass(frozen=True)
class ScrollRequest:
    """A single invocation: which image, which way, and where the artifacts go."""

    input_path: Path
    direction: str
    outputs: Dict[str, Path] = field(default_factory=dict)
    video_codec: Optional[str] = None


class ScrollAnimator:
    """Coordinate the stages that turn a still image into a scrolling loop."""

    def __init__(
        self,
        settings: ScrollerSettings,
        *,
        logger: logging.Logger,
        backend: Optional[RasterBackend] = None,
        gif_encoder: Optional[GifEncoder] = None,
        video_encoder: Optional[VideoEncoder] = None,
        cpu_count: Optional[int] = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self.backend = backend
        self.gif_encoder = gif_encoder
        self.video_encoder = video_encoder
        self.cpu_count = cpu_count

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, request: ScrollRequest) -> RunSummary:
        started = perf_counter()
        settings = self.settings

        direction = resolve_direction(request.direction)
        self.logger.debug("Direction: %s (%s)", direction.label, direction.abbreviation)
        workers = resolve_worker_count(settings.jobs, self.cpu_count)
        self.logger.debug("Parallel jobs: %s", workers)
        available = self.cpu_count or os.cpu_count() or 1
        if workers > available:
            self.logger.warning("Using %s parallel jobs on %s CPU cores.", workers, available)

        try:
            delay = resolve_delay(settings.delay, settings.speed)
        except ValueError as exc:
            raise ScrollerError(str(exc)) from exc
        self.logger.debug("Frame delay: %scs", delay)

        backend = self.backend or create_backend(settings.raster_backend, logger=self.logger)
        width, height = backend.read_dimensions(request.input_path)
        self.logger.debug("Input dimensions: %sx%s", width, height)

        plan = build_scroll_plan(
            direction,
            width,
            height,
            settings.gap,
            cap=settings.max_diagonal_frames,
        )
        if plan.was_capped:
            self.logger.warning(
                "LCM(%s, %s) exceeds %s frames; using %s frames instead. The diagonal loop will not be seamless.",
                plan.step_w,
                plan.step_h,
                settings.max_diagonal_frames,
                plan.frame_count,
            )

        try:
            with self._workspace() as workspace:
                frame_paths = self._render_frames(backend, request.input_path, plan, workspace, workers)
                outputs = self._assemble(frame_paths, request, delay)
        finally:
            backend.release()

        return RunSummary(
            direction=direction.label,
            frame_count=plan.frame_count,
            frame_size=plan.frame_size,
            workers=workers,
            was_capped=plan.was_capped,
            outputs=outputs,
            elapsed_seconds=perf_counter() - started,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _render_frames(
        self,
        backend: RasterBackend,
        source: Path,
        plan: ScrollPlan,
        workspace: Path,
        workers: int,
    ) -> List[Path]:
        canvas_path = workspace / CANVAS_FILENAME
        self.logger.info("Creating base tiled image...")
        result = backend.compose_tiles(source, plan.layout, plan.step_w, plan.step_h, canvas_path)
        if not result.ok:
            raise TilingFailed(f"Failed to create base tiled image: {result.describe()}")
        self.logger.debug(
            "Base image created (%s copies, %sx%s). Number of frames to generate: %s",
            plan.layout.copies,
            *plan.canvas_size,
            plan.frame_count,
        )

        frames_dir = workspace / FRAMES_DIRNAME
        frames_dir.mkdir()
        frame_paths = extract_frames(
            backend,
            canvas_path,
            plan,
            frames_dir,
            workers=workers,
            logger=self.logger,
        )
        flatten_frames(
            backend,
            frame_paths,
            self.settings.background_color,
            workers=workers,
            logger=self.logger,
        )
        return frame_paths

    def _assemble(
        self,
        frame_paths: Sequence[Path],
        request: ScrollRequest,
        delay: int,
    ) -> Dict[str, Path]:
        produced: Dict[str, Path] = {}
        failures: List[Tuple[str, str]] = []

        for kind, output_path in request.outputs.items():
            try:
                if kind == "gif":
                    produced[kind] = self._gif_encoder().encode(frame_paths, output_path, delay)
                elif kind == "video":
                    encoder = self._video_encoder(request.video_codec)
                    produced[kind] = encoder.encode(frame_paths, output_path, framerate_for_delay(delay))
                else:
                    raise AssemblyFailed([(kind, "Unknown output kind")])
            except AssemblyFailed as exc:
                for failed_kind, reason in exc.failures:
                    self.logger.error("Failed to assemble %s: %s", failed_kind, reason)
                failures.extend(exc.failures)

        if failures:
            raise AssemblyFailed(failures)
        return produced

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _workspace(self) -> Iterator[Path]:
        base_dir = self.settings.temp_dir
        if base_dir is not None and not Path(base_dir).is_dir():
            raise ScrollerError(f"Specified temp directory does not exist: {base_dir}")

        with tempfile.TemporaryDirectory(prefix="imageScroller.", dir=base_dir) as temp_dir_str:
            workspace = Path(temp_dir_str)
            self.logger.debug("Using temporary directory: %s", workspace)
            try:
                yield workspace
            finally:
                self.logger.debug("Cleaning up temporary directory: %s", workspace)

    def _gif_encoder(self) -> GifEncoder:
        if self.gif_encoder is None:
            self.gif_encoder = GifEncoder(logger=self.logger)
        return self.gif_encoder

    def _video_encoder(self, requested_codec: Optional[str]) -> VideoEncoder:
        if self.video_encoder is not None:
            return self.video_encoder

        settings = self.settings
        codec = requested_codec or select_video_codec(
            settings.video_codec,
            settings.background_color,
            logger=self.logger,
        )
        gpu_encoder = None
        if codec in {"h264", "h265"} and settings.gpu != "off":
            gpu_encoder = detect_gpu_encoder(
                codec,
                settings.gpu,
                list_ffmpeg_encoders(),
                logger=self.logger,
            )
            if gpu_encoder:
                self.logger.debug("GPU encoder: %s", gpu_encoder)

        self.video_encoder = VideoEncoder(
            codec,
            logger=self.logger,
            gpu_encoder=gpu_encoder,
            alpha_bits=settings.prores_alpha_bits,
            threads=settings.video_threads,
        )
        return self.video_encoder


__all__ = ["ScrollAnimator", "ScrollRequest"]
