"""Raster capabilities used by the pipeline: tiling, cropping and flattening.

Backends report every operation through :class:`OpResult` so that tool
failures (a bad exit status, an unreadable file) stay data until the pipeline
decides what to do with them.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from image_scroller.errors import InvalidDimensions, ToolNotFound
from image_scroller.geometry import TilingLayout
from image_scroller.models import Color, FrameRect, OpResult


class RasterBackend:
    """Interface implemented by raster processing backends."""

    name = "abstract"

    def read_dimensions(self, source: Path) -> Tuple[int, int]:
        raise NotImplementedError

    def compose_tiles(
        self,
        source: Path,
        layout: TilingLayout,
        step_w: int,
        step_h: int,
        dest: Path,
    ) -> OpResult:
        raise NotImplementedError

    def extract_frame(self, canvas: Path, rect: FrameRect, dest: Path) -> OpResult:
        raise NotImplementedError

    def flatten_frame(self, frame: Path, color: Color) -> OpResult:
        raise NotImplementedError

    def release(self) -> None:
        """Drop any state cached for the current run."""


class OpenCVRaster(RasterBackend):
    """In-process backend built on OpenCV and numpy."""

    name = "opencv"

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._canvas_cache: Dict[Path, np.ndarray] = {}
        self._canvas_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Capability operations
    # ------------------------------------------------------------------

    def read_dimensions(self, source: Path) -> Tuple[int, int]:
        image = cv2.imread(str(source), cv2.IMREAD_UNCHANGED)
        if image is None:
            raise InvalidDimensions(f"Failed to get dimensions of '{source}'. Is the file a valid image?")
        height, width = image.shape[:2]
        if width <= 0 or height <= 0:
            raise InvalidDimensions(f"Invalid image dimensions ({width}x{height}) for '{source}'")
        return width, height

    def compose_tiles(
        self,
        source: Path,
        layout: TilingLayout,
        step_w: int,
        step_h: int,
        dest: Path,
    ) -> OpResult:
        tile = self._ensure_bgra(cv2.imread(str(source), cv2.IMREAD_UNCHANGED))
        if tile is None:
            return OpResult.failure("read", f"Unable to read source image '{source}'")

        tile_height, tile_width = tile.shape[:2]
        canvas_width, canvas_height = layout.canvas_size(step_w, step_h)
        canvas = np.zeros((canvas_height, canvas_width, 4), dtype=np.uint8)
        for x, y in layout.placements(step_w, step_h):
            canvas[y:y + tile_height, x:x + tile_width] = tile

        return self._write(dest, canvas)

    def extract_frame(self, canvas: Path, rect: FrameRect, dest: Path) -> OpResult:
        base = self._load_canvas(canvas)
        if base is None:
            return OpResult.failure("read", f"Unable to read canvas '{canvas}'")

        crop = base[rect.y:rect.y + rect.height, rect.x:rect.x + rect.width]
        if crop.shape[0] != rect.height or crop.shape[1] != rect.width:
            return OpResult.failure(
                "bounds",
                f"Crop {rect.geometry()} exceeds canvas {base.shape[1]}x{base.shape[0]}",
            )
        return self._write(dest, np.ascontiguousarray(crop))

    def flatten_frame(self, frame: Path, color: Color) -> OpResult:
        image = self._ensure_bgra(cv2.imread(str(frame), cv2.IMREAD_UNCHANGED))
        if image is None:
            return OpResult.failure("read", f"Unable to read frame '{frame}'")

        red, green, blue = color
        background = np.array((blue, green, red), dtype=np.float32)
        alpha = image[:, :, 3].astype(np.float32)[..., None] / 255.0
        colour = image[:, :, :3].astype(np.float32)
        flattened = colour * alpha + background * (1.0 - alpha)
        return self._write(frame, np.clip(np.rint(flattened), 0, 255).astype(np.uint8))

    def release(self) -> None:
        with self._canvas_lock:
            self._canvas_cache.clear()

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------

    def _load_canvas(self, canvas: Path) -> Optional[np.ndarray]:
        with self._canvas_lock:
            cached = self._canvas_cache.get(canvas)
            if cached is None:
                cached = self._ensure_bgra(cv2.imread(str(canvas), cv2.IMREAD_UNCHANGED))
                if cached is None:
                    return None
                self._canvas_cache[canvas] = cached
                self.logger.debug("Loaded canvas %s (%sx%s)", canvas, cached.shape[1], cached.shape[0])
            return cached

    @staticmethod
    def _write(dest: Path, image: np.ndarray) -> OpResult:
        try:
            success, buffer = cv2.imencode(".png", image)
        except cv2.error as exc:
            return OpResult.failure("encode", str(exc))
        if not success:
            return OpResult.failure("encode", f"Failed to encode PNG for '{dest}'")
        try:
            Path(dest).write_bytes(buffer.tobytes())
        except OSError as exc:
            return OpResult.failure("write", str(exc))
        return OpResult.success()

    @staticmethod
    def _ensure_bgra(image: Optional[np.ndarray]) -> Optional[np.ndarray]:
        if image is None:
            return None
        if image.dtype == np.uint16:
            image = (image >> 8).astype(np.uint8)
        if len(image.shape) == 2 or image.shape[2] == 1:
            return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
        if image.shape[2] == 3:
            opaque_alpha = np.full((image.shape[0], image.shape[1], 1), 255, dtype=image.dtype)
            return np.concatenate((image, opaque_alpha), axis=2)
        if image.shape[2] != 4:
            return None
        return image


Runner = Callable[..., subprocess.CompletedProcess]


class MagickRaster(RasterBackend):
    """Backend that shells out to ImageMagick 7 (``magick``) or 6 (``convert``)."""

    name = "imagemagick"

    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        runner: Runner = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._runner = runner
        if which("magick"):
            self.convert_cmd: List[str] = ["magick"]
            self.identify_cmd: List[str] = ["magick", "identify"]
        elif which("convert") and which("identify"):
            self.convert_cmd = ["convert"]
            self.identify_cmd = ["identify"]
        else:
            raise ToolNotFound("ImageMagick not found. Please install it.")

    def read_dimensions(self, source: Path) -> Tuple[int, int]:
        cmd = [*self.identify_cmd, "-format", "%w %h", f"{source}[0]"]
        completed = self._runner(cmd, capture_output=True, text=True)
        if completed.returncode != 0:
            raise InvalidDimensions(f"Failed to get dimensions of '{source}': {completed.stderr.strip()}")
        parts = completed.stdout.split()
        try:
            width, height = int(parts[0]), int(parts[1])
        except (IndexError, ValueError):
            raise InvalidDimensions(
                f"Invalid image dimensions ({completed.stdout.strip()!r}) for '{source}'"
            ) from None
        if width <= 0 or height <= 0:
            raise InvalidDimensions(f"Invalid image dimensions ({width}x{height}) for '{source}'")
        return width, height

    def compose_tiles(
        self,
        source: Path,
        layout: TilingLayout,
        step_w: int,
        step_h: int,
        dest: Path,
    ) -> OpResult:
        canvas_width, canvas_height = layout.canvas_size(step_w, step_h)
        cmd = [*self.convert_cmd, "-size", f"{canvas_width}x{canvas_height}", "xc:none"]
        for x, y in layout.placements(step_w, step_h):
            cmd += [str(source), "-geometry", f"+{x}+{y}", "-composite"]
        cmd.append(str(dest))
        return self._run(cmd)

    def extract_frame(self, canvas: Path, rect: FrameRect, dest: Path) -> OpResult:
        return self._run([
            *self.convert_cmd,
            str(canvas),
            "-alpha",
            "set",
            "-crop",
            rect.geometry(),
            "+repage",
            str(dest),
        ])

    def flatten_frame(self, frame: Path, color: Color) -> OpResult:
        hex_color = "#{:02X}{:02X}{:02X}".format(*color)
        return self._run([
            *self.convert_cmd,
            str(frame),
            "-background",
            hex_color,
            "-flatten",
            str(frame),
        ])

    def _run(self, cmd: Sequence[str]) -> OpResult:
        self.logger.debug("Running %s", " ".join(cmd))
        try:
            completed = self._runner(list(cmd), capture_output=True, text=True)
        except OSError as exc:
            return OpResult.failure("oserror", str(exc))
        if completed.returncode != 0:
            return OpResult.failure(completed.returncode, completed.stderr or "")
        return OpResult.success()


def create_backend(name: str, *, logger: Optional[logging.Logger] = None) -> RasterBackend:
    """Instantiate a backend by its configuration name."""
    key = (name or OpenCVRaster.name).strip().lower()
    if key == OpenCVRaster.name:
        return OpenCVRaster(logger=logger)
    if key in {MagickRaster.name, "magick"}:
        return MagickRaster(logger=logger)
    raise ValueError(f"Unknown raster backend '{name}'. Use 'opencv' or 'imagemagick'.")


__all__ = [
    "MagickRaster",
    "OpenCVRaster",
    "RasterBackend",
    "create_backend",
]
