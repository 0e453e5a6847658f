"""Assembly of the ordered frame sequence into GIF and video artifacts."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import tempfile
import uuid
from pathlib import Path
from time import perf_counter
from typing import Callable, List, Optional, Sequence

from PIL import Image

from image_scroller.errors import AssemblyFailed
from image_scroller.models import Color
from image_scroller.progress import describe_progress, progress_interval

VIDEO_EXTENSIONS = {
    "h264": ".mp4",
    "h265": ".mp4",
    "prores": ".mov",
}

# Vendor preference -> ffmpeg encoder suffix, in detection order.
GPU_VENDORS = (
    ("nvidia", "nvenc"),
    ("amd", "amf"),
    ("intel", "qsv"),
)

_FFMPEG_CODEC_NAMES = {
    "h264": "h264",
    "h265": "hevc",
}


def _temporary_sibling(output_path: Path) -> Path:
    return output_path.with_name(f".tmp_{uuid.uuid4().hex}_{output_path.name}")


def _discard(path: Path) -> None:
    if path.exists():
        path.unlink()


def select_video_codec(
    requested: Optional[str],
    background: Optional[Color],
    *,
    logger: logging.Logger,
) -> str:
    """Pick the video codec: explicit choice, else h264 with a background and ProRes without."""
    if requested:
        codec = requested
    else:
        codec = "h264" if background is not None else "prores"

    if codec in {"h264", "h265"} and background is None:
        logger.warning(
            "Using %s without a background color. Transparent areas will be black. "
            "Set a background color, or use prores for transparency.",
            codec,
        )
    if codec == "prores" and background is not None:
        logger.info("Using ProRes with a background color. Consider h264 for smaller files.")
    return codec


def list_ffmpeg_encoders(
    ffmpeg: str = "ffmpeg",
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> str:
    """Return the ``ffmpeg -encoders`` listing, or an empty string if unavailable."""
    try:
        completed = runner(
            [ffmpeg, "-hide_banner", "-encoders"],
            capture_output=True,
            text=True,
        )
    except OSError:
        return ""
    if completed.returncode != 0:
        return ""
    return completed.stdout or ""


def detect_gpu_encoder(
    codec: str,
    preference: str,
    encoders_text: str,
    *,
    logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Return a hardware encoder name for ``codec`` if one is listed, else ``None``."""
    base = _FFMPEG_CODEC_NAMES.get(codec)
    if base is None or preference == "off":
        return None

    for vendor, suffix in GPU_VENDORS:
        if preference not in {"auto", vendor}:
            continue
        encoder = f"{base}_{suffix}"
        if re.search(rf"\b{re.escape(encoder)}\b", encoders_text):
            return encoder

    if preference != "auto" and logger is not None:
        logger.warning(
            "Requested GPU '%s' not available. Falling back to software encoding.",
            preference,
        )
    return None


class GifEncoder:
    """Write an infinitely looping animated GIF with Pillow."""

    kind = "gif"

    def __init__(self, *, logger: logging.Logger) -> None:
        self.logger = logger

    def encode(self, frame_paths: Sequence[Path], output_path: Path, delay_cs: int) -> Path:
        if not frame_paths:
            raise AssemblyFailed([(self.kind, "No frames to assemble")])

        self.logger.info("Assembling GIF: %s", output_path)
        temp_output = _temporary_sibling(output_path)
        try:
            first = self._load_frame(frame_paths[0])
            # Remaining frames are decoded one at a time while Pillow writes.
            first.save(
                temp_output,
                format="GIF",
                save_all=True,
                append_images=(self._load_frame(path) for path in frame_paths[1:]),
                duration=delay_cs * 10,
                loop=0,
                disposal=2,
                optimize=False,
            )
            temp_output.replace(output_path)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            _discard(temp_output)
            raise AssemblyFailed([(self.kind, str(exc))]) from exc

        self.logger.info("Successfully created scrolling GIF: %s", output_path)
        return output_path

    @staticmethod
    def _load_frame(path: Path) -> Image.Image:
        with Image.open(path) as image:
            if "A" in image.getbands():
                return image.convert("RGBA")
            return image.convert("RGB")


class VideoEncoder:
    """Pipe PNG frames, in index order, into ffmpeg."""

    kind = "video"

    def __init__(
        self,
        codec: str,
        *,
        logger: logging.Logger,
        gpu_encoder: Optional[str] = None,
        alpha_bits: int = 16,
        threads: int = 0,
        ffmpeg: str = "ffmpeg",
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        if codec not in VIDEO_EXTENSIONS:
            raise ValueError(f"Unsupported video codec '{codec}'")
        self.codec = codec
        self.logger = logger
        self.gpu_encoder = gpu_encoder if codec != "prores" else None
        self.alpha_bits = alpha_bits
        self.threads = threads
        self.ffmpeg = ffmpeg
        self._popen = popen

    @property
    def extension(self) -> str:
        return VIDEO_EXTENSIONS[self.codec]

    def codec_args(self) -> List[str]:
        if self.codec == "prores":
            return [
                "-c:v",
                "prores_ks",
                "-pix_fmt",
                "yuva444p",
                "-profile:v",
                "4444",
                "-alpha_bits",
                str(self.alpha_bits),
                "-threads",
                str(self.threads),
            ]

        if self.codec == "h264":
            if self.gpu_encoder:
                args = ["-c:v", self.gpu_encoder, "-pix_fmt", "yuv420p", "-preset", "medium"]
            else:
                args = [
                    "-c:v",
                    "libx264",
                    "-pix_fmt",
                    "yuv420p",
                    "-crf",
                    "18",
                    "-preset",
                    "medium",
                    "-threads",
                    str(self.threads),
                ]
            return [*args, "-movflags", "+faststart"]

        if self.gpu_encoder:
            return ["-c:v", self.gpu_encoder, "-pix_fmt", "yuv420p", "-tag:v", "hvc1"]
        return [
            "-c:v",
            "libx265",
            "-pix_fmt",
            "yuv420p",
            "-crf",
            "20",
            "-preset",
            "medium",
            "-tag:v",
            "hvc1",
            "-threads",
            str(self.threads),
        ]

    def build_command(self, framerate: str, output_path: Path) -> List[str]:
        return [
            self.ffmpeg,
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-f",
            "image2pipe",
            "-vcodec",
            "png",
            "-framerate",
            framerate,
            "-i",
            "-",
            *self.codec_args(),
            str(output_path),
        ]

    def encode(self, frame_paths: Sequence[Path], output_path: Path, framerate: str) -> Path:
        if not frame_paths:
            raise AssemblyFailed([(self.kind, "No frames to assemble")])
        if shutil.which(self.ffmpeg) is None:
            raise AssemblyFailed([(self.kind, f"'{self.ffmpeg}' command not found. Please install ffmpeg.")])

        encoder_label = self.gpu_encoder or self.codec_args()[1]
        self.logger.info("Assembling video using %s [%s]: %s", self.codec, encoder_label, output_path)

        temp_output = _temporary_sibling(output_path)
        cmd = self.build_command(framerate, temp_output)

        with tempfile.TemporaryFile() as stderr_file:
            try:
                process = self._popen(
                    cmd,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.DEVNULL,
                    stderr=stderr_file,
                )
            except OSError as exc:
                raise AssemblyFailed([(self.kind, f"Unable to start {self.ffmpeg}: {exc}")]) from exc

            try:
                self._stream_frames(process, frame_paths)
            except BrokenPipeError:
                self.logger.debug("ffmpeg closed its input early")
            except (OSError, RuntimeError) as exc:
                self._abort(process)
                _discard(temp_output)
                raise AssemblyFailed([(self.kind, f"Failed to stream frames to ffmpeg: {exc}")]) from exc
            finally:
                self._close_stdin(process)

            return_code = process.wait()
            stderr_file.seek(0)
            stderr_text = stderr_file.read().decode("utf-8", errors="replace").strip()

        if return_code != 0:
            _discard(temp_output)
            tail = "\n".join(stderr_text.splitlines()[-5:])
            raise AssemblyFailed([(self.kind, f"ffmpeg exited with status {return_code}: {tail}")])

        temp_output.replace(output_path)
        self.logger.info("Successfully created scrolling video: %s", output_path)
        return output_path

    def _stream_frames(self, process: subprocess.Popen, frame_paths: Sequence[Path]) -> None:
        if process.stdin is None:
            raise RuntimeError("FFmpeg stdin unavailable")
        total = len(frame_paths)
        interval = progress_interval(total, 20)
        started = perf_counter()
        for position, frame_path in enumerate(frame_paths, start=1):
            process.stdin.write(frame_path.read_bytes())
            if position % interval == 0 or position == total:
                self.logger.info(
                    "Encoding progress: %s frames",
                    describe_progress(position, total, perf_counter() - started),
                )

    @staticmethod
    def _close_stdin(process: subprocess.Popen) -> None:
        if process.stdin is not None:
            try:
                process.stdin.close()
            except OSError:
                pass

    def _abort(self, process: subprocess.Popen) -> None:
        self._close_stdin(process)
        try:
            process.kill()
        except OSError:
            pass
        process.wait()
        self.logger.debug("Stopped ffmpeg after a streaming error")


__all__ = [
    "GPU_VENDORS",
    "GifEncoder",
    "VIDEO_EXTENSIONS",
    "VideoEncoder",
    "detect_gpu_encoder",
    "list_ffmpeg_encoders",
    "select_video_codec",
]
