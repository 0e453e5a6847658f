"""Settings dataclass and loading helpers for the image scroller."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

from image_scroller.geometry import DEFAULT_MAX_DIAGONAL_FRAMES
from image_scroller.models import Color

DEFAULT_CONFIG_FILE = "image_scroller.json"

OUTPUT_FORMATS = ("gif", "video", "both")
VIDEO_CODECS = ("h264", "h265", "prores")
GPU_OPTIONS = ("auto", "nvidia", "amd", "intel", "off")
ALPHA_BITS = (8, 16)
RASTER_BACKENDS = ("opencv", "imagemagick")

NAMED_COLORS = {
    "white": (255, 255, 255),
    "black": (0, 0, 0),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "lime": (0, 255, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "cyan": (0, 255, 255),
    "magenta": (255, 0, 255),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
    "silver": (192, 192, 192),
    "orange": (255, 165, 0),
    "purple": (128, 0, 128),
    "navy": (0, 0, 128),
}


def _parse_positive_int(value: Any, default: Optional[int]) -> Optional[int]:
    """Parse a positive integer with fallback to default."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _parse_non_negative_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


def _parse_optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def _parse_choice(value: Any, choices: Tuple[str, ...], default: Optional[str]) -> Optional[str]:
    if value is None:
        return default
    text = str(value).strip().lower()
    return text if text in choices else default


def parse_color(value: Any) -> Color:
    """Parse a colour definition into an RGB tuple.

    Accepts ``#RRGGBB``, ``#RGB``, CSS-style names, ``[r, g, b]`` sequences and
    ``{"hex": ...}`` / ``{"value": [...]}`` mappings. Raises ``ValueError``
    when the value cannot be understood.
    """
    if isinstance(value, Mapping):
        if isinstance(value.get("hex"), str):
            return parse_color(value["hex"])
        if "value" in value:
            return parse_color(value["value"])
        raise ValueError(f"Unsupported color mapping: {dict(value)!r}")

    if isinstance(value, (list, tuple)):
        if len(value) != 3:
            raise ValueError(f"Color needs three channels, got {value!r}")
        try:
            channels = tuple(max(0, min(255, int(channel))) for channel in value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid color channels: {value!r}") from None
        return channels  # type: ignore[return-value]

    if isinstance(value, str):
        text = value.strip().lower()
        if text in NAMED_COLORS:
            return NAMED_COLORS[text]
        hex_value = text.lstrip("#")
        if len(hex_value) == 3:
            hex_value = "".join(character * 2 for character in hex_value)
        if len(hex_value) == 6:
            try:
                return (
                    int(hex_value[0:2], 16),
                    int(hex_value[2:4], 16),
                    int(hex_value[4:6], 16),
                )
            except ValueError:
                pass
    raise ValueError(f"Unrecognized color: {value!r}")


def _parse_optional_color(value: Any) -> Optional[Color]:
    if value is None or value == "":
        return None
    try:
        return parse_color(value)
    except ValueError:
        return None


def resolve_worker_count(token: Union[str, int, None], cpu_count: Optional[int] = None) -> int:
    """Translate a jobs setting into a worker count.

    ``auto`` (the default) keeps one core free, ``max`` uses every core,
    ``off`` or ``1`` runs sequentially and any positive integer is used as is.
    """
    cpus = cpu_count if cpu_count is not None else (os.cpu_count() or 4)
    cpus = max(1, cpus)
    if token is None:
        return max(1, cpus - 1)
    text = str(token).strip().lower()
    if text in {"", "auto"}:
        return max(1, cpus - 1)
    if text == "max":
        return cpus
    if text == "off":
        return 1
    try:
        jobs = int(text)
    except ValueError:
        raise ValueError(f"Invalid jobs value '{token}'. Use a number, 'auto', 'max', or 'off'.") from None
    if jobs <= 0:
        raise ValueError(f"Invalid jobs value '{token}'. Use a number, 'auto', 'max', or 'off'.")
    return jobs


@dataclass(frozen=True)
class ScrollerSettings:
    """Configuration applied to a single scroll animation run."""

    gap: int = 10
    delay: Optional[int] = None
    speed: Optional[float] = None
    output_format: str = "gif"
    background_color: Optional[Color] = None
    video_codec: Optional[str] = None
    gpu: str = "auto"
    jobs: str = "auto"
    temp_dir: Optional[Path] = None
    prores_alpha_bits: int = 16
    video_threads: int = 0
    max_diagonal_frames: int = DEFAULT_MAX_DIAGONAL_FRAMES
    raster_backend: str = "opencv"
    log_file: Optional[Path] = None

    @property
    def wants_gif(self) -> bool:
        return self.output_format in {"gif", "both"}

    @property
    def wants_video(self) -> bool:
        return self.output_format in {"video", "both"}


def _parse_settings(data: Mapping[str, Any]) -> ScrollerSettings:
    default = ScrollerSettings()
    delay = _parse_positive_int(data.get("delay"), None)
    speed = _parse_optional_float(data.get("speed"))
    if delay is not None and speed is not None:
        raise ValueError("Cannot specify both delay and speed. Please choose one.")
    alpha_bits = _parse_positive_int(data.get("prores_alpha_bits"), default.prores_alpha_bits)
    temp_dir = data.get("temp_dir")
    log_file = data.get("log_file")
    jobs = data.get("jobs")
    return ScrollerSettings(
        gap=_parse_non_negative_int(data.get("gap"), default.gap),
        delay=delay,
        speed=speed,
        output_format=_parse_choice(data.get("output_format"), OUTPUT_FORMATS, default.output_format),
        background_color=_parse_optional_color(data.get("background_color")),
        video_codec=_parse_choice(data.get("video_codec"), VIDEO_CODECS, None),
        gpu=_parse_choice(data.get("gpu"), GPU_OPTIONS, default.gpu),
        jobs=str(jobs).strip() if jobs not in (None, "") else default.jobs,
        temp_dir=Path(temp_dir) if temp_dir else None,
        prores_alpha_bits=alpha_bits if alpha_bits in ALPHA_BITS else default.prores_alpha_bits,
        video_threads=_parse_non_negative_int(data.get("video_threads"), default.video_threads),
        max_diagonal_frames=_parse_positive_int(
            data.get("max_diagonal_frames"),
            default.max_diagonal_frames,
        ),
        raster_backend=_parse_choice(data.get("raster_backend"), RASTER_BACKENDS, default.raster_backend),
        log_file=Path(log_file) if log_file else None,
    )


def _load_env_settings(env: Mapping[str, str]) -> ScrollerSettings:
    """Settings derived from ``SCROLLER_*`` environment variables."""
    return _parse_settings({
        "gap": env.get("SCROLLER_GAP"),
        "delay": env.get("SCROLLER_DELAY"),
        "speed": env.get("SCROLLER_SPEED"),
        "output_format": env.get("SCROLLER_FORMAT"),
        "background_color": env.get("SCROLLER_BACKGROUND"),
        "video_codec": env.get("SCROLLER_CODEC"),
        "gpu": env.get("SCROLLER_GPU"),
        "jobs": env.get("SCROLLER_JOBS"),
        "temp_dir": env.get("SCROLLER_TEMP_DIR"),
        "prores_alpha_bits": env.get("SCROLLER_ALPHA_BITS"),
        "video_threads": env.get("SCROLLER_VIDEO_THREADS"),
        "max_diagonal_frames": env.get("SCROLLER_MAX_DIAGONAL_FRAMES"),
        "raster_backend": env.get("SCROLLER_RASTER_BACKEND"),
        "log_file": env.get("SCROLLER_LOG_FILE"),
    })


def load_settings(
    config_path: Union[Path, str, None] = DEFAULT_CONFIG_FILE,
    env: Optional[Mapping[str, str]] = None,
) -> ScrollerSettings:
    """Load settings from a JSON file, falling back to environment variables."""
    source_env = env if env is not None else os.environ

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            if not isinstance(data, Mapping):
                raise ValueError(f"Config file '{path}' must contain a JSON object")
            return _parse_settings(data)

    return _load_env_settings(source_env)


__all__ = [
    "ALPHA_BITS",
    "DEFAULT_CONFIG_FILE",
    "GPU_OPTIONS",
    "OUTPUT_FORMATS",
    "RASTER_BACKENDS",
    "ScrollerSettings",
    "VIDEO_CODECS",
    "load_settings",
    "parse_color",
    "resolve_worker_count",
]
