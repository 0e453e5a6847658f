"""
Command line interface for generating seamless scrolling animations.
"""

from __future__ import annotations

import argparse
import shutil
import sys
from dataclasses import replace
from pathlib import Path
from textwrap import dedent

from dotenv import load_dotenv

from image_scroller import __version__
from image_scroller.config import (
    ALPHA_BITS,
    DEFAULT_CONFIG_FILE,
    GPU_OPTIONS,
    OUTPUT_FORMATS,
    RASTER_BACKENDS,
    VIDEO_CODECS,
    ScrollerSettings,
    load_settings,
    parse_color,
    resolve_worker_count,
)
from image_scroller.encoding import select_video_codec
from image_scroller.errors import ScrollerError
from image_scroller.geometry import ACCEPTED_DIRECTIONS, resolve_direction
from image_scroller.logging_setup import configure_logging
from image_scroller.outputs import confirm_overwrite, default_base_name, output_paths
from image_scroller.runner import ScrollAnimator, ScrollRequest

DEFAULT_DIRECTION = "left"


def _non_negative_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got '{value}'") from None
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got '{value}'")
    return parsed


def _positive_int(value: str) -> int:
    parsed = _non_negative_int(value)
    if parsed == 0:
        raise argparse.ArgumentTypeError("expected a positive integer, got '0'")
    return parsed


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive number, got '{value}'") from None
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got '{value}'")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-scroller",
        description="Turn a still image into a seamlessly looping scrolling GIF or video.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=dedent(
            f"""
            Directions (the way the content appears to move):
              {", ".join(ACCEPTED_DIRECTIONS)}

            Jobs: a number uses exactly N workers, 'auto' keeps one core free,
            'max' uses every core, 'off' or 1 runs sequentially.
            """
        ).strip(),
    )
    parser.add_argument("-i", "--input", type=Path, required=True, help="Input image file.")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output base filename without extension (default: <input_name>_<direction_abbr>Scroll).",
    )
    parser.add_argument(
        "-F",
        "--format",
        dest="output_format",
        choices=OUTPUT_FORMATS,
        help="Output format: 'gif', 'video', or 'both' (default: gif).",
    )
    parser.add_argument(
        "-d",
        "--direction",
        default=DEFAULT_DIRECTION,
        help=f"Scroll direction (default: {DEFAULT_DIRECTION}).",
    )
    parser.add_argument("-g", "--gap", type=_non_negative_int, help="Gap between image repetitions in pixels (default: 10).")
    timing = parser.add_mutually_exclusive_group()
    timing.add_argument("-t", "--delay", type=_positive_int, help="Delay between frames in 1/100s (default: 4).")
    timing.add_argument("-s", "--speed", type=_positive_float, help="Speed in pixels per second.")
    parser.add_argument(
        "-b",
        "--background",
        help="Background color (e.g. 'white', '#FF0000'). Flattens transparency; omit to keep it.",
    )
    parser.add_argument("-c", "--codec", choices=VIDEO_CODECS, help="Video codec (default: h264 with -b, prores otherwise).")
    parser.add_argument("-G", "--gpu", choices=GPU_OPTIONS, help="GPU acceleration for h264/h265 (default: auto).")
    parser.add_argument("-j", "--jobs", help="Parallel jobs: N, 'auto', 'max' or 'off' (default: auto).")
    parser.add_argument("-a", "--alpha-bits", type=int, choices=ALPHA_BITS, help="ProRes alpha quality (default: 16).")
    parser.add_argument("-T", "--temp-dir", type=Path, help="Base directory for temporary frame files.")
    parser.add_argument("--backend", choices=RASTER_BACKENDS, help="Raster backend (default: opencv).")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(DEFAULT_CONFIG_FILE),
        help=f"Settings JSON file (default: {DEFAULT_CONFIG_FILE} when present).",
    )
    parser.add_argument("-y", "--yes", action="store_true", help="Overwrite existing outputs without prompting.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument("-V", "--version", action="version", version=f"imageScroller version {__version__}")
    return parser


def apply_overrides(
    parser: argparse.ArgumentParser,
    settings: ScrollerSettings,
    args: argparse.Namespace,
) -> ScrollerSettings:
    """Layer command line flags over the loaded settings."""
    overrides = {}
    if args.output_format is not None:
        overrides["output_format"] = args.output_format
    if args.gap is not None:
        overrides["gap"] = args.gap
    if args.delay is not None:
        overrides["delay"] = args.delay
        overrides["speed"] = None
    if args.speed is not None:
        overrides["speed"] = args.speed
        overrides["delay"] = None
    if args.background is not None:
        try:
            overrides["background_color"] = parse_color(args.background)
        except ValueError as exc:
            parser.error(str(exc))
    if args.codec is not None:
        overrides["video_codec"] = args.codec
    if args.gpu is not None:
        overrides["gpu"] = args.gpu
    if args.jobs is not None:
        overrides["jobs"] = args.jobs
    if args.alpha_bits is not None:
        overrides["prores_alpha_bits"] = args.alpha_bits
    if args.temp_dir is not None:
        overrides["temp_dir"] = args.temp_dir
    if args.backend is not None:
        overrides["raster_backend"] = args.backend

    updated = replace(settings, **overrides)
    try:
        resolve_worker_count(updated.jobs)
    except ValueError as exc:
        parser.error(str(exc))
    return updated


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as exc:
        parser.error(f"Unable to load settings from {args.config}: {exc}")
    settings = apply_overrides(parser, settings, args)

    logger = configure_logging(verbose=args.verbose, log_file=settings.log_file)

    if not args.input.is_file():
        logger.error("Input file not found: %s", args.input)
        return 1

    try:
        direction = resolve_direction(args.direction)
    except ScrollerError as exc:
        logger.error("%s", exc)
        return 1

    video_codec = None
    if settings.wants_video:
        if shutil.which("ffmpeg") is None:
            logger.error("'ffmpeg' command not found. Please install it or ensure it's in your PATH.")
            return 1
        video_codec = select_video_codec(settings.video_codec, settings.background_color, logger=logger)

    base_name = args.output or default_base_name(args.input, direction)
    paths = output_paths(base_name, want_gif=settings.wants_gif, video_codec=video_codec)
    if not confirm_overwrite(paths.values(), force=args.yes, logger=logger):
        return 0

    animator = ScrollAnimator(settings, logger=logger)
    request = ScrollRequest(
        input_path=args.input,
        direction=direction.label,
        outputs=paths,
        video_codec=video_codec,
    )
    try:
        summary = animator.run(request)
    except ScrollerError as exc:
        logger.error("%s", exc)
        return 1

    logger.info(
        "Created %s from %s frames (%sx%s) in %.1fs",
        ", ".join(str(path) for path in summary.outputs.values()),
        summary.frame_count,
        *summary.frame_size,
        summary.elapsed_seconds,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
