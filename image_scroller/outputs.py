"""Output file naming and overwrite confirmation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from image_scroller.encoding import VIDEO_EXTENSIONS
from image_scroller.geometry import Direction


def default_base_name(input_path: Path, direction: Direction) -> Path:
    """Return ``<input stem>_<abbreviation>Scroll`` in the working directory."""
    return Path(f"{Path(input_path).stem}_{direction.abbreviation}Scroll")


def output_paths(
    base_name: Path,
    *,
    want_gif: bool,
    video_codec: Optional[str],
) -> Dict[str, Path]:
    """Map each requested artifact kind to its destination path."""
    base = Path(base_name)
    paths: Dict[str, Path] = {}
    if want_gif:
        paths["gif"] = base.with_name(f"{base.name}.gif")
    if video_codec:
        paths["video"] = base.with_name(f"{base.name}{VIDEO_EXTENSIONS[video_codec]}")
    return paths


def confirm_overwrite(
    paths: Iterable[Path],
    *,
    force: bool,
    prompt: Optional[Callable[[str], str]] = None,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """Return ``False`` if the user declines to overwrite an existing output."""
    ask = prompt or input
    for path in paths:
        if not path.exists():
            continue
        if force:
            if logger is not None:
                logger.debug("Force overwriting existing file: %s", path)
            continue
        reply = ask(f"Output file '{path}' already exists. Overwrite? [y/N]: ").strip() or "N"
        if reply[0] not in {"y", "Y"}:
            if logger is not None:
                logger.info("Operation cancelled by user (file exists: %s).", path)
            return False
    return True


__all__ = ["confirm_overwrite", "default_base_name", "output_paths"]
