"""Logging configuration for the image scroller command line."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple, Union

DEFAULT_LOGGER_NAME = "image_scroller"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

# Libraries that log per-chunk details at DEBUG.
QUIET_LOGGERS = ("PIL",)


def _open_log_file(log_file: Union[str, Path]) -> Tuple[Optional[logging.Handler], Optional[str]]:
    """Open ``log_file`` for appending, falling back to the system temp directory."""
    log_path = Path(log_file).expanduser()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path, encoding="utf-8"), None
    except OSError as exc:
        fallback_path = Path(tempfile.gettempdir()) / log_path.name
        try:
            handler = logging.FileHandler(fallback_path, encoding="utf-8")
        except OSError as fallback_exc:
            return None, f"Cannot write log file '{log_path}' or '{fallback_path}': {fallback_exc}"
        return handler, f"Cannot write log file '{log_path}' ({exc}); logging to '{fallback_path}' instead"


def configure_logging(
    logger_name: Optional[str] = None,
    *,
    verbose: bool = False,
    log_file: Union[str, Path, None] = None,
    include_stream: bool = True,
) -> logging.Logger:
    """Configure root handlers and return the application logger.

    Console output is terse unless ``verbose`` is set, which also lowers the
    level to DEBUG. A ``log_file`` always receives timestamped records.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = []
    pending_warning: Optional[str] = None

    if log_file:
        file_handler, pending_warning = _open_log_file(log_file)
        if file_handler is not None:
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            handlers.append(file_handler)

    if include_stream:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(VERBOSE_CONSOLE_FORMAT if verbose else CONSOLE_FORMAT))
        handlers.append(stream_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO)

    logger = logging.getLogger(logger_name or DEFAULT_LOGGER_NAME)
    logger.setLevel(level)
    if pending_warning:
        logger.warning(pending_warning)
    return logger


__all__ = ["DEFAULT_LOGGER_NAME", "configure_logging"]
