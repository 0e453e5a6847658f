"""Exception types raised by the scrolling animation pipeline."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple


class ScrollerError(RuntimeError):
    """Base class for fatal pipeline errors."""


class InvalidDirection(ScrollerError, ValueError):
    """Raised when a direction token matches none of the accepted spellings."""

    def __init__(self, token: str, accepted: Sequence[str]) -> None:
        self.token = token
        self.accepted = tuple(accepted)
        super().__init__(
            f"Invalid direction '{token}'. Use one of: {', '.join(self.accepted)}"
        )


class InvalidDimensions(ScrollerError):
    """Raised when the source image reports non-positive or unreadable dimensions."""


class ToolNotFound(ScrollerError):
    """Raised when a required external tool is missing from PATH."""


class TilingFailed(ScrollerError):
    """Raised when the base canvas could not be composed."""


class _PhaseFailed(ScrollerError):
    phase = "process"

    def __init__(self, failed_count: int, sample: Optional[str]) -> None:
        self.failed_count = failed_count
        self.sample = sample
        message = f"Failed to {self.phase} {failed_count} frames."
        if sample:
            message = f"{message} First failure: {sample}"
        super().__init__(message)


class FrameGenerationFailed(_PhaseFailed):
    """Raised after the extraction pool drained with one or more failures."""

    phase = "create"


class FlattenFailed(_PhaseFailed):
    """Raised after the flatten pool drained with one or more failures."""

    phase = "flatten"


class AssemblyFailed(ScrollerError):
    """Raised when one or more requested artifacts could not be encoded."""

    def __init__(self, failures: Sequence[Tuple[str, str]]) -> None:
        self.failures = tuple(failures)
        details = "; ".join(f"{kind}: {reason}" for kind, reason in self.failures)
        super().__init__(f"Failed to assemble {len(self.failures)} output(s): {details}")


__all__ = [
    "AssemblyFailed",
    "FlattenFailed",
    "FrameGenerationFailed",
    "InvalidDimensions",
    "InvalidDirection",
    "ScrollerError",
    "TilingFailed",
    "ToolNotFound",
]
