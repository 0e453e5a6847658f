"""Data models shared across the scrolling animation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

Color = Tuple[int, int, int]


@dataclass(frozen=True)
class OpResult:
    """Outcome of a single call into an external capability."""

    ok: bool
    code: Optional[str] = None
    message: str = ""

    @classmethod
    def success(cls) -> "OpResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, code: object, message: str) -> "OpResult":
        return cls(ok=False, code=str(code), message=message.strip())

    def describe(self) -> str:
        if self.ok:
            return "ok"
        if self.message:
            return f"[{self.code}] {self.message}"
        return f"[{self.code}]"


@dataclass(frozen=True)
class FrameRect:
    """Crop rectangle inside the base canvas."""

    x: int
    y: int
    width: int
    height: int

    def geometry(self) -> str:
        """Return the rectangle in ``WxH+X+Y`` notation."""
        return f"{self.width}x{self.height}+{self.x}+{self.y}"


@dataclass(frozen=True)
class FrameFailure:
    """A work item that did not complete successfully."""

    index: int
    message: str

    def __str__(self) -> str:
        return f"Frame {self.index} - {self.message}"


@dataclass(frozen=True)
class PoolOutcome:
    """Aggregated result of a fully drained worker pool."""

    attempted: int
    succeeded: int
    failures: Tuple[FrameFailure, ...] = ()
    first_failure: Optional[FrameFailure] = None

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class RunSummary:
    """Summary of a completed scroll animation run."""

    direction: str
    frame_count: int
    frame_size: Tuple[int, int]
    workers: int
    was_capped: bool
    outputs: Dict[str, Path] = field(default_factory=dict)
    elapsed_seconds: float = 0.0


__all__ = [
    "Color",
    "FrameFailure",
    "FrameRect",
    "OpResult",
    "PoolOutcome",
    "RunSummary",
]
