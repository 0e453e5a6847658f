"""
Seamless scrolling animations from still images.
"""

__version__ = "1.2.0"

from .errors import (
    AssemblyFailed,
    FlattenFailed,
    FrameGenerationFailed,
    InvalidDimensions,
    InvalidDirection,
    ScrollerError,
    TilingFailed,
)
from .geometry import Direction, ScrollPlan, build_scroll_plan, offset_at, resolve_direction
from .runner import ScrollAnimator, ScrollRequest

__all__ = [
    "__version__",
    "AssemblyFailed",
    "Direction",
    "FlattenFailed",
    "FrameGenerationFailed",
    "InvalidDimensions",
    "InvalidDirection",
    "ScrollAnimator",
    "ScrollPlan",
    "ScrollRequest",
    "ScrollerError",
    "TilingFailed",
    "build_scroll_plan",
    "offset_at",
    "resolve_direction",
]
