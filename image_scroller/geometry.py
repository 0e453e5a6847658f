"""Scroll geometry: directions, tiling layout, frame counts and crop offsets.

The crop window slides across a base canvas holding two (single axis) or four
(diagonal) copies of the source image. Copy ``(column, row)`` sits at
``(column * step_w, row * step_h)`` where ``step = size + gap``, so every seam,
including the one crossed when the animation wraps, is exactly ``gap`` pixels
wide. Frame ``i`` is the ``width x height`` window at ``offset_at(i, ...)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Tuple

from image_scroller.errors import InvalidDimensions, InvalidDirection

DEFAULT_MAX_DIAGONAL_FRAMES = 10_000


class Motion(Enum):
    """Displacement of the crop window along one axis."""

    NONE = "none"
    INCREASING = "increasing"
    DECREASING = "decreasing"


@dataclass(frozen=True)
class AxisMotion:
    """Horizontal and vertical components of the crop window movement."""

    horizontal: Motion
    vertical: Motion

    def __post_init__(self) -> None:
        if self.horizontal is Motion.NONE and self.vertical is Motion.NONE:
            raise ValueError("AxisMotion requires movement along at least one axis")

    @property
    def is_diagonal(self) -> bool:
        return self.horizontal is not Motion.NONE and self.vertical is not Motion.NONE


class Direction(Enum):
    """Direction the image content appears to move.

    The window moves the opposite way: content scrolling left means the crop
    window advances to the right across the canvas.
    """

    LEFT = ("left", "l", Motion.INCREASING, Motion.NONE)
    RIGHT = ("right", "r", Motion.DECREASING, Motion.NONE)
    UP = ("up", "u", Motion.NONE, Motion.INCREASING)
    DOWN = ("down", "d", Motion.NONE, Motion.DECREASING)
    UP_LEFT = ("up-left", "ul", Motion.INCREASING, Motion.INCREASING)
    UP_RIGHT = ("up-right", "ur", Motion.DECREASING, Motion.INCREASING)
    DOWN_LEFT = ("down-left", "dl", Motion.INCREASING, Motion.DECREASING)
    DOWN_RIGHT = ("down-right", "dr", Motion.DECREASING, Motion.DECREASING)

    def __init__(self, label: str, abbreviation: str, horizontal: Motion, vertical: Motion) -> None:
        self.label = label
        self.abbreviation = abbreviation
        self.motion = AxisMotion(horizontal, vertical)


_DIRECTION_LOOKUP: Dict[str, Direction] = {}
for _direction in Direction:
    _DIRECTION_LOOKUP[_direction.label] = _direction
    _DIRECTION_LOOKUP[_direction.abbreviation] = _direction
del _direction

ACCEPTED_DIRECTIONS: Tuple[str, ...] = tuple(
    f"{direction.label} ({direction.abbreviation})" for direction in Direction
)


def resolve_direction(token: str) -> Direction:
    """Resolve a user supplied direction name or abbreviation."""
    key = str(token).strip().lower()
    try:
        return _DIRECTION_LOOKUP[key]
    except KeyError:
        raise InvalidDirection(str(token), ACCEPTED_DIRECTIONS) from None


@dataclass(frozen=True)
class TilingLayout:
    """Arrangement of source copies inside the base canvas."""

    columns: int
    rows: int
    gap: int

    @property
    def copies(self) -> int:
        return self.columns * self.rows

    def canvas_size(self, step_w: int, step_h: int) -> Tuple[int, int]:
        """Return ``(width, height)`` of the composed canvas."""
        return self.columns * step_w, self.rows * step_h

    def placements(self, step_w: int, step_h: int) -> Iterator[Tuple[int, int]]:
        """Yield the top-left corner of every copy, row by row."""
        for row in range(self.rows):
            for column in range(self.columns):
                yield column * step_w, row * step_h


def compute_layout(motion: AxisMotion, gap: int) -> TilingLayout:
    if gap < 0:
        raise ValueError(f"Gap must be >= 0, got {gap}")
    if motion.is_diagonal:
        return TilingLayout(columns=2, rows=2, gap=gap)
    if motion.horizontal is not Motion.NONE:
        return TilingLayout(columns=2, rows=1, gap=gap)
    return TilingLayout(columns=1, rows=2, gap=gap)


def compute_step_sizes(width: int, height: int, gap: int) -> Tuple[int, int]:
    """Return ``(step_w, step_h)``, the spatial period along each axis."""
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"Invalid image dimensions ({width}x{height})")
    if gap < 0:
        raise ValueError(f"Gap must be >= 0, got {gap}")
    return width + gap, height + gap


def gcd(a: int, b: int) -> int:
    """Greatest common divisor via the Euclidean algorithm."""
    a, b = abs(a), abs(b)
    while b != 0:
        a, b = b, a % b
    return a


def lcm(a: int, b: int) -> int:
    """Least common multiple; zero when either argument is zero."""
    if a == 0 or b == 0:
        return 0
    return abs((a // gcd(a, b)) * b)


def compute_frame_count(
    motion: AxisMotion,
    step_w: int,
    step_h: int,
    cap: int = DEFAULT_MAX_DIAGONAL_FRAMES,
) -> Tuple[int, bool]:
    """Return ``(frame_count, was_capped)`` for one seamless loop.

    Diagonal motion needs a common multiple of both steps to return to phase
    zero on both axes. When that exceeds ``cap`` the larger step is used
    instead, which bounds the output at the cost of a visible seam.
    """
    if not motion.is_diagonal:
        if motion.horizontal is not Motion.NONE:
            return step_w, False
        return step_h, False

    frames = lcm(step_w, step_h)
    if frames > cap:
        return max(step_w, step_h), True
    return frames, False


def _component(index: int, motion: Motion, step: int, diagonal: bool) -> int:
    if motion is Motion.NONE:
        return 0
    if diagonal:
        phase = index % step
        if motion is Motion.INCREASING:
            return phase
        return (step - phase) % step
    if motion is Motion.INCREASING:
        return index
    return step - 1 - index


def offset_at(index: int, motion: AxisMotion, step_w: int, step_h: int) -> Tuple[int, int]:
    """Return the ``(x, y)`` crop origin of frame ``index``."""
    if index < 0:
        raise ValueError(f"Frame index must be >= 0, got {index}")
    diagonal = motion.is_diagonal
    return (
        _component(index, motion.horizontal, step_w, diagonal),
        _component(index, motion.vertical, step_h, diagonal),
    )


@dataclass(frozen=True)
class ScrollPlan:
    """Everything needed to cut the frames of one scroll animation."""

    direction: Direction
    width: int
    height: int
    gap: int
    step_w: int
    step_h: int
    layout: TilingLayout
    frame_count: int
    was_capped: bool

    @property
    def motion(self) -> AxisMotion:
        return self.direction.motion

    @property
    def frame_size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return self.layout.canvas_size(self.step_w, self.step_h)

    def offset(self, index: int) -> Tuple[int, int]:
        return offset_at(index, self.motion, self.step_w, self.step_h)

    def offsets(self) -> Iterator[Tuple[int, int]]:
        for index in range(self.frame_count):
            yield self.offset(index)


def build_scroll_plan(
    direction: Direction,
    width: int,
    height: int,
    gap: int,
    *,
    cap: int = DEFAULT_MAX_DIAGONAL_FRAMES,
) -> ScrollPlan:
    step_w, step_h = compute_step_sizes(width, height, gap)
    layout = compute_layout(direction.motion, gap)
    frame_count, was_capped = compute_frame_count(direction.motion, step_w, step_h, cap)
    return ScrollPlan(
        direction=direction,
        width=width,
        height=height,
        gap=gap,
        step_w=step_w,
        step_h=step_h,
        layout=layout,
        frame_count=frame_count,
        was_capped=was_capped,
    )


__all__ = [
    "ACCEPTED_DIRECTIONS",
    "AxisMotion",
    "DEFAULT_MAX_DIAGONAL_FRAMES",
    "Direction",
    "Motion",
    "ScrollPlan",
    "TilingLayout",
    "build_scroll_plan",
    "compute_frame_count",
    "compute_layout",
    "compute_step_sizes",
    "gcd",
    "lcm",
    "offset_at",
    "resolve_direction",
]
