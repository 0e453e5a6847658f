import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from image_scroller.errors import InvalidDimensions, InvalidDirection  # noqa: E402
from image_scroller.geometry import (  # noqa: E402
    AxisMotion,
    Direction,
    Motion,
    build_scroll_plan,
    compute_frame_count,
    compute_layout,
    compute_step_sizes,
    gcd,
    lcm,
    offset_at,
    resolve_direction,
)


@pytest.mark.parametrize(
    "token, expected",
    [
        ("left", Direction.LEFT),
        ("l", Direction.LEFT),
        ("right", Direction.RIGHT),
        ("r", Direction.RIGHT),
        ("up", Direction.UP),
        ("u", Direction.UP),
        ("down", Direction.DOWN),
        ("d", Direction.DOWN),
        ("up-left", Direction.UP_LEFT),
        ("ul", Direction.UP_LEFT),
        ("up-right", Direction.UP_RIGHT),
        ("ur", Direction.UP_RIGHT),
        ("down-left", Direction.DOWN_LEFT),
        ("dl", Direction.DOWN_LEFT),
        ("down-right", Direction.DOWN_RIGHT),
        ("dr", Direction.DOWN_RIGHT),
    ],
)
def test_resolve_direction_accepts_names_and_abbreviations(token, expected):
    assert resolve_direction(token) is expected
    assert resolve_direction(f"  {token.upper()} ") is expected


@pytest.mark.parametrize("token", ["", "sideways", "left-up", "x", "lr"])
def test_resolve_direction_rejects_unknown_tokens(token):
    with pytest.raises(InvalidDirection) as excinfo:
        resolve_direction(token)
    assert "left (l)" in str(excinfo.value)


def test_direction_motions_describe_window_movement():
    assert Direction.LEFT.motion == AxisMotion(Motion.INCREASING, Motion.NONE)
    assert Direction.RIGHT.motion == AxisMotion(Motion.DECREASING, Motion.NONE)
    assert Direction.UP.motion == AxisMotion(Motion.NONE, Motion.INCREASING)
    assert Direction.DOWN.motion == AxisMotion(Motion.NONE, Motion.DECREASING)
    assert Direction.UP_LEFT.motion == AxisMotion(Motion.INCREASING, Motion.INCREASING)
    assert Direction.UP_RIGHT.motion == AxisMotion(Motion.DECREASING, Motion.INCREASING)
    assert Direction.DOWN_LEFT.motion == AxisMotion(Motion.INCREASING, Motion.DECREASING)
    assert Direction.DOWN_RIGHT.motion == AxisMotion(Motion.DECREASING, Motion.DECREASING)


def test_axis_motion_requires_movement():
    with pytest.raises(ValueError):
        AxisMotion(Motion.NONE, Motion.NONE)


def test_layouts_match_motion():
    horizontal = compute_layout(Direction.LEFT.motion, 10)
    vertical = compute_layout(Direction.DOWN.motion, 10)
    diagonal = compute_layout(Direction.UP_RIGHT.motion, 0)

    assert (horizontal.columns, horizontal.rows, horizontal.copies) == (2, 1, 2)
    assert (vertical.columns, vertical.rows, vertical.copies) == (1, 2, 2)
    assert (diagonal.columns, diagonal.rows, diagonal.copies) == (2, 2, 4)
    assert list(diagonal.placements(5, 7)) == [(0, 0), (5, 0), (0, 7), (5, 7)]
    assert horizontal.canvas_size(110, 60) == (220, 60)


def test_layout_rejects_negative_gap():
    with pytest.raises(ValueError):
        compute_layout(Direction.LEFT.motion, -1)


def test_step_sizes_reject_non_positive_dimensions():
    assert compute_step_sizes(100, 50, 10) == (110, 60)
    with pytest.raises(InvalidDimensions):
        compute_step_sizes(0, 50, 10)
    with pytest.raises(InvalidDimensions):
        compute_step_sizes(100, -1, 10)


def test_single_axis_frame_count_equals_step():
    assert compute_frame_count(Direction.LEFT.motion, 110, 60) == (110, False)
    assert compute_frame_count(Direction.RIGHT.motion, 110, 60) == (110, False)
    assert compute_frame_count(Direction.UP.motion, 110, 60) == (60, False)
    assert compute_frame_count(Direction.DOWN.motion, 110, 60) == (60, False)


def test_diagonal_frame_count_uses_lcm():
    assert compute_frame_count(Direction.DOWN_RIGHT.motion, 12, 18) == (36, False)


def test_diagonal_frame_count_falls_back_to_max_step_when_capped():
    # lcm(1009, 1013) = 1022117 which exceeds the default cap
    assert compute_frame_count(Direction.UP_LEFT.motion, 1009, 1013) == (1013, True)
    assert compute_frame_count(Direction.UP_LEFT.motion, 12, 18, cap=35) == (18, True)
    assert compute_frame_count(Direction.UP_LEFT.motion, 12, 18, cap=36) == (36, False)


def test_gcd_and_lcm():
    assert gcd(12, 18) == 6
    assert gcd(18, 12) == 6
    assert gcd(0, 7) == 7
    assert gcd(7, 0) == 7
    assert lcm(12, 18) == 36
    assert lcm(17, 17) == 17
    assert lcm(0, 5) == 0
    assert lcm(5, 0) == 0


def test_offset_anchors_at_frame_zero():
    assert offset_at(0, Direction.LEFT.motion, 110, 60) == (0, 0)
    assert offset_at(0, Direction.RIGHT.motion, 110, 60) == (109, 0)
    assert offset_at(0, Direction.UP.motion, 110, 60) == (0, 0)
    assert offset_at(0, Direction.DOWN.motion, 110, 60) == (0, 59)
    for direction in (Direction.UP_LEFT, Direction.UP_RIGHT, Direction.DOWN_LEFT, Direction.DOWN_RIGHT):
        assert offset_at(0, direction.motion, 110, 60) == (0, 0)


def test_diagonal_offsets():
    step_w, step_h = 12, 18
    assert offset_at(13, Direction.UP_LEFT.motion, step_w, step_h) == (1, 13)
    assert offset_at(13, Direction.UP_RIGHT.motion, step_w, step_h) == (11, 13)
    assert offset_at(13, Direction.DOWN_LEFT.motion, step_w, step_h) == (1, 5)
    assert offset_at(13, Direction.DOWN_RIGHT.motion, step_w, step_h) == (11, 5)


def test_offset_rejects_negative_index():
    with pytest.raises(ValueError):
        offset_at(-1, Direction.LEFT.motion, 10, 10)


@pytest.mark.parametrize("direction", [Direction.LEFT, Direction.RIGHT, Direction.UP, Direction.DOWN])
def test_single_axis_sequence_is_seamless(direction):
    plan = build_scroll_plan(direction, 100, 40, 10)
    offsets = list(plan.offsets())
    axis = 0 if direction.motion.horizontal is not Motion.NONE else 1
    step = plan.step_w if axis == 0 else plan.step_h

    for current, following in zip(offsets, offsets[1:]):
        assert abs(following[axis] - current[axis]) == 1
        assert following[1 - axis] == current[1 - axis] == 0

    # Stepping once more from the last frame lands back on the first (mod step).
    last, first = offsets[-1][axis], offsets[0][axis]
    delta = 1 if direction.motion.horizontal is Motion.INCREASING or direction.motion.vertical is Motion.INCREASING else -1
    assert (last + delta) % step == first
    assert len(set(offsets)) == plan.frame_count


@pytest.mark.parametrize("direction", [Direction.UP_LEFT, Direction.UP_RIGHT, Direction.DOWN_LEFT, Direction.DOWN_RIGHT])
def test_diagonal_loop_returns_to_phase_zero(direction):
    plan = build_scroll_plan(direction, 8, 14, 4)
    assert (plan.step_w, plan.step_h) == (12, 18)
    assert plan.frame_count == 36
    assert plan.offset(plan.frame_count) == plan.offset(0)
    for x, y in plan.offsets():
        assert 0 <= x < plan.step_w
        assert 0 <= y < plan.step_h


def test_offsets_stay_within_canvas():
    for direction in Direction:
        plan = build_scroll_plan(direction, 9, 5, 3)
        canvas_w, canvas_h = plan.canvas_size
        for x, y in plan.offsets():
            assert 0 <= x and x + plan.width <= canvas_w
            assert 0 <= y and y + plan.height <= canvas_h


def test_scroll_plan_width_100_gap_10_has_110_frames():
    plan = build_scroll_plan(Direction.RIGHT, 100, 30, 10)
    assert plan.frame_count == 110
    assert plan.frame_size == (100, 30)
    assert plan.offset(0) == (109, 0)
    assert plan.offset(109) == (0, 0)
