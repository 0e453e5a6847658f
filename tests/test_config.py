import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from image_scroller.config import (  # noqa: E402
    ScrollerSettings,
    load_settings,
    parse_color,
    resolve_worker_count,
)
from image_scroller.timing import (  # noqa: E402
    delay_from_speed,
    framerate_for_delay,
    resolve_delay,
)


@pytest.mark.parametrize(
    "token, cpus, expected",
    [
        (None, 8, 7),
        ("auto", 8, 7),
        ("", 8, 7),
        ("AUTO", 1, 1),
        ("max", 8, 8),
        ("off", 8, 1),
        ("1", 8, 1),
        (" 6 ", 2, 6),
        (3, 8, 3),
    ],
)
def test_resolve_worker_count(token, cpus, expected):
    assert resolve_worker_count(token, cpus) == expected


@pytest.mark.parametrize("token", ["0", "-2", "many", "1.5"])
def test_resolve_worker_count_rejects_invalid_tokens(token):
    with pytest.raises(ValueError):
        resolve_worker_count(token, 4)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("white", (255, 255, 255)),
        (" Navy ", (0, 0, 128)),
        ("#FF8000", (255, 128, 0)),
        ("0a0b0c", (10, 11, 12)),
        ("#abc", (170, 187, 204)),
        ([300, -5, 7], (255, 0, 7)),
        ({"hex": "#000000"}, (0, 0, 0)),
        ({"value": [1, 2, 3]}, (1, 2, 3)),
    ],
)
def test_parse_color(value, expected):
    assert parse_color(value) == expected


@pytest.mark.parametrize("value", ["#GGGGGG", "not-a-colour", [1, 2], {"rgb": 1}, 42])
def test_parse_color_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_color(value)


def test_load_settings_from_json_file(tmp_path):
    config_path = tmp_path / "image_scroller.json"
    config_path.write_text(
        json.dumps({
            "gap": 0,
            "delay": 7,
            "output_format": "both",
            "background_color": "#102030",
            "video_codec": "H265",
            "gpu": "nvidia",
            "jobs": "max",
            "prores_alpha_bits": 8,
            "max_diagonal_frames": 500,
            "raster_backend": "imagemagick",
            "temp_dir": str(tmp_path),
        })
    )

    settings = load_settings(config_path, env={"SCROLLER_GAP": "99"})

    assert settings.gap == 0
    assert settings.delay == 7
    assert settings.speed is None
    assert settings.wants_gif and settings.wants_video
    assert settings.background_color == (16, 32, 48)
    assert settings.video_codec == "h265"
    assert settings.gpu == "nvidia"
    assert settings.jobs == "max"
    assert settings.prores_alpha_bits == 8
    assert settings.max_diagonal_frames == 500
    assert settings.raster_backend == "imagemagick"
    assert settings.temp_dir == tmp_path


def test_invalid_values_fall_back_to_defaults(tmp_path):
    config_path = tmp_path / "image_scroller.json"
    config_path.write_text(
        json.dumps({
            "gap": -4,
            "delay": 0,
            "speed": "fast",
            "output_format": "webm",
            "background_color": "plaid",
            "prores_alpha_bits": 12,
        })
    )

    assert load_settings(config_path, env={}) == ScrollerSettings()


def test_load_settings_rejects_non_object_json(tmp_path):
    config_path = tmp_path / "image_scroller.json"
    config_path.write_text("[1, 2, 3]")

    with pytest.raises(ValueError):
        load_settings(config_path, env={})


def test_delay_and_speed_together_are_rejected(tmp_path):
    config_path = tmp_path / "image_scroller.json"
    config_path.write_text(json.dumps({"delay": 6, "speed": 30}))

    with pytest.raises(ValueError, match="both delay and speed"):
        load_settings(config_path, env={})
    with pytest.raises(ValueError, match="both delay and speed"):
        load_settings(tmp_path / "missing.json", env={"SCROLLER_DELAY": "6", "SCROLLER_SPEED": "30"})


def test_unset_delay_resolves_to_default():
    settings = load_settings(None, env={})

    assert settings.delay is None
    assert settings.speed is None
    assert resolve_delay(settings.delay, settings.speed) == 4


def test_load_settings_falls_back_to_environment(tmp_path):
    env = {
        "SCROLLER_GAP": "4",
        "SCROLLER_SPEED": "50",
        "SCROLLER_FORMAT": "video",
        "SCROLLER_BACKGROUND": "black",
        "SCROLLER_JOBS": "off",
        "SCROLLER_LOG_FILE": str(tmp_path / "scroller.log"),
    }

    settings = load_settings(tmp_path / "missing.json", env=env)

    assert settings.gap == 4
    assert settings.speed == 50.0
    assert not settings.wants_gif
    assert settings.wants_video
    assert settings.background_color == (0, 0, 0)
    assert settings.jobs == "off"
    assert settings.log_file == tmp_path / "scroller.log"


def test_delay_from_speed():
    assert delay_from_speed(25) == 4
    assert delay_from_speed(100) == 1
    assert delay_from_speed(1000) == 1
    assert delay_from_speed(3) == 33
    with pytest.raises(ValueError):
        delay_from_speed(0)


def test_resolve_delay_rejects_conflicts_and_bad_values():
    assert resolve_delay() == 4
    assert resolve_delay(delay=9) == 9
    assert resolve_delay(speed=50) == 2
    with pytest.raises(ValueError):
        resolve_delay(delay=4, speed=25)
    with pytest.raises(ValueError):
        resolve_delay(delay=0)


def test_framerate_for_delay():
    assert framerate_for_delay(4) == "25"
    assert framerate_for_delay(3) == "33.3333"
    assert framerate_for_delay(8) == "12.5"
    with pytest.raises(ValueError):
        framerate_for_delay(0)
