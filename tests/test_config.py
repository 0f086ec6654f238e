import importlib.util
import json
from pathlib import Path

import pytest

import config
from config import (
    AlertConfig,
    ConfigError,
    alert_to_dict,
    load_config,
    loads_config,
    parse_alert,
    parse_config,
    parse_duration,
    parse_time_token,
)


def _load_config_copy(monkeypatch, **env):
    """Execute config.py as a private module so env-driven constants are re-read."""

    for key, value in env.items():
        if value is None:
            monkeypatch.delenv(key, raising=False)
        else:
            monkeypatch.setenv(key, value)
    spec = importlib.util.spec_from_file_location("config_under_test", config.__file__)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.parametrize(
    "value, seconds",
    [
        ("500ms", 0.5),
        ("5s", 5.0),
        ("1m30s", 90.0),
        ("1h", 3600.0),
        ("1.5s", 1.5),
        ("250us", 0.00025),
        ("0", 0.0),
        ("", 0.0),
        (None, 0.0),
        (2, 2.0),
        (0.25, 0.25),
    ],
)
def test_parse_duration(value, seconds):
    assert parse_duration(value) == pytest.approx(seconds)


@pytest.mark.parametrize("value", ["5", "abc", "5x", "s", "1m 30s", -1, True, [1]])
def test_parse_duration_rejects_garbage(value):
    with pytest.raises(ConfigError):
        parse_duration(value)


@pytest.mark.parametrize(
    "token, minutes",
    [
        ("07:30", 450),
        ("7", 420),
        ("7am", 420),
        ("7:30 pm", 1170),
        ("10PM", 1320),
        ("noon", 720),
        ("Midnight", 0),
        ("24:00", 1440),
    ],
)
def test_parse_time_token(token, minutes):
    assert parse_time_token(token) == minutes


@pytest.mark.parametrize("token", ["", "later", "25:00"])
def test_parse_time_token_rejects_unknown(token):
    with pytest.raises(ValueError):
        parse_time_token(token)


def test_defaults_fill_missing_sections():
    cfg = parse_config({"widgets": [{"type": "clock"}]})

    assert cfg.display.type == "terminal"
    assert (cfg.display.width, cfg.display.height, cfg.display.length) == (32, 8, 4)
    assert (cfg.brightness.high, cfg.brightness.low) == (15, 1)
    assert cfg.location is None

    widget = cfg.widgets[0]
    assert widget.enabled is True
    assert widget.duration == 0.0
    assert widget.cron == ""
    assert widget.format_24h is None
    assert widget.repeats is None


def test_brightness_levels_are_clamped():
    cfg = parse_config({"brightness": {"high": 99, "low": -3}})

    assert cfg.brightness.high == 15
    assert cfg.brightness.low == 0


def test_widget_fields_are_parsed():
    cfg = parse_config(
        {
            "widgets": [
                {
                    "type": "message",
                    "enabled": False,
                    "duration": "10s",
                    "cron": "*/5 * * * *",
                    "text": "hello",
                    "dynamic_source": "ledclock:text",
                    "scroll_speed": "40ms",
                    "repeats": 3,
                    "sleep_between": "1s",
                },
                {
                    "type": "animation",
                    "frames": [{"data": [1, 2, 300], "duration": "50ms"}],
                    "frame_duration": "100ms",
                },
            ]
        }
    )
    message, animation = cfg.widgets

    assert message.enabled is False
    assert message.duration == 10.0
    assert message.scroll_speed == pytest.approx(0.04)
    assert message.repeats == 3
    assert message.dynamic_source == "ledclock:text"
    assert animation.frames[0].data == (1, 2, 300 & 0xFF)
    assert animation.frames[0].duration == pytest.approx(0.05)
    assert animation.frame_duration == pytest.approx(0.1)


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"widgets": [{"enabled": True}]},
        {"widgets": "clock"},
        {"widgets": [{"type": "message", "duration": "soon"}]},
        {"location": {"lat": "north"}},
        {"brightness": {"high": "bright"}},
    ],
)
def test_invalid_documents_raise_config_error(payload):
    with pytest.raises(ConfigError):
        parse_config(payload)


def test_loads_config_wraps_json_errors():
    with pytest.raises(ConfigError):
        loads_config("{not json")


def test_load_config_reads_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"widgets": [{"type": "clock", "format_24h": False}]}))

    cfg = load_config(str(path))

    assert cfg.widgets[0].format_24h is False


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.json"))


def test_alert_round_trips_through_dict():
    alert = AlertConfig(id="a", message="hi", priority=2, display_duration=1.5,
                        delete_after_display=True)

    assert alert_to_dict(alert) == {
        "id": "a",
        "message": "hi",
        "priority": 2,
        "display_duration": "1500ms",
        "delete_after_display": True,
    }
    assert parse_alert(alert_to_dict(alert)) == alert


def test_env_overrides(monkeypatch, tmp_path):
    target = str(tmp_path / "clock.json")
    module = _load_config_copy(monkeypatch, LEDCLOCK_CONFIG=target, ADMIN_PORT="6000",
                               LOG_LEVEL="debug", CONFIG_LOAD_DOTENV=None)

    assert module.CONFIG_PATH == target
    assert module.ADMIN_PORT == 6000
    assert module.LOG_LEVEL == "DEBUG"


def test_invalid_admin_port_falls_back(monkeypatch):
    module = _load_config_copy(monkeypatch, ADMIN_PORT="http", CONFIG_LOAD_DOTENV=None)

    assert module.ADMIN_PORT == 5002


def test_bool_env_parser(monkeypatch):
    monkeypatch.setenv("LEDCLOCK_FLAG", "yes")
    assert config._get_bool_env("LEDCLOCK_FLAG", False) is True

    monkeypatch.setenv("LEDCLOCK_FLAG", "off")
    assert config._get_bool_env("LEDCLOCK_FLAG", True) is False

    monkeypatch.setenv("LEDCLOCK_FLAG", "maybe")
    assert config._get_bool_env("LEDCLOCK_FLAG", True) is True

    monkeypatch.delenv("LEDCLOCK_FLAG")
    assert config._get_bool_env("LEDCLOCK_FLAG", False) is False


def test_example_config_parses():
    path = Path(config.__file__).with_name("config.example.json")

    cfg = load_config(str(path))

    assert [w.type for w in cfg.widgets] == ["clock", "message", "alert", "animation", "animation"]
    assert cfg.location.timezone == "America/Chicago"
    assert cfg.widgets[2].alerts[1].priority == 10
