# config.py

#!/usr/bin/env python3
import datetime
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

# ─── Environment helpers ───────────────────────────────────────────────────────

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))


def _initialise_env() -> None:
    """Load environment variables from `.env` if present."""

    candidate_paths = []

    project_root = Path(SCRIPT_DIR)
    candidate_paths.append(project_root / ".env")

    cwd_path = Path.cwd() / ".env"
    if cwd_path != candidate_paths[0]:
        candidate_paths.append(cwd_path)

    for path in candidate_paths:
        if path.is_file():
            load_dotenv(path, override=False)


_ENV_INITIALISED = False


def initialise_env_if_requested(force: bool = False) -> None:
    """Conditionally load `.env` files based on CONFIG_LOAD_DOTENV flag."""

    global _ENV_INITIALISED

    if _ENV_INITIALISED and not force:
        return

    if _get_bool_env("CONFIG_LOAD_DOTENV", False):
        _initialise_env()

    _ENV_INITIALISED = True


def _get_first_env_var(*names: str):
    """Return the first populated environment variable from *names.*"""

    for name in names:
        value = os.environ.get(name)
        if value:
            return value

    return None


def _get_bool_env(name: str, default: bool) -> bool:
    """Parse boolean feature flags from environment variables."""

    raw = os.environ.get(name)
    if raw is None:
        return default

    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


initialise_env_if_requested()

# ─── Process settings ─────────────────────────────────────────────────────────
CONFIG_PATH = _get_first_env_var("LEDCLOCK_CONFIG") or os.path.join(SCRIPT_DIR, "config.json")
LOG_LEVEL = (os.environ.get("LOG_LEVEL") or "INFO").upper()
SCREENSHOT_PATH = _get_first_env_var("SCREENSHOT_PATH")

ADMIN_HOST = os.environ.get("ADMIN_HOST", "0.0.0.0")
try:
    ADMIN_PORT = int(os.environ.get("ADMIN_PORT", "5002"))
except (TypeError, ValueError):
    logging.warning("Invalid ADMIN_PORT value; defaulting to 5002.")
    ADMIN_PORT = 5002

BRIGHTNESS_MAX = 15
MINUTES_PER_DAY = 24 * 60

# ─── Time tokens ──────────────────────────────────────────────────────────────


def parse_time_token(token: str) -> int:
    """Return minutes past midnight for *token* (``"07:30"``, ``"7am"``, ``"noon"``)."""

    cleaned = token.strip()
    if not cleaned:
        raise ValueError("Empty time token")

    lowered = cleaned.lower()
    if lowered in {"midnight"}:
        return 0
    if lowered in {"noon"}:
        return 12 * 60
    if lowered in {"24:00", "24", "24h", "24hr", "24hrs"}:
        return MINUTES_PER_DAY

    for fmt in ("%H:%M", "%H", "%I:%M%p", "%I%p", "%I:%M %p", "%I %p"):
        try:
            parsed = datetime.datetime.strptime(cleaned.upper(), fmt)
        except ValueError:
            continue
        return parsed.hour * 60 + parsed.minute

    raise ValueError(f"Unrecognized time token '{token}'")


# ─── Durations ────────────────────────────────────────────────────────────────

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


class ConfigError(ValueError):
    """Raised when a configuration document cannot be interpreted."""


def parse_duration(value: Any) -> float:
    """Return *value* as seconds.

    Accepts bare numbers (seconds) or Go-style strings such as ``"500ms"``,
    ``"5s"`` or ``"1m30s"``.  ``None`` and ``""`` mean zero.
    """

    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ConfigError(f"invalid duration {value!r}")
        return float(value)
    if not isinstance(value, str):
        raise ConfigError(f"invalid duration {value!r}")

    text = value.strip()
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ConfigError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ConfigError(f"invalid duration {value!r}")
    return total


def format_duration(seconds: float) -> str:
    """Render *seconds* compactly for JSON round-trips in the admin UI."""

    if seconds == 0:
        return "0s"
    millis = round(seconds * 1000)
    if millis % 1000:
        return f"{millis}ms"
    return f"{millis // 1000}s"


# ─── Config model ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AlertConfig:
    id: str = ""
    message: str = ""
    priority: int = 0
    display_duration: float = 0.0
    delete_after_display: bool = False


@dataclass(frozen=True)
class FrameConfig:
    data: Tuple[int, ...] = ()
    duration: float = 0.0


@dataclass(frozen=True)
class WidgetConfig:
    type: str
    enabled: bool = True
    duration: float = 0.0
    cron: str = ""
    # clock
    format_24h: Optional[bool] = None
    # message / alert
    text: str = ""
    dynamic_source: str = ""
    scroll_speed: float = 0.0
    repeats: Optional[int] = None
    sleep_between: float = 0.0
    alerts: Tuple[AlertConfig, ...] = ()
    # animation
    animation_type: str = ""
    frames: Tuple[FrameConfig, ...] = ()
    frame_duration: float = 0.0


@dataclass(frozen=True)
class BrightnessConfig:
    high: int = BRIGHTNESS_MAX
    low: int = 1
    day_start: str = "07:00"
    day_end: str = "22:00"
    use_location: bool = False


@dataclass(frozen=True)
class LocationConfig:
    lat: float
    lon: float
    timezone: str


@dataclass(frozen=True)
class DisplayConfig:
    type: str = "terminal"
    width: int = 32
    height: int = 8
    length: int = 4


@dataclass(frozen=True)
class EngineConfig:
    display: DisplayConfig = field(default_factory=DisplayConfig)
    brightness: BrightnessConfig = field(default_factory=BrightnessConfig)
    location: Optional[LocationConfig] = None
    widgets: Tuple[WidgetConfig, ...] = ()


# ─── Parsing ──────────────────────────────────────────────────────────────────


def _mapping(value: Any, what: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{what} must be a JSON object")
    return value


def _int(value: Any, what: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigError(f"{what} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{what} must be an integer") from None


def _level(value: Any, what: str, default: int) -> int:
    return max(0, min(BRIGHTNESS_MAX, _int(value, what, default)))


def parse_alert(raw: Any) -> AlertConfig:
    data = _mapping(raw, "alert")
    return AlertConfig(
        id=str(data.get("id") or ""),
        message=str(data.get("message") or ""),
        priority=_int(data.get("priority"), "alert.priority", 0),
        display_duration=parse_duration(data.get("display_duration")),
        delete_after_display=bool(data.get("delete_after_display", False)),
    )


def _parse_frame(raw: Any) -> FrameConfig:
    data = _mapping(raw, "frame")
    columns = data.get("data") or []
    if not isinstance(columns, list):
        raise ConfigError("frame.data must be a list of column bytes")
    try:
        values = tuple(int(col) & 0xFF for col in columns)
    except (TypeError, ValueError):
        raise ConfigError("frame.data must contain integers") from None
    return FrameConfig(data=values, duration=parse_duration(data.get("duration")))


def _parse_widget(raw: Any) -> WidgetConfig:
    data = _mapping(raw, "widget")
    widget_type = data.get("type")
    if not isinstance(widget_type, str) or not widget_type:
        raise ConfigError("widget entries need a 'type'")

    format_24h = data.get("format_24h")
    repeats = data.get("repeats")
    alerts = data.get("alerts") or []
    frames = data.get("frames") or []
    if not isinstance(alerts, list) or not isinstance(frames, list):
        raise ConfigError("widget alerts/frames must be lists")

    return WidgetConfig(
        type=widget_type,
        enabled=bool(data.get("enabled", True)),
        duration=parse_duration(data.get("duration")),
        cron=str(data.get("cron") or ""),
        format_24h=None if format_24h is None else bool(format_24h),
        text=str(data.get("text") or ""),
        dynamic_source=str(data.get("dynamic_source") or ""),
        scroll_speed=parse_duration(data.get("scroll_speed")),
        repeats=None if repeats is None else _int(repeats, "widget.repeats", 1),
        sleep_between=parse_duration(data.get("sleep_between")),
        alerts=tuple(parse_alert(item) for item in alerts),
        animation_type=str(data.get("animation_type") or ""),
        frames=tuple(_parse_frame(item) for item in frames),
        frame_duration=parse_duration(data.get("frame_duration")),
    )


def parse_config(payload: Any) -> EngineConfig:
    """Build an :class:`EngineConfig` from decoded JSON."""

    data = _mapping(payload, "configuration")

    disp = _mapping(data.get("display"), "display")
    display = DisplayConfig(
        type=str(disp.get("type") or "terminal"),
        width=_int(disp.get("width"), "display.width", 32),
        height=_int(disp.get("height"), "display.height", 8),
        length=_int(disp.get("length"), "display.length", 4),
    )

    bright = _mapping(data.get("brightness"), "brightness")
    brightness = BrightnessConfig(
        high=_level(bright.get("high"), "brightness.high", BRIGHTNESS_MAX),
        low=_level(bright.get("low"), "brightness.low", 1),
        day_start=str(bright.get("day_start") or "07:00"),
        day_end=str(bright.get("day_end") or "22:00"),
        use_location=bool(bright.get("use_location", False)),
    )

    location = None
    loc = data.get("location")
    if loc is not None:
        loc = _mapping(loc, "location")
        try:
            location = LocationConfig(
                lat=float(loc["lat"]),
                lon=float(loc["lon"]),
                timezone=str(loc.get("timezone") or "UTC"),
            )
        except (KeyError, TypeError, ValueError):
            raise ConfigError("location needs numeric 'lat' and 'lon'") from None

    widgets = data.get("widgets") or []
    if not isinstance(widgets, list):
        raise ConfigError("'widgets' must be a list")

    return EngineConfig(
        display=display,
        brightness=brightness,
        location=location,
        widgets=tuple(_parse_widget(item) for item in widgets),
    )


def loads_config(text: str) -> EngineConfig:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"parsing config: {exc}") from exc
    return parse_config(payload)


def load_config(path: str) -> EngineConfig:
    """Read and parse the JSON configuration file at *path*."""

    try:
        with open(path, "r", encoding="utf-8") as fh:
            text = fh.read()
    except OSError as exc:
        raise ConfigError(f"reading config: {exc}") from exc
    return loads_config(text)


def alert_to_dict(alert: AlertConfig) -> Dict[str, Any]:
    """Serialise *alert* to the JSON shape accepted by :func:`parse_alert`."""

    payload: Dict[str, Any] = {
        "id": alert.id,
        "message": alert.message,
        "priority": alert.priority,
    }
    if alert.display_duration:
        payload["display_duration"] = format_duration(alert.display_duration)
    if alert.delete_after_display:
        payload["delete_after_display"] = True
    return payload
