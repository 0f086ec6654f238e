import datetime

import pytest
import pytz

import brightness
from brightness import BrightnessController
from config import BrightnessConfig, LocationConfig
from fakes import SpyPixelDisplay
from tasks import CancelToken

CHICAGO = LocationConfig(lat=41.88, lon=-87.63, timezone="America/Chicago")
LONGYEARBYEN = LocationConfig(lat=78.22, lon=15.65, timezone="Arctic/Longyearbyen")


def _controller(location=None, **kwargs):
    return BrightnessController(SpyPixelDisplay(), BrightnessConfig(**kwargs), location)


def _local(tz_name, *args):
    return pytz.timezone(tz_name).localize(datetime.datetime(*args))


@pytest.mark.parametrize(
    "hour, minute, expected",
    [
        (6, 59, 1),
        (7, 0, 15),
        (12, 0, 15),
        (21, 59, 15),
        (22, 0, 1),
        (23, 30, 1),
    ],
)
def test_fixed_window(hour, minute, expected):
    controller = _controller()

    assert controller.level_for(datetime.datetime(2024, 1, 1, hour, minute)) == expected


def test_window_accepts_loose_time_tokens():
    controller = _controller(high=12, low=3, day_start="7am", day_end="10pm")

    assert controller.level_for(datetime.datetime(2024, 1, 1, 21, 0)) == 12
    assert controller.level_for(datetime.datetime(2024, 1, 1, 22, 30)) == 3


def test_unreadable_window_uses_high_level():
    controller = _controller(high=9, day_start="dawn")

    assert controller.level_for(datetime.datetime(2024, 1, 1, 3, 0)) == 9


def test_location_day_and_night():
    controller = _controller(CHICAGO, use_location=True, high=14, low=2)

    assert controller.level_for(_local("America/Chicago", 2024, 6, 21, 12, 0)) == 14
    assert controller.level_for(_local("America/Chicago", 2024, 6, 21, 23, 30)) == 2
    assert controller.level_for(_local("America/Chicago", 2024, 12, 21, 5, 0)) == 2


def test_polar_night_uses_high_level():
    controller = _controller(LONGYEARBYEN, use_location=True, high=11, low=2)

    assert controller.level_for(_local("Arctic/Longyearbyen", 2024, 12, 21, 12, 0)) == 11


def test_unknown_timezone_uses_high_level():
    location = LocationConfig(lat=0.0, lon=0.0, timezone="Mars/Olympus_Mons")
    controller = _controller(location, use_location=True, high=10)

    assert controller.level_for(_local("UTC", 2024, 1, 1, 0, 0)) == 10


def test_missing_location_uses_high_level():
    controller = _controller(None, use_location=True, high=13)

    assert controller.level_for(datetime.datetime(2024, 1, 1, 0, 0)) == 13


def test_update_sets_display_brightness():
    display = SpyPixelDisplay()
    controller = BrightnessController(
        display, BrightnessConfig(), now=lambda: datetime.datetime(2024, 1, 1, 23, 0)
    )

    assert controller.update() == 1
    assert display.brightness == [1]


def test_run_ticks_until_cancelled(monkeypatch):
    monkeypatch.setattr(brightness, "TICK_SECONDS", 0.01)
    display = SpyPixelDisplay()
    controller = BrightnessController(
        display, BrightnessConfig(), now=lambda: datetime.datetime(2024, 1, 1, 12, 0)
    )

    controller.run(CancelToken(timeout=0.1))

    assert len(display.brightness) >= 2
    assert set(display.brightness) == {15}


class _FlakyDisplay(SpyPixelDisplay):
    def __init__(self):
        super().__init__()
        self.calls = 0

    def set_brightness(self, level: int) -> None:
        self.calls += 1
        if self.calls == 1:
            raise OSError("i2c bus busy")
        super().set_brightness(level)


def test_run_survives_failed_update(monkeypatch, caplog):
    monkeypatch.setattr(brightness, "TICK_SECONDS", 0.01)
    display = _FlakyDisplay()
    controller = BrightnessController(
        display, BrightnessConfig(), now=lambda: datetime.datetime(2024, 1, 1, 12, 0)
    )

    controller.run(CancelToken(timeout=0.1))

    assert "i2c bus busy" in caplog.text
    assert display.brightness
    assert set(display.brightness) == {15}
