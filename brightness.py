"""Background brightness control.

Two modes: a fixed daytime window (``day_start``..``day_end``) or the local
sunrise/sunset at the configured location.  Anything that cannot be worked
out falls back to the high level so the face stays readable.
"""
from __future__ import annotations

import datetime
import logging
from typing import Callable, Optional

import pytz
from astral import Observer
from astral.sun import sun

from config import BrightnessConfig, LocationConfig, parse_time_token
from tasks import CancelToken
from utils import minute_of_day

_LOGGER = logging.getLogger(__name__)

TICK_SECONDS = 60.0


class BrightnessController:
    def __init__(
        self,
        display,
        brightness: BrightnessConfig,
        location: Optional[LocationConfig] = None,
        now: Optional[Callable[[], datetime.datetime]] = None,
    ):
        self.display = display
        self.cfg = brightness
        self.location = location
        self._now = now or datetime.datetime.now
        self._last: Optional[int] = None

    # ----- level selection ----------------------------------------------
    def level_for(self, moment: datetime.datetime) -> int:
        if self.cfg.use_location:
            return self._from_location(moment)
        return self._from_window(moment)

    def _from_window(self, moment: datetime.datetime) -> int:
        try:
            start = parse_time_token(self.cfg.day_start)
            end = parse_time_token(self.cfg.day_end)
        except ValueError as exc:
            _LOGGER.warning("Brightness window unreadable (%s); using high level", exc)
            return self.cfg.high

        if start <= minute_of_day(moment) < end:
            return self.cfg.high
        return self.cfg.low

    def _from_location(self, moment: datetime.datetime) -> int:
        loc = self.location
        if loc is None:
            _LOGGER.warning("use_location is set but no location is configured; using high level")
            return self.cfg.high
        try:
            tz = pytz.timezone(loc.timezone)
        except pytz.UnknownTimeZoneError:
            _LOGGER.warning("Unknown timezone %r; using high level", loc.timezone)
            return self.cfg.high

        local = moment.astimezone(tz)
        try:
            times = sun(Observer(latitude=loc.lat, longitude=loc.lon), date=local.date(), tzinfo=tz)
        except ValueError as exc:
            # Polar day or night: the sun never crosses the horizon today.
            _LOGGER.info("No sunrise/sunset at %.2f,%.2f today (%s); using high level",
                         loc.lat, loc.lon, exc)
            return self.cfg.high

        if times["sunrise"] < local < times["sunset"]:
            return self.cfg.high
        return self.cfg.low

    # ----- driving the display ------------------------------------------
    def update(self) -> int:
        level = self.level_for(self._now())
        if level != self._last:
            _LOGGER.info("💡 Brightness set to %d", level)
            self._last = level
        self.display.set_brightness(level)
        return level

    def run(self, token: CancelToken) -> None:
        """Update now, then every :data:`TICK_SECONDS` until *token* ends."""

        self._tick()
        while not token.wait(TICK_SECONDS):
            self._tick()

    def _tick(self) -> None:
        try:
            self.update()
        except Exception:
            _LOGGER.exception("Brightness update failed; retrying next tick")
