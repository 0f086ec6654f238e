"""Blinking-colon clock for pixel and digit displays."""
import datetime
from typing import Callable, List, Optional, Tuple

import font
import segfont
from tasks import CancelToken

from .base import Widget, sleep_or_cancel

# (colon visible, seconds) phases, repeated forever.
CADENCE_STEADY = ((True, 0.5), (False, 0.5))
CADENCE_PM = ((True, 0.15), (False, 0.2), (True, 0.15), (False, 0.5))


def clock_fields(moment: datetime.datetime, format_24h: bool) -> Tuple[int, int, bool]:
    """Return ``(hour, minute, pm)`` as shown on the face."""

    hour = moment.hour
    pm = False
    if not format_24h:
        pm = hour >= 12
        hour %= 12
        if hour == 0:
            hour = 12
    return hour, moment.minute, pm


def clock_text(hour: int, minute: int, format_24h: bool, separator: str = ":") -> str:
    if format_24h or hour >= 10:
        return f"{hour:02d}{separator}{minute:02d}"
    return f"{hour:d}{separator}{minute:02d}"


class Clock(Widget):
    name = "clock"
    surface = "pixel"

    def __init__(self, format_24h: bool = True,
                 now: Optional[Callable[[], datetime.datetime]] = None):
        self.format_24h = format_24h
        self._now = now or datetime.datetime.now

    def _cadence(self, pm: bool):
        if not self.format_24h and pm:
            return CADENCE_PM
        return CADENCE_STEADY

    def frames(self, hour: int, minute: int, width: int) -> Tuple[bytes, bytes]:
        """Centred frames with the colon lit and blanked, sharing one layout."""

        head, tail = clock_text(hour, minute, self.format_24h).split(":")
        gap = b"\x00" * font.GAP
        colon = bytes(font.glyph(":"))
        left = font.render_text(head) + gap
        right = gap + font.render_text(tail)
        lit = left + colon + right
        dark = left + b"\x00" * len(colon) + right

        def centre(cols: bytes) -> bytes:
            cols = cols[:width]
            offset = (width - len(cols)) // 2
            return b"\x00" * offset + cols + b"\x00" * (width - len(cols) - offset)

        return centre(lit), centre(dark)

    def run(self, token: CancelToken, display) -> None:
        while True:
            hour, minute, pm = clock_fields(self._now(), self.format_24h)
            lit, dark = self.frames(hour, minute, display.width)
            for colon, seconds in self._cadence(pm):
                display.write_frame(lit if colon else dark)
                sleep_or_cancel(token, seconds)


class SegmentClock(Clock):
    surface = "segment"

    def digits(self, hour: int, minute: int) -> List[int]:
        if not self.format_24h and hour < 10:
            text = f" {hour:d}{minute:02d}"
        else:
            text = f"{hour:02d}{minute:02d}"
        return segfont.encode_text(text)

    def run(self, token: CancelToken, display) -> None:
        while True:
            hour, minute, pm = clock_fields(self._now(), self.format_24h)
            values = self.digits(hour, minute)
            for colon, seconds in self._cadence(pm):
                display.write_segments(values, colon)
                sleep_or_cancel(token, seconds)
