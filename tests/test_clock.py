import datetime

import pytest

import font
import segfont
from fakes import SpyPixelDisplay, SpySegmentDisplay
from tasks import Cancelled, CancelToken, Task
from widgets import clock
from widgets.clock import Clock, SegmentClock, clock_fields, clock_text


def _fixed(hour, minute):
    moment = datetime.datetime(2024, 5, 4, hour, minute, 12)
    return lambda: moment


@pytest.fixture
def fast_cadence(monkeypatch):
    monkeypatch.setattr(clock, "CADENCE_STEADY", ((True, 0.001), (False, 0.001)))
    monkeypatch.setattr(
        clock, "CADENCE_PM", ((True, 0.001), (False, 0.001), (True, 0.001), (False, 0.001))
    )


def _run_until(widget, display, writes):
    token = CancelToken()
    task = Task(lambda: widget.run(token, display), name="clock").start()
    assert display.wait_for_writes(writes)
    token.cancel()
    task.join(2.0)
    assert isinstance(task.exception, Cancelled)


@pytest.mark.parametrize(
    "hour, format_24h, expected",
    [
        (0, True, (0, 5, False)),
        (0, False, (12, 5, False)),
        (9, False, (9, 5, False)),
        (12, False, (12, 5, True)),
        (13, False, (1, 5, True)),
        (23, True, (23, 5, False)),
    ],
)
def test_clock_fields(hour, format_24h, expected):
    moment = datetime.datetime(2024, 1, 1, hour, 5)
    assert clock_fields(moment, format_24h) == expected


def test_clock_text_padding():
    assert clock_text(9, 5, True) == "09:05"
    assert clock_text(9, 5, False) == "9:05"
    assert clock_text(11, 5, False) == "11:05"
    assert clock_text(14, 30, True, separator=" ") == "14 30"


def test_frames_share_layout_and_differ_only_at_colon():
    lit, dark = Clock(format_24h=True).frames(14, 30, 32)

    assert len(lit) == len(dark) == 32
    cols = font.render_text("14:30")
    offset = (32 - len(cols)) // 2
    assert lit[offset:offset + len(cols)] == cols

    changed = [x for x in range(32) if lit[x] != dark[x]]
    assert len(changed) == len(font.glyph(":"))
    assert all(dark[x] == 0 for x in changed)


def test_clock_alternates_colon_until_cancelled(fast_cadence):
    display = SpyPixelDisplay()
    widget = Clock(format_24h=True, now=_fixed(14, 30))
    lit, dark = widget.frames(14, 30, 32)

    _run_until(widget, display, 6)

    assert display.writes[:6] == [lit, dark, lit, dark, lit, dark]


def test_pm_cadence_only_in_twelve_hour_afternoons():
    assert Clock(format_24h=False)._cadence(True) is clock.CADENCE_PM
    assert Clock(format_24h=False)._cadence(False) is clock.CADENCE_STEADY
    assert Clock(format_24h=True)._cadence(True) is clock.CADENCE_STEADY


def test_segment_clock_leading_blank_in_twelve_hour_mode():
    assert SegmentClock(format_24h=False).digits(9, 5) == [0] + segfont.encode_text("905")
    assert SegmentClock(format_24h=True).digits(9, 5) == segfont.encode_text("0905")


def test_segment_clock_toggles_colon(fast_cadence):
    display = SpySegmentDisplay()
    widget = SegmentClock(format_24h=True, now=_fixed(14, 30))

    _run_until(widget, display, 4)

    digits = segfont.encode_text("1430")
    assert display.writes[:4] == [(digits, True), (digits, False), (digits, True), (digits, False)]
