import random

import pytest

from config import FrameConfig
from fakes import SpyPixelDisplay, SpySegmentDisplay
from framebuf import Frame
from segfont import SEG_A, SEG_D
from tasks import CancelToken, Cancelled, Task
from widgets.animation import ANIMATIONS, FrameAnimation, Life, Scanner
from widgets.segment_animation import (
    SEGMENT_ANIMATIONS,
    SegmentRace,
    SegmentScanner,
    build_track,
)


def _run_until(widget, display, writes):
    token = CancelToken()
    task = Task(lambda: widget.run(token, display), name="animation").start()
    assert display.wait_for_writes(writes)
    token.cancel()
    task.join(2.0)
    assert isinstance(task.exception, Cancelled)


def test_frame_animation_loops_padded_frames():
    display = SpyPixelDisplay(width=4)
    frames = [FrameConfig(data=(1, 2, 3), duration=0.001), FrameConfig(data=(4,))]
    widget = FrameAnimation(frames, frame_duration=0.001)

    _run_until(widget, display, 3)

    assert display.writes[:3] == [b"\x01\x02\x03\x00", b"\x04\x00\x00\x00", b"\x01\x02\x03\x00"]


def test_frame_animation_without_frames_returns():
    display = SpyPixelDisplay()

    assert FrameAnimation([]).run(CancelToken(), display) is None
    assert display.writes == []


@pytest.mark.parametrize("name", sorted(ANIMATIONS))
def test_procedural_animations_write_full_frames(name):
    display = SpyPixelDisplay()
    widget = ANIMATIONS[name](rng=random.Random(7))
    widget.interval = 0.001

    _run_until(widget, display, 5)

    assert all(len(frame) == 32 for frame in display.writes)


def test_scanner_sweeps_with_trail():
    scanner = Scanner()
    scanner.setup(8, 8)

    first, second = Frame(8, 8), Frame(8, 8)
    scanner.draw(first)
    scanner.draw(second)

    assert first[0] == 0xFF
    assert second[1] == 0xFF
    assert second[0] == Scanner.TRAIL[0]


def test_life_blinker_oscillates():
    life = Life(rng=random.Random(1))
    life.setup(5, 5)
    vertical = [[False] * 5 for _ in range(5)]
    for y in (1, 2, 3):
        vertical[2][y] = True

    horizontal = life.step(vertical)

    assert [x for x in range(5) if horizontal[x][2]] == [1, 2, 3]
    assert sum(cell for col in horizontal for cell in col) == 3
    assert life.step(horizontal) == vertical


def test_segment_track_circles_the_row():
    track = build_track(4)

    assert len(track) == 12
    assert track[0] == (0, SEG_A)
    assert track[6] == (3, SEG_D)


def test_segment_scanner_bounces():
    scanner = SegmentScanner()
    scanner.setup(4)

    positions = []
    for _ in range(7):
        values, colon = scanner.draw(4)
        positions.append(values.index(SegmentScanner.BAR))
        assert colon is False

    assert positions == [0, 1, 2, 3, 2, 1, 0]


def test_segment_race_lights_two_segments():
    race = SegmentRace()
    race.setup(4)

    for _ in range(12):
        values, _ = race.draw(4)
        assert sum(bin(v).count("1") for v in values) == 2


@pytest.mark.parametrize("name", sorted(SEGMENT_ANIMATIONS))
def test_segment_animations_write_each_digit(name):
    display = SpySegmentDisplay(length=4)
    widget = SEGMENT_ANIMATIONS[name](rng=random.Random(3))
    widget.interval = 0.001

    _run_until(widget, display, 5)

    assert all(len(values) == 4 for values, _ in display.writes)


def test_segment_animation_on_empty_row_returns():
    display = SpySegmentDisplay(length=0)

    assert SEGMENT_ANIMATIONS["random"]().run(CancelToken(), display) is None
