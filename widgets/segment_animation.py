"""Procedural animations for rows of 7-segment digits."""
import random
from typing import Dict, List, Optional, Tuple, Type

from segfont import SEG_A, SEG_B, SEG_C, SEG_D, SEG_E, SEG_F, SEG_G
from tasks import CancelToken

from .base import Widget, sleep_or_cancel


class SegmentProcedural(Widget):
    surface = "segment"
    interval = 0.08

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def setup(self, length: int) -> None:
        ...

    def draw(self, length: int) -> Tuple[List[int], bool]:
        raise NotImplementedError

    def run(self, token: CancelToken, display) -> None:
        length = display.length
        if length == 0:
            return None
        self.setup(length)
        while True:
            values, colon = self.draw(length)
            display.write_segments(values, colon)
            sleep_or_cancel(token, self.interval)


class SegmentRandom(SegmentProcedural):
    name = "segment-random"

    def draw(self, length: int):
        return [self.rng.randrange(0x80) for _ in range(length)], self.rng.randrange(2) == 0


class SegmentRain(SegmentProcedural):
    """Segments falling top to bottom through each digit."""

    name = "segment-rain"
    interval = 0.12
    STAGES = (SEG_A, SEG_F | SEG_B, SEG_G, SEG_E | SEG_C, SEG_D, 0)

    def setup(self, length: int) -> None:
        self.drops = [-1] * length

    def draw(self, length: int):
        values = [0] * length
        for i in range(length):
            if self.drops[i] < 0 and self.rng.randrange(6) == 0:
                self.drops[i] = 0
            if self.drops[i] < 0:
                continue
            if self.drops[i] < len(self.STAGES):
                values[i] = self.STAGES[self.drops[i]]
            self.drops[i] += 1
            if self.drops[i] >= len(self.STAGES) + 2:
                self.drops[i] = -1
        return values, False


class SegmentScanner(SegmentProcedural):
    """A vertical bar bouncing between the end digits."""

    name = "segment-scanner"
    interval = 0.15
    BAR = SEG_B | SEG_C | SEG_E | SEG_F

    def setup(self, length: int) -> None:
        self.sequence = list(range(length)) + list(range(length - 2, 0, -1))
        self.pos = 0

    def draw(self, length: int):
        values = [0] * length
        values[self.sequence[self.pos]] = self.BAR
        self.pos = (self.pos + 1) % len(self.sequence)
        return values, False


def build_track(length: int) -> List[Tuple[int, int]]:
    """Clockwise ``(digit, segment)`` steps around the outside of the row."""

    track = [(i, SEG_A) for i in range(length)]
    track += [(length - 1, SEG_B), (length - 1, SEG_C)]
    track += [(i, SEG_D) for i in range(length - 1, -1, -1)]
    track += [(0, SEG_E), (0, SEG_F)]
    return track


class SegmentRace(SegmentProcedural):
    """Two lit segments chasing each other half a lap apart."""

    name = "segment-race"

    def setup(self, length: int) -> None:
        self.track = build_track(length)
        self.pos = 0

    def draw(self, length: int):
        values = [0] * length
        lap = len(self.track)
        for offset in (0, lap // 2):
            digit, segment = self.track[(self.pos + offset) % lap]
            values[digit] |= segment
        self.pos = (self.pos + 1) % lap
        return values, False


SEGMENT_ANIMATIONS: Dict[str, Type[SegmentProcedural]] = {
    "random": SegmentRandom,
    "rain": SegmentRain,
    "scanner": SegmentScanner,
    "race": SegmentRace,
}
