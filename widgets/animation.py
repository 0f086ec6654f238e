"""Pixel-matrix animations: configured frame loops and procedural effects."""
import math
import random
from typing import Dict, List, Optional, Sequence, Type

from config import FrameConfig
from framebuf import Frame
from tasks import CancelToken

from .base import Widget, sleep_or_cancel

DEFAULT_FRAME_DURATION = 0.1


class FrameAnimation(Widget):
    """Loop over configured frames until cancelled."""

    name = "animation"
    surface = "pixel"

    def __init__(self, frames: Sequence[FrameConfig], frame_duration: float = 0.0):
        self.frames = list(frames)
        self.frame_duration = frame_duration

    def run(self, token: CancelToken, display) -> None:
        if not self.frames:
            return None
        width = display.width
        while True:
            for frame in self.frames:
                data = bytes(frame.data[:width]).ljust(width, b"\x00")
                display.write_frame(data)
                sleep_or_cancel(token, frame.duration or self.frame_duration or DEFAULT_FRAME_DURATION)


class Procedural(Widget):
    """Base for generated animations: draw a frame, wait ``interval``, repeat."""

    surface = "pixel"
    interval = 0.05

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def setup(self, width: int, height: int) -> None:
        ...

    def draw(self, frame: Frame) -> None:
        raise NotImplementedError

    def run(self, token: CancelToken, display) -> None:
        width, height = display.width, display.height
        self.setup(width, height)
        while True:
            frame = Frame(width, height)
            self.draw(frame)
            display.write_frame(frame.to_bytes())
            sleep_or_cancel(token, self.interval)


class Rain(Procedural):
    """Drops with a three-pixel trail falling down random columns."""

    name = "rain"
    interval = 0.08

    def setup(self, width: int, height: int) -> None:
        self.drops = [-1] * width
        self.height = height

    def draw(self, frame: Frame) -> None:
        for x in range(len(self.drops)):
            if self.drops[x] < 0 and self.rng.randrange(20) == 0:
                self.drops[x] = 0
        for x, head in enumerate(self.drops):
            if head < 0:
                continue
            for t in range(3):
                frame.set_pixel(x, head - t)
            self.drops[x] = head + 1
            if self.drops[x] > self.height + 2:
                self.drops[x] = -1


class Static(Procedural):
    name = "static"

    def draw(self, frame: Frame) -> None:
        for x in range(frame.width):
            frame[x] = self.rng.randrange(256)


class Bounce(Procedural):
    """A dot bouncing off the edges, trailing its two previous positions."""

    name = "bounce"

    def setup(self, width: int, height: int) -> None:
        self.max_x, self.max_y = width - 1, height - 1
        self.x, self.y = width / 2, height / 2
        self.dx, self.dy = 0.7, 0.5
        self.trail = [(int(self.x), int(self.y))] * 2

    def draw(self, frame: Frame) -> None:
        self.trail = [self.trail[1], (int(self.x), int(self.y))]
        self.x += self.dx
        self.y += self.dy
        if self.x <= 0 or self.x >= self.max_x:
            self.x = min(max(self.x, 0), self.max_x)
            self.dx = -self.dx
        if self.y <= 0 or self.y >= self.max_y:
            self.y = min(max(self.y, 0), self.max_y)
            self.dy = -self.dy
        for px, py in self.trail:
            frame.set_pixel(px, py)
        frame.set_pixel(int(self.x), int(self.y))


class Sine(Procedural):
    name = "sine"

    def setup(self, width: int, height: int) -> None:
        self.phase = 0.0
        self.mid = (height - 1) / 2

    def draw(self, frame: Frame) -> None:
        for x in range(frame.width):
            y = round(self.mid + self.mid * math.sin(self.phase + x * 0.35))
            frame.set_pixel(x, y)
        self.phase += 0.2


class Scanner(Procedural):
    """A full column sweeping back and forth with a fading trail."""

    name = "scanner"
    interval = 0.04
    TRAIL = (0xAA, 0x44, 0x11)

    def setup(self, width: int, height: int) -> None:
        self.pos, self.dir, self.last = 0, 1, width - 1

    def draw(self, frame: Frame) -> None:
        frame[self.pos] = 0xFF
        for i, value in enumerate(self.TRAIL, start=1):
            x = self.pos - self.dir * i
            if 0 <= x < frame.width:
                frame[x] = value
        self.pos += self.dir
        if self.pos >= self.last:
            self.pos, self.dir = self.last, -1
        elif self.pos <= 0:
            self.pos, self.dir = 0, 1


class Life(Procedural):
    """Conway's Game of Life on a torus; reseeds after three still generations."""

    name = "life"
    interval = 0.15
    STAGNANT_LIMIT = 3

    def setup(self, width: int, height: int) -> None:
        self.width, self.height = width, height
        self.grid = self.seed()
        self.stagnant = 0

    def seed(self) -> List[List[bool]]:
        return [[self.rng.randrange(3) == 0 for _ in range(self.height)] for _ in range(self.width)]

    def step(self, grid: List[List[bool]]) -> List[List[bool]]:
        w, h = self.width, self.height
        nxt = []
        for x in range(w):
            col = []
            for y in range(h):
                n = sum(
                    grid[(x + dx) % w][(y + dy) % h]
                    for dx in (-1, 0, 1)
                    for dy in (-1, 0, 1)
                    if dx or dy
                )
                col.append(n == 3 or (grid[x][y] and n == 2))
            nxt.append(col)
        return nxt

    def draw(self, frame: Frame) -> None:
        nxt = self.step(self.grid)
        for x, col in enumerate(nxt):
            for y, alive in enumerate(col):
                if alive:
                    frame.set_pixel(x, y)
        self.stagnant = self.stagnant + 1 if nxt == self.grid else 0
        if self.stagnant >= self.STAGNANT_LIMIT:
            self.grid, self.stagnant = self.seed(), 0
        else:
            self.grid = nxt


ANIMATIONS: Dict[str, Type[Procedural]] = {
    "rain": Rain,
    "random": Static,
    "static": Static,
    "bounce": Bounce,
    "sine": Sine,
    "scanner": Scanner,
    "life": Life,
}
