"""Terminal renderings of the pixel and 7-segment surfaces.

Frames are redrawn in place with ANSI cursor-home and coloured through
colorama.  The pixel display can mirror the latest frame to a PNG for
headless setups.
"""
import logging
import os
import sys
import threading
from typing import Optional, Sequence, TextIO

from framebuf import to_image
from utils import DIM, LIT, RESET, log_call

from .base import PixelDisplay, SegmentDisplay

_LOGGER = logging.getLogger(__name__)

_HOME = "\033[H"
_CLEAR = "\033[2J\033[H"
_PIXEL = "█"


class _TerminalBase:
    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream if stream is not None else sys.stdout
        self._lock = threading.Lock()
        self.brightness = 15

    def _emit(self, text: str) -> None:
        with self._lock:
            self._stream.write(text)
            self._stream.flush()

    def _colour(self) -> str:
        return LIT if self.brightness >= 8 else DIM + LIT

    @log_call
    def init(self) -> None:
        self._emit(_CLEAR)

    @log_call
    def close(self) -> None:
        self._emit(RESET)

    def clear(self) -> None:
        self._emit(_CLEAR)

    def set_brightness(self, level: int) -> None:
        level = max(0, min(15, int(level)))
        if level != self.brightness:
            _LOGGER.debug("Brightness → %d", level)
        self.brightness = level


class TerminalDisplay(_TerminalBase, PixelDisplay):
    """Pixel matrix drawn with block characters."""

    def __init__(self, width: int = 32, height: int = 8, stream: Optional[TextIO] = None,
                 screenshot_path: Optional[str] = None):
        super().__init__(stream)
        self._width = width
        self._height = height
        self._screenshot_path = screenshot_path

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def write_frame(self, columns: bytes) -> None:
        colour = self._colour()
        border = "+" + "-" * self._width + "+"
        lines = [_HOME + border]
        for row in range(self._height):
            cells = []
            for col in range(self._width):
                lit = col < len(columns) and columns[col] & (1 << row)
                cells.append(colour + _PIXEL + RESET if lit else " ")
            lines.append("|" + "".join(cells) + "|")
        lines.append(border)
        self._emit("\n".join(lines) + "\n")

        if self._screenshot_path:
            self._save_screenshot(columns)

    def _save_screenshot(self, columns: bytes) -> None:
        padded = bytes(columns[: self._width]).ljust(self._width, b"\x00")
        try:
            directory = os.path.dirname(self._screenshot_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            to_image(padded, height=self._height, scale=8).save(self._screenshot_path)
        except OSError as exc:
            _LOGGER.warning("Could not save screenshot to %s: %s", self._screenshot_path, exc)
            self._screenshot_path = None


def _bar(on: bool, glyph: str) -> str:
    return glyph if on else " "


class TerminalSegmentDisplay(_TerminalBase, SegmentDisplay):
    """Row of 7-segment digits drawn as three lines of ASCII art."""

    def __init__(self, length: int = 4, stream: Optional[TextIO] = None):
        super().__init__(stream)
        self._length = length

    @property
    def length(self) -> int:
        return self._length

    def render(self, values: Sequence[int], colon: bool) -> str:
        colour = self._colour()
        rows = ["", "", ""]
        for index, value in enumerate(values[: self._length]):
            a, b, c, d, e, f, g = ((value >> bit) & 1 for bit in range(7))
            rows[0] += " " + _bar(a, "_") + " "
            rows[1] += _bar(f, "|") + _bar(g, "_") + _bar(b, "|")
            rows[2] += _bar(e, "|") + _bar(d, "_") + _bar(c, "|")
            if index == 1:
                sep = "o" if colon else " "
                rows[0] += " "
                rows[1] += sep
                rows[2] += sep
            elif index < self._length - 1:
                for i in range(3):
                    rows[i] += " "
        return "\n".join(colour + row + RESET for row in rows)

    def write_segments(self, values: Sequence[int], colon: bool) -> None:
        self._emit(_HOME + self.render(values, colon) + "\n")
