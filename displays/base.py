"""Display contract shared by every widget and the engine.

A display exposes lifecycle and brightness controls plus exactly one content
surface: a pixel matrix written as column bytes, or a row of 7-segment digits.
"""
from abc import ABC, abstractmethod
from typing import Sequence


class Display(ABC):
    surface = "any"

    @abstractmethod
    def init(self) -> None:
        """Acquire the device."""

    @abstractmethod
    def close(self) -> None:
        """Release the device; must be safe to call on every exit path."""

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def set_brightness(self, level: int) -> None:
        """Set brightness on a 0–15 scale."""


class PixelDisplay(Display):
    surface = "pixel"

    @property
    @abstractmethod
    def width(self) -> int:
        ...

    @property
    @abstractmethod
    def height(self) -> int:
        ...

    @abstractmethod
    def write_frame(self, columns: bytes) -> None:
        """Show one frame: ``width`` column bytes, bit 0 = top row."""


class SegmentDisplay(Display):
    surface = "segment"

    @property
    @abstractmethod
    def length(self) -> int:
        ...

    @abstractmethod
    def write_segments(self, values: Sequence[int], colon: bool) -> None:
        """Show one segment mask per digit plus the centre colon."""


def is_pixel(display: Display) -> bool:
    return getattr(display, "surface", None) == "pixel"


def is_segment(display: Display) -> bool:
    return getattr(display, "surface", None) == "segment"
