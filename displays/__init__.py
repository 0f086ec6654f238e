"""Display backends and the factory that picks one from configuration."""
from typing import Optional

from config import SCREENSHOT_PATH, DisplayConfig

from .base import Display, PixelDisplay, SegmentDisplay, is_pixel, is_segment
from .terminal import TerminalDisplay, TerminalSegmentDisplay

DISPLAY_TYPES = ("terminal", "terminal_seg7")


def create_display(display_cfg: DisplayConfig, override: Optional[str] = None) -> Display:
    """Instantiate the display named by *override* or ``display_cfg.type``."""

    kind = override or display_cfg.type or "terminal"
    if kind == "terminal":
        return TerminalDisplay(
            width=display_cfg.width,
            height=display_cfg.height,
            screenshot_path=SCREENSHOT_PATH,
        )
    if kind in ("terminal_seg7", "terminal_segment"):
        return TerminalSegmentDisplay(length=display_cfg.length)
    raise ValueError(f"unknown display type {kind!r} (choose from {', '.join(DISPLAY_TYPES)})")


__all__ = [
    "Display",
    "PixelDisplay",
    "SegmentDisplay",
    "TerminalDisplay",
    "TerminalSegmentDisplay",
    "create_display",
    "is_pixel",
    "is_segment",
]
