"""Static or scrolling text for pixel and digit displays."""
from typing import Optional

import font
import segfont
from tasks import CancelToken

from .base import Widget, hold_until_cancelled, normalise_repeats, scroll

PIXEL_SCROLL_SPEED = 0.05
SEGMENT_SCROLL_SPEED = 0.3


class Message(Widget):
    """Text on a pixel matrix: centred if it fits, scrolled otherwise."""

    name = "message"
    surface = "pixel"
    default_speed = PIXEL_SCROLL_SPEED

    def __init__(self, text: str, scroll_speed: float = 0.0, repeats: Optional[int] = None,
                 sleep_between: float = 0.0):
        self.text = text
        self.scroll_speed = scroll_speed or self.default_speed
        self.repeats = normalise_repeats(repeats)
        self.sleep_between = sleep_between

    def run(self, token: CancelToken, display) -> None:
        cols = font.render_text(self.text)
        width = display.width

        if len(cols) <= width:
            frame = bytearray(width)
            offset = (width - len(cols)) // 2
            frame[offset:offset + len(cols)] = cols
            display.write_frame(bytes(frame))
            hold_until_cancelled(token)

        scroll(
            token,
            lambda window: display.write_frame(bytes(window)),
            list(cols),
            width,
            self.scroll_speed,
            self.repeats,
            self.sleep_between,
            0,
        )


class SegmentMessage(Message):
    """Text on a row of 7-segment digits, one character per digit."""

    surface = "segment"
    default_speed = SEGMENT_SCROLL_SPEED

    def run(self, token: CancelToken, display) -> None:
        cells = segfont.encode_text(self.text)
        length = display.length

        if len(cells) <= length:
            offset = (length - len(cells)) // 2
            values = [0] * offset + cells + [0] * (length - len(cells) - offset)
            display.write_segments(values, False)
            hold_until_cancelled(token)

        scroll(
            token,
            lambda window: display.write_segments(window, False),
            cells,
            length,
            self.scroll_speed,
            self.repeats,
            self.sleep_between,
            0,
        )
