"""Column-major framebuffer for pixel matrices (bit 0 = top row)."""
from typing import Iterable, Optional

from PIL import Image

import font


class Frame:
    """A ``width``-column frame of ``height`` rows packed into column bytes."""

    def __init__(self, width: int = 32, height: int = 8, data: Optional[Iterable[int]] = None):
        self.width = width
        self.height = height
        self._cols = bytearray(width)
        if data is not None:
            for x, value in enumerate(data):
                if x >= width:
                    break
                self._cols[x] = value & 0xFF

    def clear(self) -> None:
        for x in range(self.width):
            self._cols[x] = 0

    def set_pixel(self, x: int, y: int, on: bool = True) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return
        if on:
            self._cols[x] |= 1 << y
        else:
            self._cols[x] &= ~(1 << y) & 0xFF

    def get_pixel(self, x: int, y: int) -> bool:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return False
        return bool(self._cols[x] & (1 << y))

    def __getitem__(self, x: int) -> int:
        return self._cols[x]

    def __setitem__(self, x: int, value: int) -> None:
        self._cols[x] = value & 0xFF

    def __len__(self) -> int:
        return self.width

    def to_bytes(self) -> bytes:
        return bytes(self._cols)


def blit(frame: Frame, columns: bytes, offset: int) -> None:
    """Copy *columns* into *frame* starting at *offset*, clipping at both edges."""

    for i, value in enumerate(columns):
        x = offset + i
        if 0 <= x < frame.width:
            frame[x] = value


def blit_text(frame: Frame, text: str, offset: int) -> int:
    """Render *text* into *frame* at *offset* and return its pixel width."""

    columns = font.render_text(text)
    blit(frame, columns, offset)
    return len(columns)


def to_image(columns: bytes, height: int = 8, scale: int = 1,
             on=(255, 48, 0), off=(0, 0, 0)) -> Image.Image:
    """Rasterise column bytes into an RGB Pillow image."""

    width = max(1, len(columns))
    img = Image.new("RGB", (width, height), off)
    pixels = img.load()
    for x, value in enumerate(columns):
        for y in range(height):
            if value & (1 << y):
                pixels[x, y] = on
    if scale > 1:
        img = img.resize((width * scale, height * scale), Image.Resampling.NEAREST)
    return img
