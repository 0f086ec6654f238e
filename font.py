"""5×7 column font for the pixel surface.

Glyphs are drawn as row strings and converted once at import into column
bytes (bit 0 = top row).  Letters are case-folded to upper case and
characters missing from the table fall back to ``?``.
"""
from typing import Dict, List, Tuple

GLYPH_WIDTH = 5
GAP = 1
SPACE_WIDTH = 3

_GLYPHS = {
    # digits / letters / punctuation for a 5x7 pixel grid
    '0': ["01110","10001","10011","10101","11001","10001","01110"],
    '1': ["00100","01100","00100","00100","00100","00100","01110"],
    '2': ["01110","10001","00001","00010","00100","01000","11111"],
    '3': ["11110","00001","00001","01110","00001","00001","11110"],
    '4': ["00010","00110","01010","10010","11111","00010","00010"],
    '5': ["11111","10000","11110","00001","00001","10001","01110"],
    '6': ["00110","01000","10000","11110","10001","10001","01110"],
    '7': ["11111","00001","00010","00100","01000","01000","01000"],
    '8': ["01110","10001","10001","01110","10001","10001","01110"],
    '9': ["01110","10001","10001","01111","00001","00010","01100"],
    'A': ["00100","01010","10001","11111","10001","10001","10001"],
    'B': ["11110","10001","10001","11110","10001","10001","11110"],
    'C': ["01110","10001","10000","10000","10000","10001","01110"],
    'D': ["11100","10010","10001","10001","10001","10010","11100"],
    'E': ["11111","10000","10000","11110","10000","10000","11111"],
    'F': ["11111","10000","10000","11110","10000","10000","10000"],
    'G': ["01110","10001","10000","10111","10001","10001","01110"],
    'H': ["10001","10001","10001","11111","10001","10001","10001"],
    'I': ["01110","00100","00100","00100","00100","00100","01110"],
    'J': ["00001","00001","00001","00001","10001","10001","01110"],
    'K': ["10001","10010","10100","11000","10100","10010","10001"],
    'L': ["10000","10000","10000","10000","10000","10000","11111"],
    'M': ["10001","11011","10101","10101","10001","10001","10001"],
    'N': ["10001","11001","10101","10011","10001","10001","10001"],
    'O': ["01110","10001","10001","10001","10001","10001","01110"],
    'P': ["11110","10001","10001","11110","10000","10000","10000"],
    'Q': ["01110","10001","10001","10001","10101","10010","01101"],
    'R': ["11110","10001","10001","11110","10100","10010","10001"],
    'S': ["01111","10000","10000","01110","00001","00001","11110"],
    'T': ["11111","00100","00100","00100","00100","00100","00100"],
    'U': ["10001","10001","10001","10001","10001","10001","01110"],
    'V': ["10001","10001","10001","10001","01010","01010","00100"],
    'W': ["10001","10001","10001","10101","10101","11011","10001"],
    'X': ["10001","01010","00100","00100","00100","01010","10001"],
    'Y': ["10001","01010","00100","00100","00100","00100","00100"],
    'Z': ["11111","00001","00010","00100","01000","10000","11111"],
    ':': ["00000","00100","00100","00000","00100","00100","00000"],
    '.': ["00000","00000","00000","00000","00000","00110","00110"],
    ',': ["00000","00000","00000","00000","00000","00110","00010"],
    '!': ["00100","00100","00100","00100","00100","00000","00100"],
    '?': ["01110","10001","00001","00010","00100","00000","00100"],
    '-': ["00000","00000","00000","11111","00000","00000","00000"],
    '+': ["00000","00100","00100","11111","00100","00100","00000"],
    '/': ["00001","00010","00100","01000","10000","00000","00000"],
    '%': ["11001","11010","00100","01000","00100","01011","10011"],
    '$': ["00100","01111","10100","01110","00101","11110","00100"],
    '&': ["01000","10100","10100","01000","10101","10010","01101"],
    '(': ["00010","00100","01000","01000","01000","00100","00010"],
    ')': ["01000","00100","00010","00010","00010","00100","01000"],
    '>': ["00000","10000","01000","00100","01000","10000","00000"],
    '<': ["00000","00001","00010","00100","00010","00001","00000"],
    '=': ["00000","00000","11111","00000","11111","00000","00000"],
    "'": ["00100","00100","00000","00000","00000","00000","00000"],
    '*': ["00100","10101","01110","11111","01110","10101","00100"],
    '^': ["00100","01010","10001","00000","00000","00000","00000"],
    '°': ["01100","10010","10010","01100","00000","00000","00000"],
}

# Rendered at their lit width instead of the full cell.
_NARROW = set(":.,!'()")


def _columns(rows: List[str], narrow: bool) -> Tuple[int, ...]:
    cols = []
    for x in range(GLYPH_WIDTH):
        value = 0
        for y, row in enumerate(rows):
            if row[x] == "1":
                value |= 1 << y
        cols.append(value)
    if narrow:
        lit = [i for i, value in enumerate(cols) if value]
        if lit:
            cols = cols[lit[0]:lit[-1] + 1]
    return tuple(cols)


COLUMNS: Dict[str, Tuple[int, ...]] = {
    ch: _columns(rows, ch in _NARROW) for ch, rows in _GLYPHS.items()
}
COLUMNS[" "] = (0,) * SPACE_WIDTH


def glyph(ch: str) -> Tuple[int, ...]:
    key = ch.upper() if ch.isalpha() and ch.isascii() else ch
    return COLUMNS.get(key, COLUMNS["?"])


def render_text(text: str) -> bytes:
    """Return the column bytes for *text* with one blank column between glyphs."""

    out = bytearray()
    for index, ch in enumerate(text):
        if index:
            out.extend(b"\x00" * GAP)
        out.extend(glyph(ch))
    return bytes(out)


def text_width(text: str) -> int:
    return len(render_text(text))
