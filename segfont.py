"""7-segment character encoding.

Bit layout::

       _a_
      |   |
      f   b
      |_g_|
      |   |
      e   c
      |_d_|

bit 0 = a, bit 1 = b, ... bit 6 = g.
"""
from typing import List

SEG_A = 0x01
SEG_B = 0x02
SEG_C = 0x04
SEG_D = 0x08
SEG_E = 0x10
SEG_F = 0x20
SEG_G = 0x40

SEG7 = {
    "0": 0x3F,
    "1": 0x06,
    "2": 0x5B,
    "3": 0x4F,
    "4": 0x66,
    "5": 0x6D,
    "6": 0x7D,
    "7": 0x07,
    "8": 0x7F,
    "9": 0x6F,
    "A": 0x77,
    "b": 0x7C,
    "c": 0x58,
    "C": 0x39,
    "d": 0x5E,
    "E": 0x79,
    "F": 0x71,
    "G": 0x3D,
    "H": 0x76,
    "h": 0x74,
    "I": 0x30,
    "J": 0x1E,
    "k": 0x76,
    "L": 0x38,
    "m": 0x55,
    "n": 0x54,
    "o": 0x5C,
    "O": 0x3F,
    "P": 0x73,
    "q": 0x67,
    "r": 0x50,
    "S": 0x6D,
    "t": 0x78,
    "U": 0x3E,
    "v": 0x1C,
    "w": 0x2A,
    "x": 0x76,
    "y": 0x6E,
    "z": 0x5B,
    "-": 0x40,
    "_": 0x08,
    "*": 0x63,  # degree
    "°": 0x63,
    " ": 0x00,
}


def encode_char(ch: str) -> int:
    """Return the segment mask for *ch*, trying the other case before blank."""

    value = SEG7.get(ch)
    if value is None:
        value = SEG7.get(ch.swapcase(), 0)
    return value


def encode_text(text: str) -> List[int]:
    return [encode_char(ch) for ch in text]
