"""Widget contract and the blocking primitives every widget is built from.

A widget's :meth:`Widget.run` either returns ``None`` when it finishes on its
own or raises the cancellation cause of the token it was given.  The only
places a widget may block are :func:`sleep_or_cancel` and
:func:`hold_until_cancelled`.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List, Sequence, TypeVar

from displays.base import Display
from tasks import CancelToken

Cell = TypeVar("Cell")


class Widget(ABC):
    name = "widget"
    # "pixel", "segment" or "any": the display surface the widget writes to.
    surface = "any"

    @abstractmethod
    def run(self, token: CancelToken, display: Display) -> None:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def sleep_or_cancel(token: CancelToken, seconds: float) -> None:
    """Block for *seconds*, raising the token's cause if it ends first."""

    if token.wait(max(0.0, seconds)):
        token.raise_if_cancelled()


def hold_until_cancelled(token: CancelToken) -> None:
    """Block until *token* ends, then raise its cause."""

    token.wait()
    token.raise_if_cancelled()


def scroll(
    token: CancelToken,
    write: Callable[[List[Cell]], None],
    cells: Sequence[Cell],
    width: int,
    speed: float,
    repeats: int,
    sleep_between: float,
    blank: Cell,
) -> None:
    """Scroll *cells* across a *width*-cell window.

    The content is padded with *width* blank cells on both sides so it enters
    and leaves fully off-screen.  The window start visits every buffer index;
    windows that run past the end are blank-filled, so one pass is
    ``2 * width + len(cells)`` writes.  ``repeats <= 0`` scrolls until the
    token ends.
    """

    padding = [blank] * width
    buffer = padding + list(cells) + padding
    passes = 0
    while True:
        for offset in range(len(buffer)):
            window = buffer[offset:offset + width]
            if len(window) < width:
                window = window + [blank] * (width - len(window))
            write(window)
            sleep_or_cancel(token, speed)
        passes += 1
        if repeats > 0 and passes >= repeats:
            return None
        sleep_or_cancel(token, sleep_between)


def normalise_repeats(repeats) -> int:
    """``None``/0 mean one pass; negative means forever (returned as -1)."""

    if not repeats:
        return 1
    if repeats < 0:
        return -1
    return int(repeats)
