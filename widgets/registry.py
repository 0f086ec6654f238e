"""Map widget configuration entries to runnable widgets for a given display."""
from __future__ import annotations

import datetime
import logging
from typing import Callable, Optional

from config import WidgetConfig
from displays.base import Display, is_segment
from errors import IncompatibleWidgetError

from .alert import Alert
from .animation import ANIMATIONS, FrameAnimation
from .base import Widget
from .clock import Clock, SegmentClock
from .message import Message, SegmentMessage
from .remote import RemoteAlert, RemoteMessage
from .segment_animation import SEGMENT_ANIMATIONS

_LOGGER = logging.getLogger(__name__)

WIDGET_TYPES = ("clock", "message", "alert", "animation")
FRAME_ANIMATION_TYPES = ("", "frames")

Now = Optional[Callable[[], datetime.datetime]]


def _clock(cfg: WidgetConfig, segment: bool, now: Now) -> Widget:
    format_24h = True if cfg.format_24h is None else cfg.format_24h
    cls = SegmentClock if segment else Clock
    return cls(format_24h=format_24h, now=now)


def _message(cfg: WidgetConfig, segment: bool, store) -> Widget:
    factory = SegmentMessage if segment else Message
    repeats = 1 if cfg.repeats is None else cfg.repeats
    if store is not None and cfg.dynamic_source:
        return RemoteMessage(
            store,
            cfg.dynamic_source,
            cfg.text,
            scroll_speed=cfg.scroll_speed,
            repeats=repeats,
            sleep_between=cfg.sleep_between,
            message_factory=factory,
        )
    return factory(
        cfg.text,
        scroll_speed=cfg.scroll_speed,
        repeats=repeats,
        sleep_between=cfg.sleep_between,
    )


def _alert(cfg: WidgetConfig, segment: bool, store, now: Now) -> Widget:
    factory = SegmentMessage if segment else Message
    if store is not None:
        return RemoteAlert(store, cfg.alerts, scroll_speed=cfg.scroll_speed, now=now,
                           message_factory=factory)
    return Alert(cfg.alerts, scroll_speed=cfg.scroll_speed, now=now, message_factory=factory)


def _animation(cfg: WidgetConfig, segment: bool) -> Optional[Widget]:
    kind = cfg.animation_type
    if kind in FRAME_ANIMATION_TYPES:
        if segment:
            raise IncompatibleWidgetError(
                "frame animations need a pixel display; pick a procedural animation_type instead"
            )
        return FrameAnimation(cfg.frames, frame_duration=cfg.frame_duration)

    table = SEGMENT_ANIMATIONS if segment else ANIMATIONS
    cls = table.get(kind)
    if cls is None:
        _LOGGER.warning("Unknown animation type %r; skipping", kind)
        return None
    return cls()


def build_widget(cfg: WidgetConfig, display: Display, store=None, now: Now = None) -> Optional[Widget]:
    """Return the widget for *cfg* on *display*, or None for unknown types.

    Raises :class:`IncompatibleWidgetError` when the widget can only draw on
    a surface the display does not have.
    """

    segment = is_segment(display)
    if cfg.type == "clock":
        return _clock(cfg, segment, now)
    if cfg.type == "message":
        return _message(cfg, segment, store)
    if cfg.type == "alert":
        return _alert(cfg, segment, store, now)
    if cfg.type == "animation":
        return _animation(cfg, segment)

    _LOGGER.warning("Unknown widget type %r; skipping", cfg.type)
    return None
