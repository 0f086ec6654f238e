"""Widget rotation engine.

One :class:`Engine` run owns the display: it rotates through the configured
slots forever, letting exactly one widget write at a time.  Each slot's widget
runs on its own thread and races three outcomes:

* the widget finishes (naturally or because its slot duration expired),
* an alert interrupt arrives from the store,
* the root token is cancelled.

Whatever wins, the widget's scope is cancelled and its thread joined before
anything else touches the display.
"""
from __future__ import annotations

import datetime
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import cron
from brightness import BrightnessController
from config import EngineConfig
from displays.base import Display, is_segment
from errors import EngineError, IncompatibleWidgetError, NoWidgetsError
from services.redis_store import StoreError
from tasks import CancelToken, Cancelled, Signal, Task, Waker
from widgets.alert import Alert
from widgets.base import Widget
from widgets.message import PIXEL_SCROLL_SPEED, SEGMENT_SCROLL_SPEED, Message, SegmentMessage
from widgets.registry import build_widget

__all__ = [
    "Engine",
    "EngineError",
    "IncompatibleWidgetError",
    "NoWidgetsError",
    "Slot",
    "build_slots",
]

_LOGGER = logging.getLogger(__name__)

INTERRUPT_SECONDS_PER_ALERT = 10.0
# Pause after a rotation pass in which no slot held the display.
IDLE_SECONDS = 1.0
# A widget returning sooner than this on its own did not hold the display.
MIN_ACTIVE_SECONDS = 0.05

_DONE = "done"
_INTERRUPT = "interrupt"
_CANCELLED = "cancelled"


@dataclass(frozen=True)
class Slot:
    widget: Widget
    duration: float = 0.0
    cron: str = ""


def build_slots(cfg: EngineConfig, display: Display, store=None,
                now: Optional[Callable[[], datetime.datetime]] = None) -> List[Slot]:
    """Build the ordered slot list, skipping disabled and unknown entries."""

    slots = []
    for widget_cfg in cfg.widgets:
        if not widget_cfg.enabled:
            continue
        widget = build_widget(widget_cfg, display, store, now=now)
        if widget is None:
            continue
        slots.append(Slot(widget=widget, duration=widget_cfg.duration, cron=widget_cfg.cron))
    return slots


class Engine:
    def __init__(self, display: Display, cfg: EngineConfig, store=None,
                 now: Optional[Callable[[], datetime.datetime]] = None):
        self.display = display
        self.cfg = cfg
        self.store = store
        self._now = now or datetime.datetime.now

    # ----- public -------------------------------------------------------
    def run(self, root: CancelToken) -> None:
        """Rotate widgets until *root* is cancelled.

        Raises :class:`NoWidgetsError` (before any display I/O) when nothing
        is enabled and :class:`IncompatibleWidgetError` for a widget the
        display cannot show.
        """

        slots = build_slots(self.cfg, self.display, self.store, now=self._now)
        if not slots:
            raise NoWidgetsError()

        waker = Waker()
        background = root.child()
        controller = BrightnessController(
            self.display, self.cfg.brightness, self.cfg.location, now=self._now
        )
        brightness = Task(lambda: controller.run(background), name="brightness").start()
        subscription = self._subscribe(background)
        signal = subscription.signal if subscription is not None else None

        root.add_done_callback(waker.poke)
        if signal is not None:
            signal.add_listener(waker.poke)
        try:
            self._rotate(root, slots, waker, signal)
        finally:
            root.remove_done_callback(waker.poke)
            if signal is not None:
                signal.remove_listener(waker.poke)
            background.cancel()
            brightness.join()
            if brightness.exception is not None:
                _LOGGER.error("Brightness task failed: %s", brightness.exception,
                              exc_info=brightness.exception)
            if subscription is not None:
                subscription.join()
            _LOGGER.debug("Engine background tasks joined")

    # ----- rotation -----------------------------------------------------
    def _subscribe(self, token: CancelToken):
        if self.store is None:
            return None
        try:
            return self.store.subscribe_alerts(token)
        except (StoreError, Cancelled) as exc:
            _LOGGER.warning("Alert subscription failed, interrupts disabled: %s", exc)
            return None

    def _rotate(self, root: CancelToken, slots: List[Slot], waker: Waker,
                signal: Optional[Signal]) -> None:
        while True:
            active = 0
            for slot in slots:
                if root.cancelled():
                    return None
                if slot.cron and not cron.matches(slot.cron, self._now()):
                    continue

                outcome, held = self._run_slot(root, slot, waker, signal)
                if held:
                    active += 1
                if outcome == _INTERRUPT:
                    _LOGGER.info("🚨 Alert interrupt during %s", slot.widget.name)
                    self._run_interrupt_alerts(root)
                if root.cancelled():
                    return None

            if not active:
                _LOGGER.debug("No widget held the display; idling %.2fs", IDLE_SECONDS)
                if root.wait(IDLE_SECONDS):
                    return None

    def _run_slot(self, root: CancelToken, slot: Slot, waker: Waker,
                  signal: Optional[Signal]) -> Tuple[str, bool]:
        """Run one slot; return its outcome and whether it held the display."""

        widget = slot.widget
        _LOGGER.info("▶️  Widget: %s", widget.name)
        started = time.monotonic()
        scope = root.child(timeout=slot.duration if slot.duration > 0 else None)
        task = Task(lambda: widget.run(scope, self.display), name=f"widget-{widget.name}",
                    waker=waker).start()

        def outcome():
            if task.done.is_set():
                return _DONE
            if signal is not None and signal.consume():
                return _INTERRUPT
            if root.cancelled():
                return _CANCELLED
            return None

        try:
            result = waker.wait_for(outcome)
            expired = scope.cancelled()
        finally:
            scope.cancel()
            task.join()

        exc = task.exception
        if exc is not None and not isinstance(exc, Cancelled):
            _LOGGER.error("Widget %s failed: %s", widget.name, exc, exc_info=exc)
        held = (result != _DONE or expired
                or time.monotonic() - started >= MIN_ACTIVE_SECONDS)
        return result, held

    # ----- interrupts ---------------------------------------------------
    def _message_factory(self):
        return SegmentMessage if is_segment(self.display) else Message

    def _delete_alert(self, token: CancelToken, alert_id: str) -> None:
        try:
            self.store.delete_alert(token, alert_id)
        except (StoreError, Cancelled) as exc:
            _LOGGER.error("Alert delete %s failed: %s", alert_id, exc)

    def _run_interrupt_alerts(self, root: CancelToken) -> None:
        if self.store is None:
            return
        try:
            alerts = self.store.fetch_alerts(root)
        except (StoreError, Cancelled) as exc:
            _LOGGER.warning("Interrupt alert fetch failed: %s", exc)
            return
        if not alerts:
            return

        factory = self._message_factory()
        speed = SEGMENT_SCROLL_SPEED if factory is SegmentMessage else PIXEL_SCROLL_SPEED
        widget = Alert(alerts, scroll_speed=speed, on_delete=self._delete_alert,
                       now=self._now, message_factory=factory)
        with root.child(timeout=len(alerts) * INTERRUPT_SECONDS_PER_ALERT) as scope:
            try:
                widget.run(scope, self.display)
            except Cancelled:
                _LOGGER.debug("Interrupt alerts cut short")
            except Exception:
                _LOGGER.exception("Interrupt alerts failed")
