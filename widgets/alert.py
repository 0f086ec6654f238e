"""Prioritised alert playback.

Alerts are shown lowest ``priority`` value first, each scrolling until its
display duration elapses.  Priority 10 is a fixed low-urgency tier that only
surfaces on ten-minute boundaries.
"""
import datetime
import logging
from typing import Callable, List, Optional, Sequence, Type

import cron
from config import AlertConfig
from tasks import CancelToken, Cancelled

from .base import Widget
from .message import Message

_LOGGER = logging.getLogger(__name__)

DEFAULT_ALERT_DURATION = 5.0
THROTTLED_PRIORITY = 10
THROTTLE_CRON = "*/10 * * * *"

DeleteCallback = Callable[[CancelToken, str], None]


class Alert(Widget):
    name = "alert"

    def __init__(
        self,
        alerts: Sequence[AlertConfig],
        scroll_speed: float = 0.0,
        on_delete: Optional[DeleteCallback] = None,
        now: Optional[Callable[[], datetime.datetime]] = None,
        message_factory: Type[Message] = Message,
    ):
        self.alerts: List[AlertConfig] = list(alerts)
        self.scroll_speed = scroll_speed
        self.on_delete = on_delete
        self._now = now or datetime.datetime.now
        self.message_factory = message_factory
        self.surface = message_factory.surface

    def run(self, token: CancelToken, display) -> None:
        if not self.alerts:
            return None

        order = sorted(range(len(self.alerts)), key=lambda i: self.alerts[i].priority)
        to_delete: List[int] = []

        for idx in order:
            alert = self.alerts[idx]
            if alert.priority == THROTTLED_PRIORITY and not cron.matches(THROTTLE_CRON, self._now()):
                _LOGGER.debug("Alert %s held back until the next ten-minute mark", alert.id)
                continue

            duration = alert.display_duration or DEFAULT_ALERT_DURATION
            message = self.message_factory(alert.message, scroll_speed=self.scroll_speed, repeats=-1)
            with token.child(timeout=duration) as scope:
                try:
                    message.run(scope, display)
                except Cancelled:
                    if not scope.cancelled():
                        raise

            token.raise_if_cancelled()

            if alert.delete_after_display:
                if self.on_delete is not None:
                    self.on_delete(token, alert.id)
                else:
                    to_delete.append(idx)

        for idx in sorted(to_delete, reverse=True):
            del self.alerts[idx]
        return None
