"""Store-backed wrappers that refresh Message text and Alert lists per run.

Each run fetches under its own short-lived scope.  Any failure (or a missing
key) logs and falls back to the statically configured content before
delegating to the local widget.
"""
import datetime
import logging
from typing import Callable, Optional, Sequence, Type

from config import AlertConfig
from services.redis_store import StoreError
from tasks import CancelToken, Cancelled

from .alert import Alert
from .base import Widget
from .message import Message

_LOGGER = logging.getLogger(__name__)

FETCH_TIMEOUT = 5.0


class RemoteMessage(Widget):
    name = "remote-message"

    def __init__(self, store, key: str, fallback_text: str, scroll_speed: float = 0.0,
                 repeats: Optional[int] = None, sleep_between: float = 0.0,
                 message_factory: Type[Message] = Message):
        self.store = store
        self.key = key
        self.fallback_text = fallback_text
        self.scroll_speed = scroll_speed
        self.repeats = repeats
        self.sleep_between = sleep_between
        self.message_factory = message_factory
        self.surface = message_factory.surface

    def fetch_text(self, token: CancelToken) -> str:
        try:
            with token.child(timeout=FETCH_TIMEOUT) as scope:
                text = self.store.fetch_text(scope, self.key)
        except (StoreError, Cancelled) as exc:
            _LOGGER.warning("Message fetch %s failed, using fallback: %s", self.key, exc)
            return self.fallback_text
        if text is None:
            _LOGGER.debug("Message key %s not set, using fallback", self.key)
            return self.fallback_text
        return text

    def run(self, token: CancelToken, display) -> None:
        text = self.fetch_text(token)
        token.raise_if_cancelled()
        message = self.message_factory(
            text,
            scroll_speed=self.scroll_speed,
            repeats=self.repeats,
            sleep_between=self.sleep_between,
        )
        return message.run(token, display)


class RemoteAlert(Widget):
    name = "remote-alert"

    def __init__(self, store, fallback: Sequence[AlertConfig], scroll_speed: float = 0.0,
                 now: Optional[Callable[[], datetime.datetime]] = None,
                 message_factory: Type[Message] = Message):
        self.store = store
        self.fallback = list(fallback)
        self.scroll_speed = scroll_speed
        self._now = now
        self.message_factory = message_factory
        self.surface = message_factory.surface

    def fetch_alerts(self, token: CancelToken):
        try:
            with token.child(timeout=FETCH_TIMEOUT) as scope:
                return self.store.fetch_alerts(scope)
        except (StoreError, Cancelled) as exc:
            _LOGGER.warning("Alert fetch failed, using fallback: %s", exc)
            return list(self.fallback)

    def delete(self, token: CancelToken, alert_id: str) -> None:
        try:
            self.store.delete_alert(token, alert_id)
        except (StoreError, Cancelled) as exc:
            _LOGGER.error("Alert delete %s failed: %s", alert_id, exc)

    def run(self, token: CancelToken, display) -> None:
        alerts = self.fetch_alerts(token)
        token.raise_if_cancelled()
        widget = Alert(
            alerts,
            scroll_speed=self.scroll_speed,
            on_delete=self.delete,
            now=self._now,
            message_factory=self.message_factory,
        )
        return widget.run(token, display)
