"""Redis-backed alert, message-text and configuration store.

Layout::

    ledclock:alert:<id>   JSON alert (id falls back to the key suffix)
    ledclock:config       full engine configuration JSON
    <any key>             plain text for message widgets with a dynamic_source

Change notifications use Redis keyspace events, coalesced into a
:class:`tasks.Signal`.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

import redis

from config import AlertConfig, ConfigError, EngineConfig, alert_to_dict, parse_alert, parse_config
from tasks import CancelToken, Signal, Task

_LOGGER = logging.getLogger(__name__)

ALERT_PREFIX = "ledclock:alert:"
CONFIG_KEY = "ledclock:config"
SOCKET_TIMEOUT = 5.0
POLL_SECONDS = 1.0


class StoreError(Exception):
    """A Redis call failed or returned data that could not be decoded."""


class Subscription:
    """A keyspace subscription feeding *signal* from a listener thread."""

    def __init__(self, signal: Signal, task: Task):
        self.signal = signal
        self._task = task

    def join(self, timeout: Optional[float] = None) -> None:
        self._task.join(timeout)


class RedisStore:
    def __init__(self, client: "redis.Redis"):
        self.client = client

    # ----- construction -------------------------------------------------
    @classmethod
    def from_env(cls) -> Optional["RedisStore"]:
        """Connect using ``REDIS_URL`` or ``REDIS_HOST``/``REDIS_PORT``; None if unset."""

        url = os.environ.get("REDIS_URL")
        if url:
            try:
                client = redis.Redis.from_url(url, socket_timeout=SOCKET_TIMEOUT, decode_responses=True)
            except ValueError as exc:
                raise StoreError(f"parsing REDIS_URL: {exc}") from exc
            return cls(client)

        host = os.environ.get("REDIS_HOST")
        if not host:
            return None
        port_text = os.environ.get("REDIS_PORT") or "6379"
        try:
            port = int(port_text)
        except ValueError:
            raise StoreError(f"invalid REDIS_PORT {port_text!r}") from None
        return cls(redis.Redis(host=host, port=port, socket_timeout=SOCKET_TIMEOUT,
                               decode_responses=True))

    def ping(self, token: CancelToken) -> None:
        token.raise_if_cancelled()
        try:
            self.client.ping()
        except redis.RedisError as exc:
            raise StoreError(f"PING: {exc}") from exc

    def close(self) -> None:
        try:
            self.client.close()
        except redis.RedisError as exc:
            _LOGGER.warning("Closing Redis connection failed: %s", exc)

    # ----- reads --------------------------------------------------------
    def fetch_alerts(self, token: CancelToken) -> List[AlertConfig]:
        token.raise_if_cancelled()
        alerts = []
        try:
            for key in self.client.scan_iter(match=ALERT_PREFIX + "*"):
                token.raise_if_cancelled()
                raw = self.client.get(key)
                if raw is None:
                    continue  # expired between SCAN and GET
                alerts.append(self._decode_alert(key, raw))
        except redis.RedisError as exc:
            raise StoreError(f"SCAN {ALERT_PREFIX}*: {exc}") from exc
        return alerts

    @staticmethod
    def _decode_alert(key: str, raw: str) -> AlertConfig:
        try:
            alert = parse_alert(json.loads(raw))
        except (json.JSONDecodeError, ConfigError) as exc:
            raise StoreError(f"decoding alert {key}: {exc}") from exc
        if not alert.id:
            alert = AlertConfig(
                id=key[len(ALERT_PREFIX):],
                message=alert.message,
                priority=alert.priority,
                display_duration=alert.display_duration,
                delete_after_display=alert.delete_after_display,
            )
        return alert

    def fetch_text(self, token: CancelToken, key: str) -> Optional[str]:
        """Return the value at *key*, or None when the key does not exist."""

        token.raise_if_cancelled()
        try:
            return self.client.get(key)
        except redis.RedisError as exc:
            raise StoreError(f"GET {key}: {exc}") from exc

    def load_config_raw(self, token: CancelToken) -> Optional[Dict[str, Any]]:
        text = self.fetch_text(token, CONFIG_KEY)
        if text is None:
            return None
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StoreError(f"decoding {CONFIG_KEY}: {exc}") from exc
        if not isinstance(payload, dict):
            raise StoreError(f"{CONFIG_KEY} must hold a JSON object")
        return payload

    def fetch_config(self, token: CancelToken) -> Optional[EngineConfig]:
        payload = self.load_config_raw(token)
        if payload is None:
            return None
        try:
            return parse_config(payload)
        except ConfigError as exc:
            raise StoreError(f"parsing {CONFIG_KEY}: {exc}") from exc

    # ----- writes -------------------------------------------------------
    def delete_alert(self, token: CancelToken, alert_id: str) -> None:
        token.raise_if_cancelled()
        try:
            self.client.delete(ALERT_PREFIX + alert_id)
        except redis.RedisError as exc:
            raise StoreError(f"DEL {ALERT_PREFIX}{alert_id}: {exc}") from exc

    def save_alert(self, token: CancelToken, alert: AlertConfig) -> None:
        token.raise_if_cancelled()
        if not alert.id:
            raise StoreError("alerts need an id to be stored")
        try:
            self.client.set(ALERT_PREFIX + alert.id, json.dumps(alert_to_dict(alert)))
        except redis.RedisError as exc:
            raise StoreError(f"SET {ALERT_PREFIX}{alert.id}: {exc}") from exc

    def save_config(self, token: CancelToken, payload: Dict[str, Any]) -> None:
        token.raise_if_cancelled()
        try:
            self.client.set(CONFIG_KEY, json.dumps(payload, indent=2))
        except redis.RedisError as exc:
            raise StoreError(f"SET {CONFIG_KEY}: {exc}") from exc

    # ----- change notifications -----------------------------------------
    def _keyspace(self, pattern: str) -> str:
        pool = getattr(self.client, "connection_pool", None)
        db = getattr(pool, "connection_kwargs", {}).get("db", 0) if pool is not None else 0
        return f"__keyspace@{db}__:{pattern}"

    def _subscribe(self, token: CancelToken, pattern: str, name: str) -> Subscription:
        token.raise_if_cancelled()
        try:
            self.client.config_set("notify-keyspace-events", "KEA")
        except redis.RedisError as exc:
            _LOGGER.warning("Could not enable keyspace notifications: %s", exc)

        channel = self._keyspace(pattern)
        pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        try:
            pubsub.psubscribe(channel)
        except redis.RedisError as exc:
            pubsub.close()
            raise StoreError(f"PSUBSCRIBE {channel}: {exc}") from exc

        signal = Signal()

        def listen() -> None:
            try:
                while not token.cancelled():
                    message = pubsub.get_message(timeout=POLL_SECONDS)
                    if message is not None:
                        signal.notify()
            except redis.RedisError as exc:
                _LOGGER.error("Subscription %s dropped: %s", channel, exc)
            finally:
                pubsub.close()

        _LOGGER.info("📡 Subscribed to %s", channel)
        return Subscription(signal, Task(listen, name=name).start())

    def subscribe_alerts(self, token: CancelToken) -> Subscription:
        return self._subscribe(token, ALERT_PREFIX + "*", "alert-subscription")

    def subscribe_config(self, token: CancelToken) -> Subscription:
        return self._subscribe(token, CONFIG_KEY, "config-subscription")
