import collections
import fnmatch
import json
import time

import pytest
import redis

from config import AlertConfig
from services.redis_store import ALERT_PREFIX, CONFIG_KEY, RedisStore, StoreError
from tasks import CancelToken, Cancelled


class _FakePubSub:
    def __init__(self):
        self.patterns = []
        self.queue = collections.deque()
        self.closed = False

    def psubscribe(self, *patterns):
        self.patterns.extend(patterns)

    def get_message(self, timeout=0.0):
        if self.queue:
            return self.queue.popleft()
        time.sleep(min(timeout, 0.01))
        return None

    def close(self):
        self.closed = True


class _FakePool:
    def __init__(self, db):
        self.connection_kwargs = {"db": db}


class _FakeRedis:
    def __init__(self, db=0):
        self.data = {}
        self.config = {}
        self.connection_pool = _FakePool(db)
        self.pubsubs = []
        self.broken = False

    def _guard(self):
        if self.broken:
            raise redis.ConnectionError("connection refused")

    def ping(self):
        self._guard()
        return True

    def scan_iter(self, match="*"):
        self._guard()
        return iter([key for key in list(self.data) if fnmatch.fnmatchcase(key, match)])

    def get(self, key):
        self._guard()
        return self.data.get(key)

    def set(self, key, value):
        self._guard()
        self.data[key] = value

    def delete(self, *keys):
        self._guard()
        for key in keys:
            self.data.pop(key, None)

    def config_set(self, name, value):
        self._guard()
        self.config[name] = value

    def pubsub(self, ignore_subscribe_messages=False):
        pubsub = _FakePubSub()
        self.pubsubs.append(pubsub)
        return pubsub

    def close(self):
        pass


@pytest.fixture
def client():
    return _FakeRedis()


@pytest.fixture
def store(client):
    return RedisStore(client)


def test_fetch_alerts_decodes_and_derives_ids(client, store):
    client.data[ALERT_PREFIX + "door"] = json.dumps({"message": "Door open", "priority": 2})
    client.data[ALERT_PREFIX + "named"] = json.dumps(
        {"id": "custom", "message": "Hi", "display_duration": "3s", "delete_after_display": True}
    )
    client.data["unrelated"] = "x"

    alerts = sorted(store.fetch_alerts(CancelToken()), key=lambda a: a.id)

    assert alerts == [
        AlertConfig(id="custom", message="Hi", display_duration=3.0, delete_after_display=True),
        AlertConfig(id="door", message="Door open", priority=2),
    ]


def test_bad_alert_json_raises_store_error(client, store):
    client.data[ALERT_PREFIX + "bad"] = "{oops"

    with pytest.raises(StoreError):
        store.fetch_alerts(CancelToken())


def test_redis_errors_are_wrapped(client, store):
    client.broken = True

    with pytest.raises(StoreError):
        store.fetch_text(CancelToken(), "key")
    with pytest.raises(StoreError):
        store.ping(CancelToken())


def test_cancelled_token_short_circuits(client, store):
    token = CancelToken()
    token.cancel()
    client.broken = True

    with pytest.raises(Cancelled):
        store.fetch_alerts(token)


def test_text_and_config_absent_return_none(store):
    token = CancelToken()

    assert store.fetch_text(token, "ledclock:text") is None
    assert store.fetch_config(token) is None


def test_config_round_trip(client, store):
    token = CancelToken()
    store.save_config(token, {"widgets": [{"type": "clock"}]})

    assert json.loads(client.data[CONFIG_KEY]) == {"widgets": [{"type": "clock"}]}
    assert store.fetch_config(token).widgets[0].type == "clock"


def test_invalid_stored_config(client, store):
    client.data[CONFIG_KEY] = json.dumps(["not", "an", "object"])
    with pytest.raises(StoreError):
        store.load_config_raw(CancelToken())

    client.data[CONFIG_KEY] = json.dumps({"widgets": [{"enabled": True}]})
    with pytest.raises(StoreError):
        store.fetch_config(CancelToken())


def test_save_and_delete_alert(client, store):
    token = CancelToken()
    store.save_alert(token, AlertConfig(id="a", message="hi", priority=1))

    assert json.loads(client.data[ALERT_PREFIX + "a"]) == {"id": "a", "message": "hi", "priority": 1}

    store.delete_alert(token, "a")
    assert ALERT_PREFIX + "a" not in client.data


def test_save_alert_requires_id(store):
    with pytest.raises(StoreError):
        store.save_alert(CancelToken(), AlertConfig(message="anonymous"))


def test_subscription_feeds_signal_until_cancelled(client, store):
    token = CancelToken()
    subscription = store.subscribe_alerts(token)
    pubsub = client.pubsubs[0]

    assert client.config["notify-keyspace-events"] == "KEA"
    assert pubsub.patterns == ["__keyspace@0__:" + ALERT_PREFIX + "*"]

    pubsub.queue.append({"type": "pmessage", "data": "set"})
    deadline = time.monotonic() + 2.0
    while not subscription.signal.pending() and time.monotonic() < deadline:
        time.sleep(0.01)
    assert subscription.signal.consume()

    token.cancel()
    subscription.join(2.0)
    assert pubsub.closed


def test_keyspace_channel_uses_database_number():
    store = RedisStore(_FakeRedis(db=3))

    assert store._keyspace(CONFIG_KEY) == "__keyspace@3__:" + CONFIG_KEY


def test_from_env_unset(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("REDIS_HOST", raising=False)

    assert RedisStore.from_env() is None


def test_from_env_url(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/2")

    store = RedisStore.from_env()

    assert store.client.connection_pool.connection_kwargs["db"] == 2


def test_from_env_bad_port(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.setenv("REDIS_HOST", "localhost")
    monkeypatch.setenv("REDIS_PORT", "sixty")

    with pytest.raises(StoreError):
        RedisStore.from_env()
