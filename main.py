#!/usr/bin/env python3
"""
Main loop driving the LED clock.

- Connects to Redis when REDIS_URL / REDIS_HOST is set (optional).
- Loads configuration from Redis first, then from the JSON file.
- Runs the widget engine until SIGINT/SIGTERM.
- Rebuilds the engine whenever the stored configuration changes.
"""
import argparse
import logging
import signal
import sys
from typing import Optional

from config import CONFIG_PATH, LOG_LEVEL, ConfigError, EngineConfig, load_config
from displays import DISPLAY_TYPES, create_display
from engine import Engine
from services.redis_store import RedisStore, StoreError
from tasks import CancelToken, Cancelled, Task, Waker

STORE_TIMEOUT = 5.0


# ─── Logging ─────────────────────────────────────────────────────────────────
def _configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)-8s %(message)s",
        datefmt="%H:%M:%S",
        force=True,
    )


# ─── Start-up helpers ────────────────────────────────────────────────────────
def connect_store() -> Optional[RedisStore]:
    """Return a pinged store, or None to run without Redis."""

    try:
        store = RedisStore.from_env()
    except StoreError as exc:
        logging.error("Redis configuration error: %s", exc)
        raise
    if store is None:
        return None

    with CancelToken(timeout=STORE_TIMEOUT) as token:
        try:
            store.ping(token)
        except (StoreError, Cancelled) as exc:
            logging.warning("Redis ping failed, running without Redis: %s", exc)
            store.close()
            return None
    logging.info("🔌 Redis connected")
    return store


def fetch_remote_config(store: RedisStore) -> Optional[EngineConfig]:
    with CancelToken(timeout=STORE_TIMEOUT) as token:
        try:
            return store.fetch_config(token)
        except (StoreError, Cancelled) as exc:
            logging.warning("Redis config fetch failed: %s", exc)
            return None


def load_startup_config(store: Optional[RedisStore], path: str) -> EngineConfig:
    if store is not None:
        cfg = fetch_remote_config(store)
        if cfg is not None:
            logging.info("📥 Config loaded from Redis")
            return cfg
    cfg = load_config(path)
    logging.info("📄 Config loaded from %s", path)
    return cfg


def install_signal_handlers(root: CancelToken) -> None:
    def _handle(signum, frame):
        logging.info("✋ %s caught—requesting shutdown…", signal.Signals(signum).name)
        root.cancel()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


# ─── Run loop ────────────────────────────────────────────────────────────────
def run(display, cfg: EngineConfig, store: Optional[RedisStore], root: CancelToken) -> int:
    """Run engines until *root* ends, rebuilding on config changes.

    Returns the process exit status.
    """

    subscription = None
    watch = root.child()
    if store is not None:
        try:
            subscription = store.subscribe_config(watch)
        except (StoreError, Cancelled) as exc:
            logging.warning("Config subscribe failed, hot reload disabled: %s", exc)
    changes = subscription.signal if subscription is not None else None

    waker = Waker()
    root.add_done_callback(waker.poke)
    if changes is not None:
        changes.add_listener(waker.poke)

    try:
        while True:
            scope = root.child()
            task = Task(lambda: Engine(display, cfg, store).run(scope), name="engine",
                        waker=waker).start()

            def outcome():
                if task.done.is_set():
                    return "exited"
                if changes is not None and changes.consume():
                    return "reload"
                if root.cancelled():
                    return "shutdown"
                return None

            event = waker.wait_for(outcome)
            scope.cancel()
            task.join()

            if task.exception is not None and not isinstance(task.exception, Cancelled):
                logging.error("Engine error: %s", task.exception)
                return 1
            if event == "reload" and not root.cancelled():
                new_cfg = fetch_remote_config(store)
                if new_cfg is not None:
                    cfg = new_cfg
                    logging.info("🔄 Config reloaded from Redis")
                continue
            return 0
    finally:
        root.remove_done_callback(waker.poke)
        if changes is not None:
            changes.remove_listener(waker.poke)
        watch.cancel()
        if subscription is not None:
            subscription.join()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LED clock widget rotation")
    parser.add_argument("--config", default=CONFIG_PATH, help="path to the JSON config file")
    parser.add_argument("--display", choices=DISPLAY_TYPES, help="override display.type")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging()
    logging.info("🖥️  Starting LED clock…")

    try:
        store = connect_store()
    except StoreError:
        return 1

    try:
        cfg = load_startup_config(store, args.config)
    except ConfigError as exc:
        logging.error("Config error: %s", exc)
        return 1

    try:
        display = create_display(cfg.display, override=args.display)
    except ValueError as exc:
        logging.error("%s", exc)
        return 1

    root = CancelToken()
    install_signal_handlers(root)
    display.init()
    try:
        status = run(display, cfg, store, root)
        if status == 0:
            display.clear()
        return status
    finally:
        root.cancel()
        display.close()
        if store is not None:
            store.close()
        logging.info("👋 LED clock stopped")


if __name__ == "__main__":
    sys.exit(main())
