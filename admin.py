#!/usr/bin/env python3
"""Admin web UI for editing the stored clock configuration and alerts."""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, abort, jsonify, redirect, render_template, request, url_for

from config import (
    ADMIN_HOST,
    ADMIN_PORT,
    AlertConfig,
    ConfigError,
    alert_to_dict,
    parse_alert,
    parse_config,
)
from services.redis_store import RedisStore, StoreError
from tasks import CancelToken

STORE_TIMEOUT = 5.0

app = Flask(__name__)
app.config.setdefault("STORE", None)
_logger = logging.getLogger(__name__)


def _store() -> Optional[RedisStore]:
    return app.config.get("STORE")


def _require_store() -> RedisStore:
    store = _store()
    if store is None:
        abort(503, description="Redis is not configured")
    return store


def _load_raw(store: RedisStore) -> Dict[str, Any]:
    with CancelToken(timeout=STORE_TIMEOUT) as token:
        return store.load_config_raw(token) or {"widgets": []}


def _save_raw(store: RedisStore, payload: Dict[str, Any]) -> None:
    parse_config(payload)
    with CancelToken(timeout=STORE_TIMEOUT) as token:
        store.save_config(token, payload)


def _list_alerts(store: RedisStore) -> List[AlertConfig]:
    with CancelToken(timeout=STORE_TIMEOUT) as token:
        alerts = store.fetch_alerts(token)
    return sorted(alerts, key=lambda alert: (alert.priority, alert.id))


def _widget_from_form(form) -> Dict[str, Any]:
    widget: Dict[str, Any] = {"type": form.get("type", "").strip(), "enabled": True}
    for field in ("duration", "cron", "text", "dynamic_source", "scroll_speed", "animation_type"):
        value = form.get(field, "").strip()
        if value:
            widget[field] = value
    if form.get("format_24h"):
        widget["format_24h"] = form.get("format_24h") == "on"
    return widget


def _alert_from_form(form) -> AlertConfig:
    payload: Dict[str, Any] = {
        "id": form.get("id", "").strip(),
        "message": form.get("message", ""),
        "priority": form.get("priority") or 0,
        "delete_after_display": form.get("delete_after_display") == "on",
    }
    duration = form.get("display_duration", "").strip()
    if duration:
        payload["display_duration"] = duration
    alert = parse_alert(payload)
    if not alert.id:
        raise ConfigError("alerts need an id")
    return alert


def _render_index(error: Optional[str] = None, status: int = 200) -> Tuple[str, int]:
    store = _store()
    raw: Dict[str, Any] = {}
    alerts: List[AlertConfig] = []
    if store is not None and error is None:
        try:
            raw = _load_raw(store)
            alerts = _list_alerts(store)
        except StoreError as exc:
            error, status = str(exc), 502
    return (
        render_template(
            "index.html",
            has_store=store is not None,
            error=error,
            config_text=json.dumps(raw, indent=2),
            widgets=raw.get("widgets", []),
            alerts=alerts,
        ),
        status,
    )


# ─── HTML routes ─────────────────────────────────────────────────────────────
@app.route("/")
def index():
    return _render_index()


def _mutate_config(mutator) -> Any:
    store = _store()
    if store is None:
        return _render_index("Redis is not configured", 503)
    try:
        raw = _load_raw(store)
        mutator(raw)
        _save_raw(store, raw)
    except (ConfigError, IndexError, ValueError) as exc:
        return _render_index(f"Invalid configuration: {exc}", 400)
    except StoreError as exc:
        return _render_index(str(exc), 502)
    return redirect(url_for("index"))


@app.route("/config", methods=["POST"])
def update_config():
    text = request.form.get("config", "")

    def replace(raw: Dict[str, Any]) -> None:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"parsing config: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError("configuration must be a JSON object")
        raw.clear()
        raw.update(payload)

    return _mutate_config(replace)


@app.route("/widgets/add", methods=["POST"])
def add_widget():
    widget = _widget_from_form(request.form)
    return _mutate_config(lambda raw: raw.setdefault("widgets", []).append(widget))


@app.route("/widgets/<int:idx>/delete", methods=["POST"])
def delete_widget(idx: int):
    return _mutate_config(lambda raw: raw.setdefault("widgets", []).pop(idx))


@app.route("/widgets/<int:idx>/toggle", methods=["POST"])
def toggle_widget(idx: int):
    def flip(raw: Dict[str, Any]) -> None:
        widget = raw.setdefault("widgets", [])[idx]
        widget["enabled"] = not widget.get("enabled", True)

    return _mutate_config(flip)


@app.route("/alerts", methods=["POST"])
def add_alert():
    store = _store()
    if store is None:
        return _render_index("Redis is not configured", 503)
    try:
        alert = _alert_from_form(request.form)
        with CancelToken(timeout=STORE_TIMEOUT) as token:
            store.save_alert(token, alert)
    except ConfigError as exc:
        return _render_index(f"Invalid alert: {exc}", 400)
    except StoreError as exc:
        return _render_index(str(exc), 502)
    _logger.info("Alert %s saved", alert.id)
    return redirect(url_for("index"))


@app.route("/alerts/<alert_id>/delete", methods=["POST"])
def delete_alert(alert_id: str):
    store = _store()
    if store is None:
        return _render_index("Redis is not configured", 503)
    try:
        with CancelToken(timeout=STORE_TIMEOUT) as token:
            store.delete_alert(token, alert_id)
    except StoreError as exc:
        return _render_index(str(exc), 502)
    return redirect(url_for("index"))


# ─── JSON API ────────────────────────────────────────────────────────────────
@app.route("/api/config", methods=["GET"])
def api_config():
    store = _require_store()
    try:
        config = _load_raw(store)
    except StoreError as exc:
        return jsonify(status="error", message=str(exc)), 502
    return jsonify(status="ok", config=config)


@app.route("/api/config", methods=["POST"])
def api_update_config():
    store = _require_store()
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify(status="error", message="JSON object body is required"), 400
    try:
        _save_raw(store, payload)
    except ConfigError as exc:
        return jsonify(status="error", message=str(exc)), 400
    except StoreError as exc:
        return jsonify(status="error", message=str(exc)), 502
    return jsonify(status="ok", config=payload)


@app.route("/api/alerts")
def api_alerts():
    store = _require_store()
    try:
        alerts = _list_alerts(store)
    except StoreError as exc:
        return jsonify(status="error", message=str(exc)), 502
    return jsonify(status="ok", alerts=[alert_to_dict(alert) for alert in alerts])


@app.errorhandler(503)
def _unavailable(exc):
    if request.path.startswith("/api/"):
        return jsonify(status="error", message=exc.description), 503
    return _render_index(exc.description, 503)


def main() -> None:  # pragma: no cover
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-8s %(message)s",
        datefmt="%H:%M:%S",
        force=True,
    )
    store = RedisStore.from_env()
    if store is None:
        _logger.warning("REDIS_URL / REDIS_HOST not set; admin UI is read-only")
    app.config["STORE"] = store

    if os.environ.get("ADMIN_DEBUG") == "1" or os.environ.get("FLASK_DEBUG") == "1":
        app.run(host=ADMIN_HOST, port=ADMIN_PORT, debug=True)
    else:
        from waitress import serve

        _logger.info("🛠️  Admin UI on http://%s:%d", ADMIN_HOST, ADMIN_PORT)
        serve(app, host=ADMIN_HOST, port=ADMIN_PORT)


if __name__ == "__main__":  # pragma: no cover
    main()
