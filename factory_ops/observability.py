from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Dict

from flask import g, has_request_context, request


# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "taskName"}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line, with the request id when one is bound."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if has_request_context():
            payload["request_id"] = str(getattr(g, "request_id", "") or "n/a")
            payload["method"] = request.method
            payload["path"] = request.path

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_") and key not in payload
        }
        payload.update(extras)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, separators=(",", ":"), default=str)


def configure_json_logging(app) -> None:
    if not bool(app.config.get("LOG_JSON", True)):
        return
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).strip().upper()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    # app.logger and every factory_ops.* logger share the root handler.
    app.logger.handlers = []
    app.logger.propagate = True


def ensure_request_id() -> str:
    request_id = str(getattr(g, "request_id", "") or "").strip()
    if not request_id:
        request_id = str(request.headers.get("X-Request-Id") or "").strip() or uuid.uuid4().hex
        g.request_id = request_id
    return request_id


class MetricsRegistry:
    """In-process counters exposed by /health."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._requests = Counter()
            self._errors = Counter()
            self._latency_ms: Dict[str, float] = {}
            self._notifications = Counter()
            self._transitions = Counter()

    def observe_http(self, route_key: str, status_code: int, duration_ms: float) -> None:
        with self._lock:
            self._requests[route_key] += 1
            if status_code >= 400:
                self._errors[route_key] += 1
            self._latency_ms[route_key] = max(self._latency_ms.get(route_key, 0.0), duration_ms)

    def observe_notification(self, kind: str, outcome: str) -> None:
        with self._lock:
            self._notifications[f"{kind or 'generic'}:{outcome}"] += 1

    def observe_transition(self, entity: str, to_state: str) -> None:
        with self._lock:
            self._transitions[f"{entity}:{to_state}"] += 1

    def snapshot(self) -> dict:
        with self._lock:
            routes = [
                {
                    "route": route_key,
                    "requests": count,
                    "errors": self._errors.get(route_key, 0),
                    "max_latency_ms": round(self._latency_ms.get(route_key, 0.0), 2),
                }
                for route_key, count in self._requests.most_common(40)
            ]
            return {
                "requests_total": sum(self._requests.values()),
                "errors_total": sum(self._errors.values()),
                "by_route": routes,
                "notifications": dict(sorted(self._notifications.items())),
                "transitions": dict(sorted(self._transitions.items())),
            }


_METRICS = MetricsRegistry()


def mark_request_start() -> None:
    g._request_started_at = time.perf_counter()


def observe_response(response):
    started = getattr(g, "_request_started_at", None)
    elapsed_ms = (time.perf_counter() - started) * 1000.0 if started else 0.0
    route = request.url_rule.rule if request.url_rule is not None else request.path
    _METRICS.observe_http(f"{request.method} {route}", int(response.status_code), elapsed_ms)
    return response


def observe_notification(kind: str, outcome: str) -> None:
    _METRICS.observe_notification(kind, outcome)


def observe_transition(entity: str, to_state: str) -> None:
    _METRICS.observe_transition(entity, to_state)


def metrics_snapshot() -> dict:
    return _METRICS.snapshot()


def reset_metrics_for_tests() -> None:
    _METRICS.reset()
