from __future__ import annotations

import contextvars
import datetime as dt
import json
import logging
import os
import sys
import time
import uuid
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

SENSITIVE_KEYS = {"redis_url", "api_key", "token", "authorization", "password", "secret"}


def _iso_now() -> str:
    return dt.datetime.now(dt.UTC).isoformat()


def _redact_value(value: Any) -> Any:
    return "[REDACTED]"


def _redact(obj: Any) -> Any:
    if isinstance(obj, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in obj.items():
            if isinstance(k, str) and k.lower() in SENSITIVE_KEYS:
                redacted[k] = _redact_value(v)
            else:
                redacted[k] = _redact(v)
        return redacted
    if isinstance(obj, list | tuple):
        return [_redact(v) for v in obj]
    return obj


def _build_base_payload(record: logging.LogRecord) -> dict[str, Any]:
    service = getattr(record, "service", None) or os.getenv("SERVICE_NAME")
    return {
        "ts": _iso_now(),
        "level": record.levelname.lower(),
        "service": service,
        "logger": record.name,
        "msg": record.getMessage(),
    }


def _add_standard_extras(payload: dict[str, Any], record: logging.LogRecord) -> None:
    for attr in (
        "event",
        "span_id",
        "parent_id",
        "duration_ms",
        "dispatch_id",
        "ui_event",
        "operation",
        "collection",
        "task_id",
        "attributes",
        "metadata",
    ):
        if hasattr(record, attr):
            payload[attr] = getattr(record, attr)


def _add_span_name(payload: dict[str, Any], record: logging.LogRecord) -> None:
    span_name = getattr(record, "span_name", None)
    if span_name is not None:
        payload["name"] = span_name


def _enrich_with_context(payload: dict[str, Any]) -> None:
    ctx = get_dispatch_context() or {}
    for key in ("dispatch_id", "ui_event"):
        value = ctx.get(key)
        if key not in payload and value is not None:
            payload[key] = value


def _redact_attributes_in_payload(payload: dict[str, Any]) -> None:
    for key in ("attributes", "metadata"):
        value = payload.get(key)
        if isinstance(value, dict):
            payload[key] = _redact(value)


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = _build_base_payload(record)
        _add_standard_extras(payload, record)
        _add_span_name(payload, record)
        _enrich_with_context(payload)
        _redact_attributes_in_payload(payload)
        # Attach error fields if present, keeping the JSON single-line
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            payload["err_type"] = getattr(exc_type, "__name__", str(exc_type))
            if exc_value is not None:
                payload["err"] = str(exc_value)
            payload["stack"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ConsoleLogFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(message)s")

    @staticmethod
    def _shorten(value: str | None, *, n: int = 8) -> str:
        if not value:
            return "-"
        return value[:n]

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        ts = _iso_now()[11:19]  # HH:MM:SS
        level = record.levelname.upper()
        msg = record.getMessage()

        ctx = get_dispatch_context() or {}
        event = getattr(record, "event", None)
        ui_event = getattr(record, "ui_event", None) or ctx.get("ui_event")
        dispatch_id = getattr(record, "dispatch_id", None) or ctx.get("dispatch_id")
        operation = getattr(record, "operation", None)
        svc = getattr(record, "service", None)

        parts: list[str] = [ts, level, str(svc) if svc else record.name]
        if event:
            parts.append(str(event))
        if ui_event:
            parts.append(f"ui={ui_event}")
        if dispatch_id:
            parts.append(f"dispatch={self._shorten(str(dispatch_id))}")
        if operation:
            parts.append(f"op={operation}")
        duration_ms = getattr(record, "duration_ms", None)
        if isinstance(duration_ms, int | float):
            parts.append(f"{duration_ms:.1f}ms")
        parts.append("-")
        parts.append(msg)
        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _choose_formatter() -> logging.Formatter:
    format_pref = (os.getenv("LOG_FORMAT") or "").strip().lower() or "auto"
    if format_pref == "auto":
        try:
            if sys.stderr.isatty():
                return ConsoleLogFormatter()
        except Exception:
            pass
        return JsonLogFormatter()
    if format_pref == "console":
        return ConsoleLogFormatter()
    return JsonLogFormatter()


def _parse_level(value: str | None, default: int = logging.INFO) -> int:
    name = (value or "").strip().upper()
    if not name:
        return default
    level = getattr(logging, name, None)
    return level if isinstance(level, int) else default


def _level_for_logger(logger_name: str) -> int:
    base_level = _parse_level(os.getenv("LOG_LEVEL"), logging.INFO)
    overrides = (os.getenv("LOG_MODULE_LEVELS") or "").strip()
    if not overrides:
        return base_level
    for entry in overrides.split(","):
        entry = entry.strip()
        if not entry or "=" not in entry:
            continue
        prefix, lvl = entry.split("=", 1)
        prefix = prefix.strip()
        if not prefix:
            continue
        if logger_name == prefix or logger_name.startswith(prefix + "."):
            return _parse_level(lvl, base_level)
    return base_level


def get_json_logger(name: str = "todochamp") -> logging.Logger:
    """Return a logger writing one record per line to stderr.

    Stdout is left to the console front end, which prints task listings there.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(_choose_formatter())
        logger.addHandler(handler)
        logger.setLevel(_level_for_logger(name))
        logger.propagate = False
    return logger


@dataclass
class Span:
    span_id: str
    name: str
    start_ns: int
    parent_id: str | None


# Current span ids per asyncio task; a tuple so each task sees its own copy
_span_stack_var: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
    "todochamp_span_stack", default=()
)


class Tracer:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or get_json_logger("todochamp.trace")

    @contextmanager
    def span(
        self,
        name: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> Generator[Span, None, None]:
        stack = _span_stack_var.get()
        span = Span(
            span_id=str(uuid.uuid4()),
            name=name,
            start_ns=time.perf_counter_ns(),
            parent_id=stack[-1] if stack else None,
        )

        self._logger.debug(
            "span start",
            extra={
                "event": "span_start",
                "span_name": name,
                "span_id": span.span_id,
                "parent_id": span.parent_id,
                "attributes": dict(metadata or {}),
            },
        )
        token = _span_stack_var.set((*stack, span.span_id))
        try:
            yield span
        finally:
            _span_stack_var.reset(token)
            duration_ms = (time.perf_counter_ns() - span.start_ns) / 1_000_000.0
            self._logger.debug(
                "span end",
                extra={
                    "event": "span_end",
                    "span_name": name,
                    "span_id": span.span_id,
                    "parent_id": span.parent_id,
                    "duration_ms": duration_ms,
                },
            )


class Metrics:
    def __init__(self) -> None:
        self._counters: dict[tuple[str, tuple[tuple[str, str], ...]], int] = {}

    def increment(
        self,
        name: str,
        labels: Mapping[str, str] | None = None,
        amount: int = 1,
    ) -> None:
        label_items: tuple[tuple[str, str], ...] = tuple(sorted((labels or {}).items()))
        key = (name, label_items)
        self._counters[key] = self._counters.get(key, 0) + amount

    def value(self, name: str, labels: Mapping[str, str] | None = None) -> int:
        label_items = tuple(sorted((labels or {}).items()))
        return self._counters.get((name, label_items), 0)

    def snapshot(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for (name, label_items), value in sorted(self._counters.items()):
            out.append(
                {
                    "name": name,
                    "labels": dict(label_items),
                    "value": value,
                }
            )
        return out


# ----------------------------
# Dispatch context helpers
# ----------------------------

_dispatch_context_var: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "todochamp_dispatch_context", default=None
)


def get_dispatch_context() -> dict[str, Any] | None:
    return _dispatch_context_var.get()


@contextmanager
def use_dispatch_context(
    ui_event: str, dispatch_id: str | None = None
) -> Generator[str, None, None]:
    """Stamp every record logged inside the block with the event being handled."""
    did = dispatch_id or str(uuid.uuid4())
    token = _dispatch_context_var.set({"ui_event": ui_event, "dispatch_id": did})
    try:
        yield did
    finally:
        _dispatch_context_var.reset(token)


# ----------------------------
# Metrics singleton
# ----------------------------

_metrics_singleton: Metrics | None = None


def get_metrics() -> Metrics:
    global _metrics_singleton
    if _metrics_singleton is None:
        _metrics_singleton = Metrics()
    return _metrics_singleton


def reset_metrics() -> None:
    global _metrics_singleton
    _metrics_singleton = Metrics()


__all__ = [
    "ConsoleLogFormatter",
    "JsonLogFormatter",
    "Metrics",
    "Span",
    "Tracer",
    "get_dispatch_context",
    "get_json_logger",
    "get_metrics",
    "reset_metrics",
    "use_dispatch_context",
]
