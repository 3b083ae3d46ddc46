"""Logging and metric hooks for storage operations.

Log records are emitted as one JSON object per line. The operation in
progress and the storage path and shard it touches are tracked in context
variables, so every record and metric inside an operation carries them.
"""

import json
import logging
import sys
import time
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

operation_var: ContextVar[str | None] = ContextVar("filekit_operation", default=None)
path_var: ContextVar[str | None] = ContextVar("filekit_path", default=None)
shard_var: ContextVar[int | None] = ContextVar("filekit_shard", default=None)


@dataclass
class LogContext:
    """What a storage operation is working on."""

    operation: str | None = None
    path: str | None = None
    shard: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def current(cls) -> "LogContext":
        return cls(
            operation=operation_var.get(),
            path=path_var.get(),
            shard=shard_var.get(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Set fields only; extra values override them."""
        result: dict[str, Any] = {
            key: value
            for key, value in (
                ("operation", self.operation),
                ("path", self.path),
                ("shard", self.shard),
            )
            if value is not None
        }
        result.update(self.extra)
        return result


class OperationContext:
    """Scopes log and metric context to one save or delete.

    Example:
        with OperationContext("save") as op:
            op.bind(shard=2, path="2/abc.jpg")
            logger.info("Writing")  # carries operation, shard and path
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self._tokens: list[tuple[ContextVar, Token]] = []

    def bind(self, path: str | None = None, shard: int | None = None) -> None:
        """Attach the path and shard once they are known."""
        if shard is not None:
            self._tokens.append((shard_var, shard_var.set(shard)))
        if path is not None:
            self._tokens.append((path_var, path_var.set(path)))

    def __enter__(self) -> "OperationContext":
        self._tokens.append((operation_var, operation_var.set(self.operation)))
        return self

    def __exit__(self, *args: Any) -> None:
        # Newest first so each var returns to its value before the operation
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()


class JsonFormatter(logging.Formatter):
    """Renders a record and the current operation context as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        context = LogContext.current().to_dict()
        context.update(getattr(record, "context", None) or {})

        data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if context:
            data["context"] = context
        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            data["duration_ms"] = round(duration_ms, 3)
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            data["error"] = {"type": type(exc).__name__, "message": str(exc)}
        return json.dumps(data, default=str)


class StructuredLogger:
    """Logger taking a context dict, an optional error and a duration."""

    def __init__(self, name: str) -> None:
        self.logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        message: str,
        context: dict[str, Any] | None,
        error: Exception | None = None,
        duration_ms: float | None = None,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        extra: dict[str, Any] = {"context": context or {}}
        if duration_ms is not None:
            extra["duration_ms"] = duration_ms
        exc_info = (type(error), error, error.__traceback__) if error else None
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, context: dict[str, Any] | None = None) -> None:
        self._log(logging.DEBUG, message, context)

    def info(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        self._log(logging.INFO, message, context, duration_ms=duration_ms)

    def warning(self, message: str, context: dict[str, Any] | None = None) -> None:
        self._log(logging.WARNING, message, context)

    def error(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._log(logging.ERROR, message, context, error)


class Timer:
    """Wall-clock duration of a block, in milliseconds."""

    def __init__(self) -> None:
        self.start_time = 0.0
        self.end_time = 0.0

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end_time = time.perf_counter()


# Receives (name, value, labels)
MetricCallback = Callable[[str, float, dict[str, Any]], None]

_metric_callbacks: list[MetricCallback] = []


def register_metric_callback(callback: MetricCallback) -> None:
    """Send every emitted metric to callback."""
    _metric_callbacks.append(callback)


def unregister_metric_callback(callback: MetricCallback) -> None:
    if callback in _metric_callbacks:
        _metric_callbacks.remove(callback)


def emit_metric(name: str, value: float, labels: dict[str, Any] | None = None) -> None:
    """Emit a metric labelled with the current operation and shard.

    A failing callback is logged and skipped; it never fails the operation.
    """
    labels = dict(labels or {})
    context = LogContext.current()
    if context.operation:
        labels.setdefault("operation", context.operation)
    if context.shard is not None:
        labels.setdefault("shard", context.shard)

    for callback in list(_metric_callbacks):
        try:
            callback(name, value, labels)
        except Exception as e:
            logging.getLogger(__name__).warning("Metric callback failed for %s: %s", name, e)


def emit_counter(name: str, labels: dict[str, Any] | None = None) -> None:
    emit_metric(name, 1.0, labels)


def emit_timer(name: str, duration_ms: float, labels: dict[str, Any] | None = None) -> None:
    emit_metric(name, duration_ms, labels)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Send filekit logs to stdout as JSON lines, replacing existing handlers."""
    package_logger = logging.getLogger("filekit")
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    package_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)
