"""JSON-line logging on top of loguru.

Every record carries the active trace id, the upstream provider and error
code when known, the module that emitted it, and any keyword context bound
through ``log_context`` or passed to the logging call itself.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any
from uuid import uuid4

from loguru import logger

from marketcharts.core.logging.config import LogConfig

if TYPE_CHECKING:
    from loguru import Logger, Message, Record


_trace_id: ContextVar[str | None] = ContextVar("marketcharts_trace_id", default=None)
_scoped_fields: ContextVar[dict[str, Any]] = ContextVar("marketcharts_log_fields", default={})

# promoted to top-level JSON keys instead of "context"
_TOP_LEVEL_FIELDS = ("trace_id", "provider", "error_code")
_LOGGER_NAME_FIELD = "logger_name"


def current_trace_id() -> str:
    """Return the active trace id, starting a new one when none is set."""
    trace_id = _trace_id.get()
    if trace_id is None:
        trace_id = uuid4().hex
        _trace_id.set(trace_id)
    return trace_id


def _inject_scope(record: Record) -> None:
    extra = record["extra"]
    for key, value in _scoped_fields.get().items():
        if extra.get(key) is None:
            extra[key] = value
    if not extra.get("trace_id"):
        extra["trace_id"] = current_trace_id()
    for key in ("provider", "error_code"):
        extra.setdefault(key, None)


def _to_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return str(value)


def render_record(record: Record) -> str:
    """Serialize one loguru record to a JSON line (without newline)."""
    extra = record["extra"]
    payload: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": extra.get(_LOGGER_NAME_FIELD),
        "message": record["message"],
    }
    for key in _TOP_LEVEL_FIELDS:
        payload[key] = extra.get(key)

    context = {
        key: value
        for key, value in extra.items()
        if key not in _TOP_LEVEL_FIELDS and key != _LOGGER_NAME_FIELD
    }
    if context:
        payload["context"] = context
    if record["exception"] is not None:
        payload["exception"] = repr(record["exception"].value)
    return json.dumps(payload, default=_to_json)


class JsonLineSink:
    """loguru sink handing rendered JSON lines to a writer callable."""

    def __init__(self, write: Callable[[str], None]) -> None:
        self._write = write

    def __call__(self, message: Message) -> None:
        self._write(render_record(message.record) + "\n")

    @classmethod
    def for_stream(cls, stream: IO[str]) -> JsonLineSink:
        def write(line: str) -> None:
            stream.write(line)
            stream.flush()

        return cls(write)

    @classmethod
    def for_file(cls, path: str) -> JsonLineSink:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        def write(line: str) -> None:
            with target.open("a", encoding="utf-8") as handle:
                handle.write(line)

        return cls(write)


def _apply(config: LogConfig) -> None:
    level = config.level.upper()
    handlers: list[dict[str, Any]] = []
    if config.console_output:
        handlers.append({"sink": JsonLineSink.for_stream(config.console_stream or sys.stderr), "level": level})
    if config.file_output and config.file_path:
        handlers.append({"sink": JsonLineSink.for_file(config.file_path), "level": level})
    logger.configure(handlers=handlers, patcher=_inject_scope, extra=dict(config.extra))


def configure_logging(level: str = "INFO", **kwargs: Any) -> None:
    """Replace all sinks according to ``LogConfig(level=level, **kwargs)``."""
    _apply(LogConfig(level=level, **kwargs))


class StructuredLogger:
    """配置好的loguru实例, 附带trace上下文工具."""

    def __init__(self, config: LogConfig | None = None) -> None:
        self.config = config or LogConfig()
        self.logger: Logger = logger
        _apply(self.config)

    def configure(self, **kwargs: Any) -> None:
        self.config = self.config.model_copy(update=kwargs)
        _apply(self.config)

    @contextmanager
    def context(self, *, trace_id: str | None = None, **fields: Any) -> Iterator[str]:
        with log_context(trace_id=trace_id, **fields) as active:
            yield active


def get_logger(name: str | None = None) -> Logger:
    """Module logger; ``name`` is reported as the ``logger`` field."""
    return logger.bind(logger_name=name) if name else logger


def bind(**fields: Any) -> Logger:
    return logger.bind(**fields)


@contextmanager
def log_context(*, trace_id: str | None = None, **fields: Any) -> Iterator[str]:
    """Attach ``fields`` and a trace id to every record logged inside the block.

    Nested blocks inherit outer fields; a new trace id is generated unless
    one is given.
    """
    fields_token = _scoped_fields.set({**_scoped_fields.get(), **fields})
    active = trace_id or uuid4().hex
    trace_token = _trace_id.set(active)
    try:
        yield active
    finally:
        _trace_id.reset(trace_token)
        _scoped_fields.reset(fields_token)


configure_logging()


__all__ = [
    "JsonLineSink",
    "StructuredLogger",
    "bind",
    "configure_logging",
    "current_trace_id",
    "get_logger",
    "log_context",
    "logger",
    "render_record",
]
