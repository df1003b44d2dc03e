"""Structured logger with JSON or text output and a process-wide default instance."""

from __future__ import annotations

import json
import os
import sys
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TextIO


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"
    PANIC = "panic"


class LogFormat(str, Enum):
    JSON = "json"
    TEXT = "text"


_SEVERITY = {
    LogLevel.PANIC: 0,
    LogLevel.FATAL: 1,
    LogLevel.ERROR: 2,
    LogLevel.WARN: 3,
    LogLevel.INFO: 4,
    LogLevel.DEBUG: 5,
}

_LEVEL_NAMES = {
    LogLevel.PANIC: "panic",
    LogLevel.FATAL: "fatal",
    LogLevel.ERROR: "error",
    LogLevel.WARN: "warning",
    LogLevel.INFO: "info",
    LogLevel.DEBUG: "debug",
}

_ALIASES = {"warning": LogLevel.WARN}


class LoggerPanic(Exception):
    """Raised after a message is logged at panic level."""


@dataclass
class LoggerConfig:
    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    output: str = "stdout"
    report_caller: bool = True


def default_config() -> LoggerConfig:
    """Return the default logger configuration."""
    return LoggerConfig()


def _parse_level(value: Any) -> LogLevel:
    text = str(value.value if isinstance(value, Enum) else value).lower()
    if text in _ALIASES:
        return _ALIASES[text]
    return LogLevel(text)


def _caller() -> str:
    frame = sys._getframe(1)
    here = os.path.abspath(__file__)
    while frame is not None and os.path.abspath(frame.f_code.co_filename) == here:
        frame = frame.f_back
    if frame is None:
        return ""
    return f"{os.path.basename(frame.f_code.co_filename)}:{frame.f_lineno}"


def _quote(value: Any) -> str:
    text = str(value)
    if text == "" or any(c in text for c in ' ="\n\t'):
        return json.dumps(text)
    return text


class Logger:
    """A logger entry carrying fields; derived loggers share the writer."""

    def __init__(
        self,
        writer: TextIO,
        level: LogLevel,
        log_format: LogFormat,
        report_caller: bool,
        fields: dict[str, Any] | None = None,
    ) -> None:
        self._writer = writer
        self._level = level
        self._format = log_format
        self._report_caller = report_caller
        self._fields = dict(fields or {})
        self._lock = threading.Lock()

    def _derive(self, extra: dict[str, Any]) -> Logger:
        child = Logger(self._writer, self._level, self._format, self._report_caller,
                       {**self._fields, **extra})
        child._lock = self._lock
        return child

    def with_field(self, key: str, value: Any) -> Logger:
        return self._derive({key: value})

    def with_fields(self, fields: dict[str, Any]) -> Logger:
        return self._derive(dict(fields))

    def with_error(self, err: BaseException | str) -> Logger:
        return self._derive({"error": str(err)})

    def _enabled(self, level: LogLevel) -> bool:
        return _SEVERITY[level] <= _SEVERITY[self._level]

    def _emit(self, level: LogLevel, msg: Any, args: tuple) -> str:
        text = str(msg) % args if args else str(msg)
        if not self._enabled(level):
            return text
        stamp = datetime.now(timezone.utc).astimezone().isoformat()
        record: dict[str, Any] = dict(self._fields)
        if self._format is LogFormat.JSON:
            record.update({"level": _LEVEL_NAMES[level], "msg": text, "time": stamp})
            if self._report_caller:
                record["file"] = _caller()
            line = json.dumps(record, default=str, sort_keys=True)
        else:
            parts = [f"time={_quote(stamp)}", f"level={_LEVEL_NAMES[level]}",
                     f"msg={_quote(text)}"]
            if self._report_caller:
                parts.append(f"file={_quote(_caller())}")
            parts.extend(f"{k}={_quote(v)}" for k, v in sorted(record.items()))
            line = " ".join(parts)
        with self._lock:
            self._writer.write(line + "\n")
            self._writer.flush()
        return text

    def debug(self, msg: Any, *args: Any) -> None:
        self._emit(LogLevel.DEBUG, msg, args)

    def info(self, msg: Any, *args: Any) -> None:
        self._emit(LogLevel.INFO, msg, args)

    def warning(self, msg: Any, *args: Any) -> None:
        self._emit(LogLevel.WARN, msg, args)

    def error(self, msg: Any, *args: Any) -> None:
        self._emit(LogLevel.ERROR, msg, args)

    def fatal(self, msg: Any, *args: Any) -> None:
        """Log at fatal level, then exit the process with status 1."""
        self._emit(LogLevel.FATAL, msg, args)
        raise SystemExit(1)

    def panic(self, msg: Any, *args: Any) -> None:
        """Log at panic level, then raise LoggerPanic."""
        text = self._emit(LogLevel.PANIC, msg, args)
        raise LoggerPanic(text)


def new_logger(config: LoggerConfig) -> Logger:
    """Create a logger from a configuration; raise ValueError on bad settings."""
    try:
        level = _parse_level(config.level)
    except ValueError as exc:
        raise ValueError(f"invalid log level: {getattr(config.level, 'value', config.level)}") from exc
    try:
        log_format = LogFormat(getattr(config.format, "value", config.format))
    except ValueError as exc:
        raise ValueError(f"invalid log format: {getattr(config.format, 'value', config.format)}") from exc
    if config.output == "stdout":
        writer: TextIO = sys.stdout
    elif config.output == "stderr":
        writer = sys.stderr
    else:
        try:
            writer = open(config.output, "a", encoding="utf-8")
        except OSError as exc:
            raise ValueError(f"failed to open log file: {exc}") from exc
    return Logger(writer, level, log_format, config.report_caller)


def new_with_writer(writer: TextIO, level: Any, log_format: Any) -> Logger:
    """Create a logger writing to a stream; an unknown level logs only panics."""
    try:
        parsed = _parse_level(level)
    except ValueError:
        parsed = LogLevel.PANIC
    fmt = LogFormat.JSON if getattr(log_format, "value", log_format) == "json" else LogFormat.TEXT
    return Logger(writer, parsed, fmt, True)


_global_logger: Logger | None = None
_global_lock = threading.Lock()


def initialize(config: LoggerConfig) -> None:
    """Replace the process-wide logger."""
    global _global_logger
    created = new_logger(config)
    with _global_lock:
        _global_logger = created


def get_logger() -> Logger:
    """Return the process-wide logger, creating a default one if needed."""
    global _global_logger
    with _global_lock:
        if _global_logger is None:
            _global_logger = new_logger(default_config())
        return _global_logger


def debug(msg: Any, *args: Any) -> None:
    get_logger().debug(msg, *args)


def info(msg: Any, *args: Any) -> None:
    get_logger().info(msg, *args)


def warning(msg: Any, *args: Any) -> None:
    get_logger().warning(msg, *args)


def error(msg: Any, *args: Any) -> None:
    get_logger().error(msg, *args)


def fatal(msg: Any, *args: Any) -> None:
    get_logger().fatal(msg, *args)


def panic(msg: Any, *args: Any) -> None:
    get_logger().panic(msg, *args)


def with_field(key: str, value: Any) -> Logger:
    return get_logger().with_field(key, value)


def with_fields(fields: dict[str, Any]) -> Logger:
    return get_logger().with_fields(fields)


def with_error(err: BaseException | str) -> Logger:
    return get_logger().with_error(err)