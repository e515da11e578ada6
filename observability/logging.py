"""Logging setup with run and user context.

Every record carries ``run_id`` (one batch or CLI invocation) and ``user_id``
(the profile being processed) from context variables. asyncio copies the
current context into each task, so the user id set inside a per-profile
task never leaks into its siblings.

Usage:
    >>> from observability.logging import setup_logging, set_run_context
    >>> setup_logging(config)
    >>> set_run_context("a1b2c3")
    >>> logger.info("Batch started | users=%d", 12)
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Any

LOG_FILE_NAME = "stakewire.log"

run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")
user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("user_id", default="-")

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info", "exc_info", "exc_text",
    "thread", "threadName", "taskName", "message",
    "run_id", "user_id",
})


def set_run_context(run_id: str) -> None:
    run_id_var.set(run_id)


def set_user_context(user_id: str) -> None:
    """Tag subsequent records in this task with a profile id."""
    user_id_var.set(user_id or "-")


def clear_context() -> None:
    """Reset run and user ids."""
    run_id_var.set("-")
    user_id_var.set("-")


class ContextFilter(logging.Filter):
    """Copy the context variables onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        record.user_id = user_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log aggregation.

    Context ids that are unset ("-") are omitted. Records at WARNING and
    above include their source location.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr in ("run_id", "user_id"):
            value = getattr(record, attr, "-")
            if value != "-":
                log_data[attr] = value

        if record.levelno >= logging.WARNING:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Format: TIME [LEVEL] [run_id/user_id] logger: message"""

    def __init__(self, include_date: bool = False):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(run_id)s/%(user_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S",
        )


def _file_handler(config: Any) -> logging.Handler:
    log_file = config.log_dir / LOG_FILE_NAME
    if config.log_max_bytes > 0:
        return RotatingFileHandler(
            log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
    return TimedRotatingFileHandler(
        log_file,
        when="midnight",
        interval=1,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )


def setup_logging(config: Any, verbose: bool = False, file_logging: bool = True) -> bool:
    """Configure console and rotating file logging.

    Falls back to console-only when the log directory is not writable.

    Args:
        config: Config with log_dir, log_level, log_format, log_max_bytes and
                log_backup_count
        verbose: Force DEBUG on the console
        file_logging: Set False to skip the file handler entirely

    Returns:
        True if file logging is enabled
    """
    console_level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    context_filter = ContextFilter()

    if config.log_format == "json":
        console_fmt, file_fmt = JsonFormatter(), JsonFormatter()
    else:
        console_fmt, file_fmt = TextFormatter(), TextFormatter(include_date=True)

    # Console output goes to stderr so CLI JSON on stdout stays parseable
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(console_fmt)
    console.addFilter(context_filter)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.addHandler(console)

    file_logging_enabled = False
    if file_logging:
        try:
            config.log_dir.mkdir(parents=True, exist_ok=True)
            handler = _file_handler(config)
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(file_fmt)
            handler.addFilter(context_filter)
            root.addHandler(handler)
            file_logging_enabled = True
        except OSError as e:
            print(
                f"Warning: Cannot write to log directory '{config.log_dir}': {e}. "
                "Falling back to console-only logging.",
                file=sys.stderr,
            )

    for lib in ("aiohttp", "urllib3", "asyncio"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return file_logging_enabled
