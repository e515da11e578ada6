"""Logging and optional tracing.

setup_logging:
    Console + rotating file handlers, text or JSON, with run/user context.

setup_tracing / trace_operation:
    Logfire spans around batches and per-user fetches; no-ops when disabled.

Example:
    >>> from observability import setup_logging, setup_tracing, trace_operation
    >>> setup_logging(config)
    >>> setup_tracing(enabled=config.enable_logfire, token=config.logfire_token)
    >>> with trace_operation("fetch_briefings"):
    ...     pass
"""

from observability.logging import (
    clear_context,
    set_run_context,
    set_user_context,
    setup_logging,
)
from observability.tracing import BatchTracer, TracingContext, setup_tracing, trace_operation

__all__ = [
    "setup_logging",
    "set_run_context",
    "set_user_context",
    "clear_context",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
    "BatchTracer",
]
