"""Optional tracing through Logfire/OpenTelemetry.

When enabled, Logfire is configured once per process and aiohttp client
calls are instrumented, so every NewsAPI request shows up as a child span of
the batch or user span that issued it. When disabled (the default) or when
logfire is not installed, every helper here is a cheap no-op.

Requirements:
    pip install "stakewire[logfire]"

Enable via configuration:
    ENABLE_LOGFIRE=true
    LOGFIRE_TOKEN=your-token  # Optional for cloud dashboard
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator

logger = logging.getLogger(__name__)


@dataclass
class TracingContext:
    enabled: bool = False
    service_name: str = "stakewire"
    token: str = ""
    _logfire_configured: bool = field(default=False, init=False)


_context = TracingContext()


def get_tracing_context() -> TracingContext:
    return _context


def setup_tracing(
    enabled: bool = False,
    service_name: str = "stakewire",
    token: str = "",
) -> TracingContext:
    """Configure Logfire and instrument aiohttp.

    Failure to import or configure Logfire disables tracing with a warning;
    it never stops the pipeline.
    """
    _context.enabled = enabled
    _context.service_name = service_name
    _context.token = token

    if not enabled:
        logger.debug("Tracing disabled")
        return _context

    try:
        import logfire

        logfire.configure(service_name=service_name, token=token or None)
        logfire.instrument_aiohttp_client()
        _context._logfire_configured = True
        logger.info("Logfire tracing enabled | service=%s", service_name)
    except ImportError:
        logger.warning("Logfire not installed. Tracing disabled.")
        _context.enabled = False
    except Exception as e:
        logger.error("Failed to configure Logfire | error=%s", e)
        _context.enabled = False

    return _context


@contextmanager
def trace_operation(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[dict[str, Any], None, None]:
    """Span around an operation.

    Yields a dict; keys added to it during the operation are attached to the
    span on exit.

    Example:
        >>> with trace_operation("fetch_user", {"user_id": "u1"}) as attrs:
        ...     attrs["articles"] = 12
    """
    start = time.perf_counter()
    result_attrs: dict[str, Any] = {}
    try:
        if _context.enabled and _context._logfire_configured:
            import logfire

            with logfire.span(name, **(attributes or {})) as span:
                yield result_attrs
                for key, value in result_attrs.items():
                    span.set_attribute(key, value)
        else:
            yield result_attrs
    finally:
        logger.debug("Operation completed | name=%s duration=%.2fs", name, time.perf_counter() - start)


class BatchTracer:
    """Collects counters for one batch run and traces it as a single span."""

    def __init__(self, context: TracingContext | None = None):
        self.context = context or _context
        self.run_id: str | None = None
        self.stats: dict[str, Any] = {}
        self._start: float | None = None

    @contextmanager
    def trace_run(self, run_id: str, users: int) -> Generator[None, None, None]:
        self.run_id = run_id
        self._start = time.perf_counter()
        self.stats = {"run_id": run_id, "users": users}

        with trace_operation("briefing_batch", {"run_id": run_id, "users": users}) as attrs:
            try:
                yield
            finally:
                self.stats["duration_seconds"] = round(time.perf_counter() - self._start, 3)
                attrs.update(self.stats)

    def record_briefing(self, articles: int, is_fallback: bool) -> None:
        """Tally one finished user briefing."""
        self.stats["briefings"] = self.stats.get("briefings", 0) + 1
        self.stats["articles"] = self.stats.get("articles", 0) + articles
        if is_fallback:
            self.stats["fallbacks"] = self.stats.get("fallbacks", 0) + 1

    def record_cache(self, cache_stats: dict[str, Any]) -> None:
        self.stats["cache_hits"] = cache_stats.get("hits", 0)
        self.stats["cache_misses"] = cache_stats.get("misses", 0)

    def get_summary(self) -> dict[str, Any]:
        return self.stats.copy()
