"""Logging, tracing and metrics for database operations."""

from __future__ import annotations

import bisect
import enum
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable

TRACER_NAME = "ormkit"
METER_NAME = "ormkit"
DURATION_BUCKETS_MS: tuple[float, ...] = (1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000)
DEFAULT_SLOW_QUERY_THRESHOLD = 0.2


class StatusCode(enum.Enum):
    """Outcome recorded on a span."""

    UNSET = "unset"
    OK = "ok"
    ERROR = "error"


@dataclass(eq=False)
class Span:
    """A timed unit of work with attributes, errors and a status."""

    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    status_code: StatusCode = StatusCode.UNSET
    status_description: str = ""
    errors: list[BaseException] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)
    end_time: float | None = None

    def end(self) -> None:
        """Mark the span finished; later calls have no effect."""
        if self.end_time is None:
            self.end_time = time.monotonic()

    def record_error(self, error: BaseException) -> None:
        """Attach an error to the span."""
        self.errors.append(error)

    def set_status(self, code: StatusCode, description: str = "") -> None:
        """Set the span's outcome."""
        self.status_code = code
        self.status_description = description

    def set_attributes(self, **kwargs: Any) -> None:
        """Add or replace attributes."""
        self.attributes.update(kwargs)

    def __enter__(self) -> Span:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is not None:
            self.record_error(exc)
            self.set_status(StatusCode.ERROR, str(exc))
        self.end()


class _NoopSpan(Span):
    """A span that records nothing, used when tracing is off."""

    def end(self) -> None:
        pass

    def record_error(self, error: BaseException) -> None:
        pass

    def set_status(self, code: StatusCode, description: str = "") -> None:
        pass

    def set_attributes(self, **kwargs: Any) -> None:
        pass


@dataclass(eq=False)
class Tracer:
    """Creates spans and keeps every span it started."""

    name: str = TRACER_NAME
    spans: list[Span] = field(default_factory=list)

    def start(self, name: str) -> Span:
        """Start and return a new span."""
        span = Span(name)
        self.spans.append(span)
        return span


@dataclass(eq=False)
class Metrics:
    """Query counters and a duration histogram, keyed by (operation, system)."""

    query_count: Counter = field(default_factory=Counter)
    query_errors: Counter = field(default_factory=Counter)
    query_durations: dict[tuple[str, str], list[float]] = field(default_factory=dict)
    duration_buckets: dict[tuple[str, str], list[int]] = field(default_factory=dict)

    def record(
        self, operation: str, system: str, duration: float, error: BaseException | None
    ) -> None:
        """Count one query taking ``duration`` seconds, and its error if any."""
        key = (operation, system)
        self.query_count[key] += 1
        milliseconds = float(int(duration * 1000))
        self.query_durations.setdefault(key, []).append(milliseconds)
        buckets = self.duration_buckets.setdefault(key, [0] * (len(DURATION_BUCKETS_MS) + 1))
        buckets[bisect.bisect_left(DURATION_BUCKETS_MS, milliseconds)] += 1
        if error is not None:
            self.query_errors[key] += 1


_GLOBAL_TRACER = Tracer(TRACER_NAME)
_GLOBAL_METRICS = Metrics()


def _format_duration(seconds: float) -> str:
    return f"{seconds * 1000:.3f}ms"


@dataclass(eq=False)
class ObservabilityConfig:
    """Logging, tracing and metrics settings of a session."""

    logger: logging.Logger | None = None
    tracer: Tracer | None = None
    metrics: Metrics | None = None
    slow_query_threshold: float = DEFAULT_SLOW_QUERY_THRESHOLD
    log_queries: bool = False

    def start_span(self, name: str) -> Span:
        """Start a span when tracing is on; otherwise return one that records nothing."""
        if self.tracer is None:
            return _NoopSpan(name)
        return self.tracer.start(name)

    def record_metrics(
        self, operation: str, system: str, duration: float, error: BaseException | None
    ) -> None:
        """Record query metrics when metrics are on."""
        if self.metrics is not None:
            self.metrics.record(operation, system, duration, error)

    def log_query(
        self, operation: str, query: str, duration: float, error: BaseException | None
    ) -> None:
        """Log a failed or slow query, or any query when query logging is on."""
        if self.logger is None:
            return
        attrs = [f"operation={operation}", f"duration={_format_duration(duration)}"]
        if self.log_queries:
            attrs.append(f"query={query!r}")
        if error is not None:
            attrs.append(f"error={str(error)!r}")
            self.logger.error("query failed %s", " ".join(attrs))
            return
        if duration > self.slow_query_threshold:
            self.logger.warning("slow query %s", " ".join(attrs))
            return
        if self.log_queries:
            self.logger.debug("query executed %s", " ".join(attrs))


SessionOption = Callable[[ObservabilityConfig], None]


def with_logger(logger: logging.Logger) -> SessionOption:
    """Log queries through the given logger."""

    def apply(config: ObservabilityConfig) -> None:
        config.logger = logger

    return apply


def with_tracer(tracer: Tracer) -> SessionOption:
    """Trace queries with the given tracer."""

    def apply(config: ObservabilityConfig) -> None:
        config.tracer = tracer

    return apply


def with_default_tracer() -> SessionOption:
    """Trace queries with the process-wide tracer."""

    def apply(config: ObservabilityConfig) -> None:
        config.tracer = _GLOBAL_TRACER

    return apply


def with_meter(metrics: Metrics) -> SessionOption:
    """Record query metrics into the given instruments."""

    def apply(config: ObservabilityConfig) -> None:
        config.metrics = metrics

    return apply


def with_default_meter() -> SessionOption:
    """Record query metrics into the process-wide instruments."""

    def apply(config: ObservabilityConfig) -> None:
        config.metrics = _GLOBAL_METRICS

    return apply


def with_slow_query_threshold(seconds: float) -> SessionOption:
    """Warn about queries taking longer than ``seconds``."""

    def apply(config: ObservabilityConfig) -> None:
        config.slow_query_threshold = seconds

    return apply


def with_query_logging(enabled: bool) -> SessionOption:
    """Log every query, with its SQL text, when enabled."""

    def apply(config: ObservabilityConfig) -> None:
        config.log_queries = enabled

    return apply