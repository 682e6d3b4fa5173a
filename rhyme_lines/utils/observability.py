"""Structured logging, Prometheus metrics and OpenTelemetry spans for rhyme_lines.

Every component logs through :func:`get_logger` with a bound ``component``
name, so a log line reads ``message | {"component": "rhyme_worker", ...}``.
Metric handles tolerate repeated registration because telemetry trackers and
workers are created more than once per process (tests, client restarts).
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, Mapping, Optional

from opentelemetry import trace as otel_trace
from prometheus_client import REGISTRY, Counter, Histogram

TRACER_NAME = "rhyme_lines"


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that appends bound and per-call context as sorted JSON."""

    def bind(self, **context: Any) -> "StructuredLoggerAdapter":
        return StructuredLoggerAdapter(self.logger, {**self.extra, **context})

    def process(self, msg: str, kwargs: Dict[str, Any]):
        context = {**self.extra, **(kwargs.pop("context", None) or {})}
        if not context:
            return msg, kwargs
        return f"{msg} | {_render_context(context)}", kwargs


def _render_context(context: Mapping[Any, Any]) -> str:
    try:
        return json.dumps(context, sort_keys=True, default=str)
    except TypeError:
        # Mixed key types cannot be sorted.
        return json.dumps({str(key): str(value) for key, value in context.items()}, sort_keys=True)


def get_logger(name: str, **context: Any) -> StructuredLoggerAdapter:
    return StructuredLoggerAdapter(logging.getLogger(name), context)


class MetricHandle:
    """Holds a registered Prometheus collector; a ``None`` collector is inert."""

    def __init__(self, collector: Any = None) -> None:
        self.collector = collector


class CounterHandle(MetricHandle):
    def inc(self, amount: float = 1.0) -> None:
        if self.collector is not None:
            self.collector.inc(amount)


class HistogramHandle(MetricHandle):
    def observe(self, value: float) -> None:
        if self.collector is not None:
            self.collector.observe(value)

    @contextmanager
    def time(self) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            self.observe(time.perf_counter() - started)


def _registered_collector(name: str) -> Any:
    # Counters are indexed under both ``name`` and ``name_total``.
    collectors = getattr(REGISTRY, "_names_to_collectors", {})
    return collectors.get(name) or collectors.get(f"{name}_total")


def _register(
    factory: Callable[..., Any],
    name: str,
    documentation: str,
    label_names: Optional[Iterable[str]],
) -> Any:
    try:
        return factory(name, documentation, labelnames=tuple(label_names or ()))
    except ValueError:
        return _registered_collector(name)


def create_counter(
    name: str,
    documentation: str,
    label_names: Optional[Iterable[str]] = None,
) -> CounterHandle:
    return CounterHandle(_register(Counter, name, documentation, label_names))


def create_histogram(
    name: str,
    documentation: str,
    label_names: Optional[Iterable[str]] = None,
) -> HistogramHandle:
    return HistogramHandle(_register(Histogram, name, documentation, label_names))


@contextmanager
def start_span(name: str, attributes: Optional[Dict[str, Any]] = None):
    """Run the block inside a span of the ``rhyme_lines`` tracer."""

    tracer = otel_trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(name) as span:
        add_span_attributes(span, attributes or {})
        yield span


def add_span_attributes(span: Any, attributes: Mapping[str, Any]) -> None:
    if span is None:
        return
    for key, value in attributes.items():
        if isinstance(key, str) and value is not None:
            span.set_attribute(key, value)


def record_exception(span: Any, error: BaseException) -> None:
    if span is None:
        return
    span.record_exception(error)
    span.set_attribute("error", True)


__all__ = [
    "TRACER_NAME",
    "StructuredLoggerAdapter",
    "get_logger",
    "MetricHandle",
    "CounterHandle",
    "HistogramHandle",
    "create_counter",
    "create_histogram",
    "start_span",
    "add_span_attributes",
    "record_exception",
]
