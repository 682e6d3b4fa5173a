"""Utility helpers shared across the :mod:`rhyme_lines` package."""

from __future__ import annotations

from .logging_config import configure_logging
from .observability import (
    StructuredLoggerAdapter,
    add_span_attributes,
    create_counter,
    create_histogram,
    get_logger,
    record_exception,
    start_span,
)
from .telemetry import (
    RhymeTelemetry,
    TelemetrySnapshot,
    get_telemetry,
    reset_telemetry,
    track_cache_hit,
    track_error,
    track_request,
)

__all__ = [
    "configure_logging",
    "StructuredLoggerAdapter",
    "add_span_attributes",
    "create_counter",
    "create_histogram",
    "get_logger",
    "record_exception",
    "start_span",
    "RhymeTelemetry",
    "TelemetrySnapshot",
    "get_telemetry",
    "reset_telemetry",
    "track_cache_hit",
    "track_error",
    "track_request",
]
