"""Process-wide counters describing rhyme query outcomes."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Deque, Dict, List, Optional

from .observability import create_counter, create_histogram, get_logger

LATENCY_WINDOW = 5


@dataclass
class TelemetrySnapshot:
    """Point-in-time copy of the tracker counters."""

    requests: int = 0
    cache_hits: int = 0
    errors: int = 0
    last_latency_ms: List[float] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RhymeTelemetry:
    """Counters for request volume, cache hits, errors and recent latencies.

    Futures complete on the worker thread, so every mutation takes the
    internal lock. :meth:`snapshot` always returns a fresh object; mutating it
    never touches tracker state.
    """

    def __init__(self, *, window: int = LATENCY_WINDOW) -> None:
        self._lock = threading.RLock()
        self._window = max(1, int(window))
        self._logger = get_logger(__name__).bind(component="telemetry")
        self._metric_requests = create_counter(
            "rhyme_lines_requests_total",
            "Rhyme suggestion requests answered.",
        )
        self._metric_cache_hits = create_counter(
            "rhyme_lines_cache_hits_total",
            "Rhyme suggestion requests answered from the worker cache.",
        )
        self._metric_errors = create_counter(
            "rhyme_lines_errors_total",
            "Rhyme suggestion requests that failed.",
        )
        self._metric_latency = create_histogram(
            "rhyme_lines_request_latency_seconds",
            "Round-trip latency of rhyme suggestion requests.",
        )
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._requests = 0
            self._cache_hits = 0
            self._errors = 0
            self._latencies: Deque[float] = deque(maxlen=self._window)

    def track_request(self, latency_ms: float) -> None:
        latency = max(0.0, float(latency_ms))
        with self._lock:
            self._requests += 1
            self._latencies.append(latency)
        self._metric_requests.inc()
        self._metric_latency.observe(latency / 1000.0)
        self._logger.debug("Rhyme request tracked", context={"latency_ms": latency})

    def track_cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1
        self._metric_cache_hits.inc()

    def track_error(self) -> None:
        with self._lock:
            self._errors += 1
        self._metric_errors.inc()

    def snapshot(self) -> TelemetrySnapshot:
        with self._lock:
            return TelemetrySnapshot(
                requests=self._requests,
                cache_hits=self._cache_hits,
                errors=self._errors,
                last_latency_ms=list(self._latencies),
            )


_default_tracker: Optional[RhymeTelemetry] = None
_tracker_lock = threading.Lock()


def get_tracker() -> RhymeTelemetry:
    """Return the process-wide tracker, creating it on first use."""

    global _default_tracker
    with _tracker_lock:
        if _default_tracker is None:
            _default_tracker = RhymeTelemetry()
        return _default_tracker


def track_request(latency_ms: float) -> None:
    get_tracker().track_request(latency_ms)


def track_cache_hit() -> None:
    get_tracker().track_cache_hit()


def track_error() -> None:
    get_tracker().track_error()


def get_telemetry() -> TelemetrySnapshot:
    return get_tracker().snapshot()


def reset_telemetry() -> None:
    get_tracker().reset()


__all__ = [
    "LATENCY_WINDOW",
    "RhymeTelemetry",
    "TelemetrySnapshot",
    "get_telemetry",
    "get_tracker",
    "reset_telemetry",
    "track_cache_hit",
    "track_error",
    "track_request",
]
