import logging

from rhyme_lines.utils.logging_config import configure_logging
from rhyme_lines.utils.observability import create_counter, create_histogram, get_logger
from rhyme_lines.utils.telemetry import (
    RhymeTelemetry,
    get_telemetry,
    reset_telemetry,
    track_cache_hit,
    track_request,
)


def test_latency_window_keeps_last_five(telemetry):
    for latency in [1, 2, 3, 4, 5, 6, 7]:
        telemetry.track_request(latency)

    snapshot = telemetry.snapshot()
    assert snapshot.last_latency_ms == [3, 4, 5, 6, 7]
    assert snapshot.requests == 7

    telemetry.track_cache_hit()
    snapshot = telemetry.snapshot()
    assert snapshot.cache_hits == 1
    assert snapshot.requests == 7


def test_snapshot_is_a_defensive_copy(telemetry):
    telemetry.track_request(10)

    snapshot = telemetry.snapshot()
    snapshot.last_latency_ms.append(99)
    snapshot.requests = 100

    fresh = telemetry.snapshot()
    assert fresh.last_latency_ms == [10]
    assert fresh.requests == 1


def test_errors_and_reset(telemetry):
    telemetry.track_error()
    telemetry.track_error()
    assert telemetry.snapshot().errors == 2

    telemetry.reset()
    assert telemetry.snapshot().as_dict() == {
        "requests": 0,
        "cache_hits": 0,
        "errors": 0,
        "last_latency_ms": [],
    }


def test_negative_latency_is_clamped(telemetry):
    telemetry.track_request(-5)

    assert telemetry.snapshot().last_latency_ms == [0.0]


def test_process_wide_tracker_helpers():
    reset_telemetry()

    track_request(12.5)
    track_cache_hit()

    snapshot = get_telemetry()
    assert snapshot.requests == 1
    assert snapshot.cache_hits == 1
    assert snapshot.last_latency_ms == [12.5]
    reset_telemetry()


def test_trackers_share_metric_registrations():
    first = RhymeTelemetry()
    second = RhymeTelemetry()

    first.track_request(1)
    second.track_request(2)

    assert first.snapshot().requests == 1
    assert second.snapshot().requests == 1


def test_duplicate_metric_names_are_reused():
    counter = create_counter("rhyme_lines_test_events_total", "Test events.")
    again = create_counter("rhyme_lines_test_events_total", "Test events.")
    histogram = create_histogram("rhyme_lines_test_seconds", "Test timings.")
    histogram_again = create_histogram("rhyme_lines_test_seconds", "Test timings.")

    counter.inc()
    again.inc()
    histogram.observe(0.5)
    with histogram_again.time():
        pass


def test_structured_logger_renders_bound_context(caplog):
    caplog.set_level(logging.INFO, logger="rhyme_lines.tests")
    logger = get_logger("rhyme_lines.tests").bind(component="probe")

    logger.info("Rhyme lookup", context={"target": "time", "count": 3})

    messages = [record.getMessage() for record in caplog.records]
    assert any(
        'Rhyme lookup | {"component": "probe", "count": 3, "target": "time"}' in message
        for message in messages
    )


def test_configure_logging_applies_package_level(monkeypatch):
    monkeypatch.setenv("RHYME_LINES_LOG_LEVEL", "debug")

    configure_logging(force=True)

    assert logging.getLogger("rhyme_lines").level == logging.DEBUG
    configure_logging("INFO", force=True)
    assert logging.getLogger("rhyme_lines").level == logging.INFO
