"""Tests for processing instrumentation."""

from __future__ import annotations

import logging

import pytest

from offshoot.core.instrumentation import Instrumenter, ProcessingEvent, log_subscriber


class TestInstrumenter:
    def test_no_subscribers_is_noop(self):
        instrumenter = Instrumenter()
        with instrumenter.instrument("thumbs", {"width": 10}):
            pass

    def test_publishes_event(self):
        instrumenter = Instrumenter()
        events: list[ProcessingEvent] = []
        instrumenter.subscribe(events.append)

        with instrumenter.instrument("thumbs", {"width": 10}, resource="photo"):
            pass

        assert len(events) == 1
        event = events[0]
        assert event.processor == "thumbs"
        assert event.processor_options == {"width": 10}
        assert event.resource == "photo"
        assert event.duration_ms >= 0
        assert event.failed is False

    def test_publishes_on_failure_and_reraises(self):
        instrumenter = Instrumenter()
        events: list[ProcessingEvent] = []
        instrumenter.subscribe(events.append)

        with pytest.raises(RuntimeError):
            with instrumenter.instrument("thumbs"):
                raise RuntimeError("boom")

        assert events[0].failed is True

    def test_failing_subscriber_does_not_block_others(self):
        instrumenter = Instrumenter()
        events: list[ProcessingEvent] = []

        def broken(event):
            raise ValueError("subscriber bug")

        instrumenter.subscribe(broken)
        instrumenter.subscribe(events.append)

        with instrumenter.instrument("thumbs"):
            pass

        assert len(events) == 1

    def test_duplicate_subscription_ignored(self):
        instrumenter = Instrumenter()
        instrumenter.subscribe(log_subscriber)
        instrumenter.subscribe(log_subscriber)
        assert instrumenter.subscribers == [log_subscriber]

    def test_unsubscribe(self):
        instrumenter = Instrumenter()
        instrumenter.subscribe(log_subscriber)
        instrumenter.unsubscribe(log_subscriber)
        instrumenter.unsubscribe(log_subscriber)
        assert instrumenter.subscribers == []


class TestLogSubscriber:
    def test_logs_processor_run(self, caplog):
        event = ProcessingEvent(processor="thumbs", processor_options={"w": 1}, duration_ms=12.4)
        with caplog.at_level(logging.INFO, logger="offshoot.core.instrumentation"):
            log_subscriber(event)
        assert "Derivatives (12ms) - " in caplog.text
        assert "thumbs" in caplog.text
