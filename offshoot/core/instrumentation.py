"""Processing instrumentation — fans processor timings out to subscribers.

Every processor run produces one ``ProcessingEvent``. Subscribers are
plain callables. With no subscribers publishing is a no-op, and a failing
subscriber is logged without affecting the others or the caller.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ProcessingEvent(BaseModel):
    """Immutable record of a single processor run."""

    model_config = ConfigDict(frozen=True)

    processor: str
    processor_options: dict[str, Any] = Field(default_factory=dict)
    resource: str = ""
    duration_ms: float
    failed: bool = False
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


Subscriber = Callable[[ProcessingEvent], None]


def log_subscriber(event: ProcessingEvent) -> None:
    """Default subscriber: one INFO line per processor run."""
    logger.info(
        "Derivatives (%dms) - %r",
        round(event.duration_ms),
        {
            "processor": event.processor,
            "processor_options": event.processor_options,
            "resource": event.resource,
        },
    )


class Instrumenter:
    """Publishes ``ProcessingEvent`` records to registered subscribers.

    Subscribers are called in registration order.  Duplicate registration
    of the same callable is ignored.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    # ------------------------------------------------------------------
    # Subscriber management
    # ------------------------------------------------------------------

    def subscribe(self, subscriber: Subscriber) -> Subscriber:
        """Register *subscriber*; returns it so this works as a decorator."""
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        try:
            self._subscribers.remove(subscriber)
        except ValueError:
            pass

    @property
    def subscribers(self) -> list[Subscriber]:
        """Return a copy of the subscriber list."""
        return list(self._subscribers)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    @contextmanager
    def instrument(
        self,
        processor: str,
        processor_options: Mapping[str, Any] | None = None,
        *,
        resource: str = "",
    ) -> Iterator[None]:
        """Time the enclosed block and publish one event when it exits.

        The event is published on failure too (``failed=True``); the
        exception itself always propagates.
        """
        if not self._subscribers:
            yield
            return

        started = time.perf_counter()
        failed = True
        try:
            yield
            failed = False
        finally:
            self.publish(
                ProcessingEvent(
                    processor=processor,
                    processor_options=dict(processor_options or {}),
                    resource=resource,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    failed=failed,
                )
            )

    def publish(self, event: ProcessingEvent) -> None:
        for subscriber in self.subscribers:
            try:
                subscriber(event)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Instrumentation subscriber %r failed for processor %s: %s",
                    subscriber,
                    event.processor,
                    exc,
                )
