"""Telemetry sinks for cache events.

The coordinator reports two things per build: a counter for the resolved
cache status, and the duration of the install phase tagged by that status.
Shipping the numbers somewhere is the host pipeline's job; it passes any
object with increment/timing methods.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Protocol

logger = logging.getLogger(__name__)

CACHE_STATUS_METRIC = "cache.status"
INSTALL_DURATION_METRIC = "cache.install_duration"


class TelemetrySink(Protocol):
    """Receiver for cache metrics."""

    def increment(self, metric: str, tags: dict[str, str]) -> None: ...

    def timing(self, metric: str, seconds: float, tags: dict[str, str]) -> None: ...


class NullTelemetrySink:
    """Discards everything."""

    def increment(self, metric: str, tags: dict[str, str]) -> None:
        pass

    def timing(self, metric: str, seconds: float, tags: dict[str, str]) -> None:
        pass


class LoggingTelemetrySink:
    """Writes metrics to the log at debug level."""

    def increment(self, metric: str, tags: dict[str, str]) -> None:
        logger.debug(f"metric {metric} +1 {tags}")

    def timing(self, metric: str, seconds: float, tags: dict[str, str]) -> None:
        logger.debug(f"metric {metric} {seconds:.3f}s {tags}")


@dataclass
class TelemetryEvent:
    """One recorded metric."""

    kind: str  # 'increment' or 'timing'
    metric: str
    tags: dict[str, str]
    value: float = 1.0


@dataclass
class RecordingTelemetrySink:
    """Keeps events in memory so the host can flush them later."""

    events: list[TelemetryEvent] = field(default_factory=list)

    def increment(self, metric: str, tags: dict[str, str]) -> None:
        self.events.append(TelemetryEvent(kind="increment", metric=metric, tags=dict(tags)))

    def timing(self, metric: str, seconds: float, tags: dict[str, str]) -> None:
        self.events.append(TelemetryEvent(kind="timing", metric=metric, tags=dict(tags), value=seconds))

    def counters(self, metric: str) -> list[dict[str, str]]:
        """Tags of every increment recorded for a metric."""
        return [e.tags for e in self.events if e.kind == "increment" and e.metric == metric]

    def timings(self, metric: str) -> list[TelemetryEvent]:
        return [e for e in self.events if e.kind == "timing" and e.metric == metric]
