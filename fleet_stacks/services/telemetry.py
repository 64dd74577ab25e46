"""
Telemetry sinks

The dashboard's telemetry log is an external collaborator; orchestration only
hands it "an action happened" events. A sink is anything with a
``record(event)`` method, synchronous or async.
"""

from collections import deque
from collections.abc import Awaitable
from typing import Protocol

import structlog

from ..constants import DEFAULT_TELEMETRY_LIMIT
from ..models.telemetry import TelemetryEvent


class TelemetrySink(Protocol):
    """Destination for telemetry events."""

    def record(self, event: TelemetryEvent) -> None | Awaitable[None]: ...


class InMemoryTelemetrySink:
    """Bounded in-process event log, newest events returned first."""

    def __init__(self, max_events: int = 500):
        self._events: deque[TelemetryEvent] = deque(maxlen=max_events)

    def record(self, event: TelemetryEvent) -> None:
        self._events.append(event)

    def recent(self, limit: int = DEFAULT_TELEMETRY_LIMIT) -> list[TelemetryEvent]:
        if limit <= 0:
            return []
        return list(reversed(self._events))[:limit]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


class LoggingTelemetrySink:
    """Writes each event to the structured log."""

    def __init__(self, logger_name: str = "server"):
        self.logger = structlog.get_logger(logger_name)

    def record(self, event: TelemetryEvent) -> None:
        log = self.logger.warning if event.status != "info" else self.logger.info
        log(
            "Telemetry event",
            event_id=event.id,
            metric=event.metric,
            status=event.status,
            stack_id=event.stack_id,
            action=event.action,
            value=event.value,
            unit=event.unit,
            message=event.message,
        )


class FanOutTelemetrySink:
    """Forwards every event to several sinks in order."""

    def __init__(self, *sinks: TelemetrySink):
        self.sinks = list(sinks)

    async def record(self, event: TelemetryEvent) -> None:
        for sink in self.sinks:
            result = sink.record(event)
            if isinstance(result, Awaitable):
                await result
