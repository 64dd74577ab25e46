"""
fleet-stacks Services

Service layer for stack aggregation, action dispatch and the orchestration facade.
"""

from .dispatcher import ActionDispatcher  # noqa: F401
from .orchestration import OrchestrationService  # noqa: F401
from .telemetry import (  # noqa: F401
    FanOutTelemetrySink,
    InMemoryTelemetrySink,
    LoggingTelemetrySink,
    TelemetrySink,
)

__all__ = [
    "ActionDispatcher",
    "OrchestrationService",
    "FanOutTelemetrySink",
    "InMemoryTelemetrySink",
    "LoggingTelemetrySink",
    "TelemetrySink",
]
