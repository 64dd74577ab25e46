"""Data models for fleet-stacks."""

from .container import (  # noqa: F401
    ContainerRecord,
    FleetModel,
    PortBinding,
)
from .enums import StackAction  # noqa: F401
from .stack import (  # noqa: F401
    ActionOutcome,
    ActionRequest,
    Service,
    Stack,
    StackNotFound,
)
from .telemetry import TelemetryEvent  # noqa: F401

__all__ = [
    # Container models
    "ContainerRecord",
    "FleetModel",
    "PortBinding",
    # Stack models
    "ActionOutcome",
    "ActionRequest",
    "Service",
    "Stack",
    "StackAction",
    "StackNotFound",
    # Telemetry
    "TelemetryEvent",
]
