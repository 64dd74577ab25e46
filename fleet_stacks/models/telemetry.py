"""Telemetry event model emitted after stack actions."""

import uuid
from datetime import UTC, datetime

from pydantic import Field

from ..constants import TELEMETRY_METRIC_STACK_ACTION, TELEMETRY_SOURCE, TELEMETRY_UNIT_CONTAINERS
from .container import FleetModel
from .enums import TelemetryStatusLiteral


class TelemetryEvent(FleetModel):
    """One entry in the dashboard's telemetry timeline."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    source: str = TELEMETRY_SOURCE
    metric: str = TELEMETRY_METRIC_STACK_ACTION
    status: TelemetryStatusLiteral = "info"
    value: float = 0
    unit: str = TELEMETRY_UNIT_CONTAINERS
    message: str
    stack_id: str | None = None
    action: str | None = None
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
