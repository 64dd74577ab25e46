"""Stack, service and action models derived from container snapshots."""

from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_validator

from .container import FleetModel
from .enums import ServiceStateLiteral, StackAction, StackStatusLiteral


class Service(FleetModel):
    """A named role within a stack, folded from one or more containers."""

    name: str
    image: str = ""
    replicas: int = Field(default=1, ge=1)
    state: ServiceStateLiteral
    ports: list[str] = Field(default_factory=list)
    last_event: str = ""


class Stack(FleetModel):
    """Operator-facing group of containers from one deployment unit."""

    id: str
    name: str
    project_name: str
    path: str
    status: StackStatusLiteral
    observed_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the underlying engine snapshot was taken",
    )
    services: list[Service] = Field(default_factory=list)
    last_action: str | None = None

    def service_names(self) -> list[str]:
        return [service.name for service in self.services]


class ActionRequest(FleetModel):
    """Lifecycle action against a stack, optionally narrowed to some services."""

    action: StackAction
    services: list[str] | None = Field(
        default=None, description="Case-insensitive service filters; empty means all services"
    )

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("services", mode="before")
    @classmethod
    def normalize_services(cls, v: Any) -> Any:
        """Drop blank and repeated names; collapse an empty selection to ``None``.

        Names compare case-insensitively and the first spelling is kept.
        """
        if v is None:
            return None
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, list | tuple):
            return v
        cleaned: list[str] = []
        seen: set[str] = set()
        for name in v:
            if not isinstance(name, str) or not name.strip():
                continue
            key = name.strip().casefold()
            if key not in seen:
                seen.add(key)
                cleaned.append(name.strip())
        return cleaned or None

    @property
    def is_targeted(self) -> bool:
        return bool(self.services)


class ActionOutcome(FleetModel):
    """Result of a completed stack action."""

    stack: Stack
    containers_affected: int = Field(ge=0)
    description: str


class StackNotFound(FleetModel):
    """Returned (not raised) when a stack or its requested services cannot be resolved."""

    stack_id: str
    services: list[str] | None = None
    reason: str = "stack not found"
