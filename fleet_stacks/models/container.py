"""Container-related data models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import SHORT_ID_LENGTH
from .enums import CONTAINER_STATES, ContainerStateLiteral


class FleetModel(BaseModel):
    """Base model with common fleet-stacks settings."""

    def model_dump(self, **kwargs) -> dict[str, Any]:
        """Convert to dict with exclude_none by default."""
        kwargs.setdefault("exclude_none", True)
        return super().model_dump(**kwargs)


class PortBinding(FleetModel):
    """One declared port of a container as reported by the engine."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    container_port: int | None = Field(default=None, alias="PrivatePort")
    host_port: int | None = Field(default=None, alias="PublicPort")
    transport: str = Field(default="tcp", alias="Type")
    host_ip: str | None = Field(default=None, alias="IP")

    @field_validator("transport", mode="before")
    @classmethod
    def default_transport(cls, v: str | None) -> str:
        """Engines omit the type for some port entries."""
        return v or "tcp"

    def render(self) -> str | None:
        """Render as ``{hostPort:}{containerPort}/{transport}``; None without a container port."""
        if self.container_port is None:
            return None
        if self.host_port:
            return f"{self.host_port}:{self.container_port}/{self.transport}"
        return f"{self.container_port}/{self.transport}"


class ContainerRecord(FleetModel):
    """Engine-reported snapshot of one container (``GET /containers/json`` entry)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: str = Field(alias="Id", min_length=1)
    names: list[str] = Field(default_factory=list, alias="Names")
    image: str = Field(default="", alias="Image")
    state: ContainerStateLiteral = Field(default="unknown", alias="State")
    status: str = Field(default="", alias="Status")
    labels: dict[str, str] = Field(default_factory=dict, alias="Labels")
    ports: list[PortBinding] = Field(default_factory=list, alias="Ports")
    created: int = Field(default=0, alias="Created")

    @field_validator("names", "ports", mode="before")
    @classmethod
    def null_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("labels", mode="before")
    @classmethod
    def null_labels(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("image", "status", mode="before")
    @classmethod
    def null_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("state", mode="before")
    @classmethod
    def normalize_state(cls, v: Any) -> str:
        """Coerce states outside the known vocabulary to ``unknown``."""
        if not isinstance(v, str):
            return "unknown"
        state = v.strip().lower()
        return state if state in CONTAINER_STATES else "unknown"

    @property
    def short_id(self) -> str:
        return self.id[:SHORT_ID_LENGTH]

    @property
    def display_name(self) -> str:
        """Primary name without the engine's leading slash, or '' if unnamed."""
        for name in self.names:
            cleaned = name.strip().lstrip("/")
            if cleaned:
                return cleaned
        return ""

    def label(self, key: str) -> str | None:
        """Return a label value, treating empty values as absent."""
        value = self.labels.get(key)
        return value if value else None
