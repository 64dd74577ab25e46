"""Enum definitions for fleet-stacks."""

from enum import Enum
from typing import Literal, get_args

# Type aliases
ContainerStateLiteral = Literal[
    "running", "restarting", "paused", "created", "exited", "dead", "removing", "unknown"
]
ServiceStateLiteral = Literal["running", "restarting", "stopped", "error"]
StackStatusLiteral = Literal["running", "degraded", "stopped"]
TelemetryStatusLiteral = Literal["info", "warning", "critical"]

CONTAINER_STATES: frozenset[str] = frozenset(get_args(ContainerStateLiteral))


class StackAction(Enum):
    """Lifecycle actions accepted by the stack_action tool."""

    UP = "up"
    DOWN = "down"
    RESTART = "restart"
    PULL = "pull"

    @property
    def verb(self) -> str:
        """Past-tense summary used in the stack's last-action line."""
        return _ACTION_VERBS[self]


_ACTION_VERBS: dict[StackAction, str] = {
    StackAction.UP: "Stack started",
    StackAction.DOWN: "Stack stopped",
    StackAction.RESTART: "Stack restarted",
    StackAction.PULL: "Images pulled",
}
