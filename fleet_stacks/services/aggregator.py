"""
Stack Aggregator

Pure functions that turn a container snapshot into operator-facing stacks.
Nothing here talks to the engine or keeps state between calls; every read
re-derives stacks from a freshly fetched snapshot.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ..constants import (
    DOCKER_COMPOSE_CONFIG_FILES,
    DOCKER_COMPOSE_PROJECT,
    DOCKER_COMPOSE_SERVICE,
    DOCKER_COMPOSE_WORKING_DIR,
    STANDALONE_PROJECT,
)
from ..models.container import ContainerRecord
from ..models.enums import ServiceStateLiteral, StackStatusLiteral
from ..models.stack import Service, Stack

_WORD_SEPARATORS = re.compile(r"[-_\s]+")

_CONTAINER_STATE_MAP: dict[str, ServiceStateLiteral] = {
    "running": "running",
    "restarting": "restarting",
    "paused": "stopped",
    "exited": "stopped",
    "dead": "stopped",
    "created": "stopped",
}


@dataclass(frozen=True)
class ComposeProject:
    """Container owned by a compose project label."""

    name: str

    @property
    def key(self) -> str:
        return self.name

    @property
    def display_source(self) -> str:
        return self.name


@dataclass(frozen=True)
class Standalone:
    """Container without an ownership label; always its own singleton stack."""

    container_id: str
    container_name: str

    @property
    def key(self) -> str:
        return self.container_id

    @property
    def display_source(self) -> str:
        return self.container_name or self.container_id[:12]


Ownership = ComposeProject | Standalone


@dataclass
class StackGroup:
    """A derived stack together with the containers it was built from."""

    stack: Stack
    containers: list[ContainerRecord] = field(default_factory=list)

    def containers_by_service(self) -> list[tuple[str, ContainerRecord]]:
        """Member containers paired with their service name, in service order."""
        order = {name: index for index, name in enumerate(self.stack.service_names())}
        pairs = [(resolve_service_name(container), container) for container in self.containers]
        return sorted(pairs, key=lambda pair: order.get(pair[0], len(order)))


def resolve_ownership(container: ContainerRecord) -> Ownership:
    project = container.label(DOCKER_COMPOSE_PROJECT)
    if project:
        return ComposeProject(name=project)
    return Standalone(container_id=container.id, container_name=container.display_name)


def resolve_service_name(container: ContainerRecord) -> str:
    """Service label, else sanitized display name, else truncated id."""
    return container.label(DOCKER_COMPOSE_SERVICE) or container.display_name or container.short_id


def humanize_name(key: str) -> str:
    """``papem-core`` -> ``Papem Core``."""
    words = [word for word in _WORD_SEPARATORS.split(key) if word]
    if not words:
        return key
    return " ".join(word.capitalize() for word in words)


def map_container_state(state: str) -> ServiceStateLiteral:
    return _CONTAINER_STATE_MAP.get(state, "error")


def fold_service_state(states: Iterable[ServiceStateLiteral]) -> ServiceStateLiteral:
    """All running -> running, all stopped -> stopped, any restarting -> restarting, else error."""
    collected = list(states)
    if not collected:
        return "stopped"
    if all(state == "running" for state in collected):
        return "running"
    if all(state == "stopped" for state in collected):
        return "stopped"
    if any(state == "restarting" for state in collected):
        return "restarting"
    return "error"


def derive_stack_status(services: Sequence[Service]) -> StackStatusLiteral:
    if not services:
        return "stopped"
    if all(service.state == "running" for service in services):
        return "running"
    if all(service.state == "stopped" for service in services):
        return "stopped"
    return "degraded"


def build_service(name: str, containers: Sequence[ContainerRecord]) -> Service:
    """Fold the containers of one service into a Service summary."""
    # Most recently created last; snapshot order breaks ties
    by_age = [c for _, c in sorted(enumerate(containers), key=lambda p: (p[1].created, p[0]))]
    image = next((c.image for c in reversed(by_age) if c.image), "")
    last_event = next((c.status for c in reversed(by_age) if c.status), "")

    ports = sorted(
        {rendered for c in containers for binding in c.ports if (rendered := binding.render())}
    )

    return Service(
        name=name,
        image=image,
        replicas=len(containers),
        state=fold_service_state(map_container_state(c.state) for c in containers),
        ports=ports,
        last_event=last_event,
    )


def _stack_path(primary: ContainerRecord) -> str:
    config_files = primary.label(DOCKER_COMPOSE_CONFIG_FILES)
    if config_files:
        first = config_files.split(",")[0].strip()
        if first:
            return first
    return (
        primary.label(DOCKER_COMPOSE_WORKING_DIR) or primary.display_name or primary.short_id
    )


def build_stack(
    ownership: Ownership, containers: Sequence[ContainerRecord], observed_at: datetime
) -> Stack:
    by_service: dict[str, list[ContainerRecord]] = {}
    for container in containers:
        by_service.setdefault(resolve_service_name(container), []).append(container)

    services = sorted(
        (build_service(name, members) for name, members in by_service.items()),
        key=lambda service: service.name,
    )

    if isinstance(ownership, ComposeProject):
        project_name = ownership.name
    else:
        project_name = STANDALONE_PROJECT

    return Stack(
        id=ownership.key,
        name=humanize_name(ownership.display_source),
        project_name=project_name,
        path=_stack_path(containers[0]) if containers else "",
        status=derive_stack_status(services),
        observed_at=observed_at,
        services=services,
    )


def group_containers(
    containers: Iterable[ContainerRecord], observed_at: datetime | None = None
) -> dict[str, StackGroup]:
    """Group a snapshot into stacks keyed by stack id, in first-seen order."""
    observed_at = observed_at or datetime.now(UTC)

    owners: dict[str, Ownership] = {}
    members: dict[str, list[ContainerRecord]] = {}
    for container in containers:
        ownership = resolve_ownership(container)
        owners.setdefault(ownership.key, ownership)
        members.setdefault(ownership.key, []).append(container)

    return {
        key: StackGroup(
            stack=build_stack(owners[key], group, observed_at),
            containers=group,
        )
        for key, group in members.items()
    }


def aggregate(
    containers: Iterable[ContainerRecord], observed_at: datetime | None = None
) -> list[Stack]:
    """Derive all stacks from a snapshot, sorted by display name then id."""
    groups = group_containers(containers, observed_at)
    return sorted(
        (group.stack for group in groups.values()),
        key=lambda stack: (stack.name.lower(), stack.id),
    )
