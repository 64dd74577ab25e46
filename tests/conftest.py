"""Shared pytest fixtures for fleet-stacks tests."""

import asyncio
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
from fastmcp import Client

from fleet_stacks.constants import (
    DOCKER_COMPOSE_CONFIG_FILES,
    DOCKER_COMPOSE_PROJECT,
    DOCKER_COMPOSE_SERVICE,
)
from fleet_stacks.core.exceptions import EngineUnavailable
from fleet_stacks.core.settings import EngineSettings, ServerSettings
from fleet_stacks.middleware import ErrorHandlingMiddleware, LoggingMiddleware, TimingMiddleware
from fleet_stacks.models.container import ContainerRecord
from fleet_stacks.server import FleetStacksServer
from fleet_stacks.services import InMemoryTelemetrySink, OrchestrationService


def container_payload(
    container_id: str,
    *,
    name: str | None = None,
    project: str | None = None,
    service: str | None = None,
    image: str = "nginx:1.25",
    state: str = "running",
    status: str | None = None,
    ports: list[dict[str, Any]] | None = None,
    created: int = 1_700_000_000,
    config_files: str | None = None,
    labels: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Build a ``GET /containers/json`` entry the way the engine reports it."""
    all_labels = dict(labels or {})
    if project:
        all_labels[DOCKER_COMPOSE_PROJECT] = project
    if service:
        all_labels[DOCKER_COMPOSE_SERVICE] = service
    if config_files:
        all_labels[DOCKER_COMPOSE_CONFIG_FILES] = config_files
    return {
        "Id": container_id,
        "Names": [f"/{name}"] if name else [],
        "Image": image,
        "State": state,
        "Status": status if status is not None else ("Up 2 hours" if state == "running" else ""),
        "Labels": all_labels,
        "Ports": ports or [],
        "Created": created,
    }


class FakeEngine:
    """In-memory stand-in for EngineClient that mutates container states."""

    def __init__(self, settings: EngineSettings, payloads: list[dict[str, Any]] | None = None):
        self.settings = settings
        self.available = True
        self.containers: list[ContainerRecord] = [
            ContainerRecord.model_validate(payload) for payload in payloads or []
        ]
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []
        self.list_calls = 0

    @property
    def socket_path(self) -> str:
        return self.settings.docker_socket

    def ensure_available(self) -> None:
        if not self.available:
            raise EngineUnavailable(
                f"Docker socket not found at {self.socket_path}", socket_path=self.socket_path
            )

    async def is_available(self) -> bool:
        return self.available

    async def list_containers(self) -> list[ContainerRecord]:
        self.ensure_available()
        self.list_calls += 1
        return list(self.containers)

    async def start(self, container_id: str) -> None:
        self._mutate("start", container_id, state="running", status="Up 1 second")

    async def stop(self, container_id: str) -> None:
        self._mutate("stop", container_id, state="exited", status="Exited (0) 1 second ago")

    async def restart(self, container_id: str) -> None:
        self._mutate("restart", container_id, state="running", status="Up 1 second")

    async def pull_image(self, image: str) -> None:
        self.calls.append(("pull", image))
        if image in self.failures:
            raise self.failures[image]

    def close(self) -> None:
        pass

    def state_of(self, container_id: str) -> str:
        return next(c.state for c in self.containers if c.id == container_id)

    def _mutate(self, operation: str, container_id: str, **update: Any) -> None:
        self.calls.append((operation, container_id))
        if container_id in self.failures:
            raise self.failures[container_id]
        self.containers = [
            c.model_copy(update=update) if c.id == container_id else c for c in self.containers
        ]


class MockCall:
    """Mock call_next function for middleware testing."""

    def __init__(self, return_value=None, exception=None, delay=0):
        self.return_value = return_value or {"status": "success"}
        self.exception = exception
        self.delay = delay
        self.call_count = 0

    async def __call__(self, context):
        self.call_count += 1

        if self.delay > 0:
            await asyncio.sleep(self.delay)

        if self.exception:
            raise self.exception

        return self.return_value


@pytest.fixture
def make_payload() -> Callable[..., dict[str, Any]]:
    """Factory for engine container payloads."""
    return container_payload


@pytest.fixture
def make_container() -> Callable[..., ContainerRecord]:
    """Factory for validated container records."""

    def _make(container_id: str, **kwargs: Any) -> ContainerRecord:
        return ContainerRecord.model_validate(container_payload(container_id, **kwargs))

    return _make


@pytest.fixture
def papem_payloads() -> list[dict[str, Any]]:
    """Compose project with two api replicas running and an exited proxy."""
    config = "/srv/papem-core/docker-compose.yml"
    return [
        container_payload(
            "a" * 64,
            name="papem-core-api-1",
            project="papem-core",
            service="api",
            image="ghcr.io/papem/api:1.4",
            ports=[{"PrivatePort": 80, "PublicPort": 8080, "Type": "tcp"}],
            created=1_700_000_100,
            config_files=config,
        ),
        container_payload(
            "b" * 64,
            name="papem-core-api-2",
            project="papem-core",
            service="api",
            image="ghcr.io/papem/api:1.4",
            ports=[{"PrivatePort": 9090, "Type": "tcp"}],
            created=1_700_000_200,
            config_files=config,
        ),
        container_payload(
            "c" * 64,
            name="papem-core-proxy-1",
            project="papem-core",
            service="proxy",
            image="traefik:v3.0",
            state="exited",
            status="Exited (0) 3 minutes ago",
            created=1_700_000_050,
            config_files=config,
        ),
    ]


@pytest.fixture
def socket_path(tmp_path: Path) -> Path:
    """A file standing in for the engine's control socket."""
    path = tmp_path / "docker.sock"
    path.touch()
    return path


@pytest.fixture
def engine_settings(socket_path: Path) -> EngineSettings:
    return EngineSettings(docker_socket=str(socket_path), docker_stop_timeout=3)


@pytest.fixture
def fake_engine(engine_settings: EngineSettings, papem_payloads) -> FakeEngine:
    return FakeEngine(engine_settings, papem_payloads)


@pytest.fixture
def memory_sink() -> InMemoryTelemetrySink:
    return InMemoryTelemetrySink(max_events=10)


@pytest.fixture
def orchestration(fake_engine: FakeEngine, memory_sink) -> OrchestrationService:
    return OrchestrationService(engine=fake_engine, telemetry=memory_sink)


@pytest.fixture
def server_settings(tmp_path: Path) -> ServerSettings:
    return ServerSettings(log_dir=str(tmp_path / "logs"), slow_request_threshold_ms=1000.0)


@pytest.fixture
def server(server_settings: ServerSettings, orchestration) -> FleetStacksServer:
    """Fleet stacks server backed by the fake engine."""
    return FleetStacksServer(server_settings, orchestration=orchestration)


@pytest.fixture
async def client(server: FleetStacksServer) -> AsyncGenerator[Client, None]:
    """Create FastMCP client connected to server in-memory."""
    async with Client(server.app) as client:
        yield client


@pytest.fixture
def mock_call() -> type[MockCall]:
    return MockCall


@pytest.fixture
def logging_middleware():
    """Create LoggingMiddleware instance for testing."""
    return LoggingMiddleware(include_payloads=True, max_payload_length=100)


@pytest.fixture
def error_handling_middleware():
    """Create ErrorHandlingMiddleware instance for testing."""
    return ErrorHandlingMiddleware(include_traceback=False, track_error_stats=True)


@pytest.fixture
def timing_middleware():
    """Create TimingMiddleware instance for testing."""
    return TimingMiddleware(slow_request_threshold_ms=50.0, track_statistics=True)


@pytest.fixture
def mock_context():
    """Create mock MiddlewareContext for unit tests."""

    context = MagicMock()
    context.method = "tools/call"
    context.source = "test_client"
    context.type = "request"
    context.timestamp = 1640995200.0  # Fixed timestamp for predictable tests
    context.message = SimpleNamespace(
        name="stack_action",
        arguments={"stack_id": "papem-core", "action": "restart"},
    )

    return context
