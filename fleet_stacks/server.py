"""
Fleet Stacks MCP Server

A FastMCP server exposing the local container engine as operator-facing stacks:
list stacks, run lifecycle actions on them and read back the telemetry timeline.
"""

import argparse
import asyncio
import os
import sys
import tempfile
from pathlib import Path
from typing import Annotated, Any

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent
from pydantic import Field, ValidationError

from .constants import (
    DEFAULT_TELEMETRY_LIMIT,
    ENV_FASTMCP_HOST,
    ENV_FASTMCP_PORT,
    ENV_LOG_LEVEL,
)
from .core.error_response import StackErrorResponse
from .core.exceptions import (
    ActionPartiallyApplied,
    ConfigurationError,
    EngineRequestFailed,
    EngineResponseMalformed,
    EngineUnavailable,
)
from .core.logging_config import get_server_logger, setup_logging
from .core.settings import ServerSettings, load_engine_settings, load_server_settings
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware, TimingMiddleware
from .models.stack import Stack, StackNotFound
from .models.telemetry import TelemetryEvent
from .services import OrchestrationService


def format_stack(stack: Stack) -> list[str]:
    """Render one stack as a header line followed by one line per service."""
    lines = [
        f"{stack.name} [{stack.status}] id={stack.id} path={stack.path} "
        f"({len(stack.services)} service(s))"
    ]
    for service in stack.services:
        ports = ", ".join(service.ports) if service.ports else "-"
        replicas = f" x{service.replicas}" if service.replicas > 1 else ""
        lines.append(
            f"  - {service.name}{replicas}: {service.state} {service.image or '-'} ports={ports}"
        )
    return lines


def format_stacks(stacks: list[Stack]) -> str:
    if not stacks:
        return "No container stacks found"
    lines = [f"Container stacks ({len(stacks)})", ""]
    for stack in stacks:
        lines.extend(format_stack(stack))
    return "\n".join(lines)


def format_events(events: list[TelemetryEvent]) -> str:
    if not events:
        return "No telemetry events recorded"
    lines = [f"Telemetry events ({len(events)}, newest first)", ""]
    for event in events:
        lines.append(
            f"{event.recorded_at.isoformat()} [{event.status}] {event.metric}: {event.message}"
        )
    return "\n".join(lines)


def _result(text: str, structured: dict[str, Any]) -> ToolResult:
    return ToolResult(content=[TextContent(type="text", text=text)], structured_content=structured)


def _problem(problem: dict[str, Any]) -> ToolResult:
    title = problem.get("title", "Error")
    return _result(f"❌ {title}: {problem['error']}", problem)


class FleetStacksServer:
    """FastMCP server wrapping the orchestration facade."""

    def __init__(
        self,
        settings: ServerSettings | None = None,
        orchestration: OrchestrationService | None = None,
    ):
        self.settings = settings if settings is not None else load_server_settings()
        if orchestration is None:
            orchestration = OrchestrationService(settings=load_engine_settings())
        self.orchestration = orchestration
        self.logger = get_server_logger()
        self.app: FastMCP | None = None
        self._initialize_app()

    def _initialize_app(self) -> None:
        """Initialize FastMCP app, middleware, and register tools."""
        self.app = FastMCP("Fleet Stacks")

        self._configure_middleware()
        self.logger.info(
            "FastMCP middleware initialized",
            error_handling=True,
            timing_monitoring=f"{self.settings.slow_request_threshold_ms}ms threshold",
            logging="dual output (console + files)",
        )

        self.app.tool(
            self.list_stacks,
            annotations={
                "title": "List Container Stacks",
                "readOnlyHint": True,
                "destructiveHint": False,
                "idempotentHint": True,
                "openWorldHint": False,  # Local engine socket only
            },
        )
        self.app.tool(
            self.stack_action,
            annotations={
                "title": "Container Stack Lifecycle Action",
                "readOnlyHint": False,
                "destructiveHint": False,  # down stops containers, it never removes them
                "idempotentHint": False,
                "openWorldHint": True,  # pull reaches image registries
            },
        )
        self.app.tool(
            self.engine_status,
            annotations={
                "title": "Container Engine Status",
                "readOnlyHint": True,
                "destructiveHint": False,
                "idempotentHint": True,
                "openWorldHint": False,
            },
        )
        self.app.tool(
            self.telemetry_events,
            annotations={
                "title": "Stack Action Telemetry",
                "readOnlyHint": True,
                "destructiveHint": False,
                "idempotentHint": True,
                "openWorldHint": False,
            },
        )

    def _configure_middleware(self) -> None:
        """Configure FastMCP middleware stack."""
        if self.app is None:
            return
        # First added = first executed; error handling wraps everything else
        self.app.add_middleware(
            ErrorHandlingMiddleware(
                include_traceback=self.settings.log_level.upper() == "DEBUG",
                track_error_stats=True,
            )
        )
        self.app.add_middleware(
            TimingMiddleware(
                slow_request_threshold_ms=self.settings.slow_request_threshold_ms,
                track_statistics=True,
            )
        )
        self.app.add_middleware(LoggingMiddleware(include_payloads=True))

    async def list_stacks(self) -> ToolResult:
        """List every container stack on the local engine.

        Containers carrying compose project labels are grouped by project; every
        other container is reported as its own standalone stack. Each stack lists
        its services with state, image, replica count and published ports.
        """
        try:
            stacks = await self.orchestration.list_stacks()
        except EngineUnavailable as e:
            return _problem(StackErrorResponse.engine_unavailable(e))
        except EngineRequestFailed as e:
            return _problem(StackErrorResponse.engine_request_failed(e))
        except EngineResponseMalformed as e:
            return _problem(StackErrorResponse.engine_response_malformed(e))

        return _result(
            format_stacks(stacks),
            {
                "success": True,
                "count": len(stacks),
                "stacks": [stack.model_dump(mode="json") for stack in stacks],
            },
        )

    async def stack_action(
        self,
        stack_id: Annotated[str, Field(description="Stack id as returned by list_stacks")],
        action: Annotated[str, Field(description="One of: up, down, restart, pull")],
        services: Annotated[
            list[str] | None,
            Field(
                default=None,
                description="Service names to act on (case-insensitive); omit for all services",
            ),
        ] = None,
    ) -> ToolResult:
        """Run a lifecycle action against a container stack.

        Actions:
        • up: start the stack's containers
        • down: stop the stack's containers (containers are kept)
        • restart: restart the stack's containers
        • pull: pull the image of each of the stack's containers

        Containers are handled one at a time in service order. If a container
        fails after others were already changed, the earlier changes stay in
        place and the response lists them under ``applied``.
        """
        try:
            outcome = await self.orchestration.execute_action(
                stack_id, {"action": action, "services": services}
            )
        except ValidationError as e:
            return _problem(StackErrorResponse.validation_error(e))
        except EngineUnavailable as e:
            return _problem(StackErrorResponse.engine_unavailable(e))
        except EngineRequestFailed as e:
            return _problem(StackErrorResponse.engine_request_failed(e, stack_id=stack_id))
        except EngineResponseMalformed as e:
            return _problem(StackErrorResponse.engine_response_malformed(e))
        except ActionPartiallyApplied as e:
            return _problem(StackErrorResponse.action_partially_applied(e))

        if isinstance(outcome, StackNotFound):
            return _problem(
                StackErrorResponse.stack_not_found(
                    outcome.stack_id, services=outcome.services, reason=outcome.reason
                )
            )

        lines = [f"✅ {outcome.description}", ""]
        lines.extend(format_stack(outcome.stack))
        return _result(
            "\n".join(lines),
            {
                "success": True,
                "stack_id": stack_id,
                "action": action.strip().lower(),
                "containers_affected": outcome.containers_affected,
                "description": outcome.description,
                "stack": outcome.stack.model_dump(mode="json"),
            },
        )

    async def engine_status(self) -> ToolResult:
        """Report the engine socket path and whether the engine answers a ping."""
        status = await self.orchestration.engine_status()
        marker = "✅ reachable" if status["available"] else "❌ unreachable"
        return _result(
            f"Container engine at {status['socket_path']}: {marker}",
            {"success": True, **status},
        )

    async def telemetry_events(
        self,
        limit: Annotated[
            int,
            Field(
                default=DEFAULT_TELEMETRY_LIMIT,
                ge=1,
                le=1000,
                description="Maximum number of events to return",
            ),
        ] = DEFAULT_TELEMETRY_LIMIT,
    ) -> ToolResult:
        """Recent telemetry events recorded for stack actions, newest first."""
        events = self.orchestration.recent_events(limit)
        return _result(
            format_events(events),
            {
                "success": True,
                "count": len(events),
                "events": [event.model_dump(mode="json") for event in events],
            },
        )

    def run(self) -> None:
        """Run the FastMCP server."""
        self.logger.info(
            "Starting Fleet Stacks MCP Server",
            host=self.settings.host,
            port=self.settings.port,
            socket_path=self.orchestration.engine.socket_path,
        )
        if self.app is None:
            raise RuntimeError("FastMCP app not initialized")
        try:
            # FastMCP.run() is synchronous and manages its own event loop
            self.app.run(transport="http", host=self.settings.host, port=self.settings.port)
        except Exception as e:
            self.logger.error("Server startup failed", error=str(e))
            raise
        finally:
            self.orchestration.engine.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    load_dotenv()

    default_host = os.getenv(ENV_FASTMCP_HOST, "127.0.0.1")  # Use 0.0.0.0 for container deployment
    default_port = int(os.getenv(ENV_FASTMCP_PORT, "8000"))
    default_log_level = os.getenv(ENV_LOG_LEVEL, "INFO")

    parser = argparse.ArgumentParser(description="Fleet Stacks MCP server")
    parser.add_argument("--host", default=default_host, help="Server host")
    parser.add_argument("--port", type=int, default=default_port, help="Server port")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument(
        "--check-engine",
        action="store_true",
        help="Check that the container engine is reachable and exit",
    )
    return parser.parse_args(argv)


def main() -> None:
    """Main entry point."""
    args = parse_args()

    try:
        settings = load_server_settings(host=args.host, port=args.port, log_level=args.log_level)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    logger = _setup_logging_system(settings)

    try:
        orchestration = OrchestrationService(settings=load_engine_settings())
    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e))
        sys.exit(2)

    if args.check_engine:
        status = asyncio.run(orchestration.engine_status())
        logger.info("Engine check", **status)
        sys.exit(0 if status["available"] else 1)

    server = FleetStacksServer(settings, orchestration=orchestration)
    _run_server(server, logger)


def _setup_log_directory(settings: ServerSettings) -> str | None:
    """Pick the first writable log directory, or None for console-only logging."""
    log_dir_candidates = [
        settings.log_dir,
        str(Path.home() / ".local" / "share" / "fleet-stacks" / "logs"),
        str(Path(tempfile.gettempdir()) / "fleet-stacks-logs"),
    ]

    for candidate in log_dir_candidates:
        if candidate:
            try:
                candidate_path = Path(candidate)
                candidate_path.mkdir(parents=True, exist_ok=True)
                if candidate_path.is_dir() and os.access(candidate_path, os.W_OK):
                    return str(candidate_path)
            except OSError:
                continue

    print("Warning: Unable to create log directory, using console-only logging")
    return None


def _setup_logging_system(settings: ServerSettings):
    log_dir = _setup_log_directory(settings)
    setup_logging(
        log_dir=log_dir,
        log_level=settings.log_level,
        max_file_size_mb=settings.log_file_size_mb,
    )
    return get_server_logger()


def _run_server(server: FleetStacksServer, logger) -> None:
    """Run server with error handling."""
    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server error", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
