"""
Orchestration Service

The boundary the rest of the dashboard calls: list stacks and perform stack
actions. Wraps the engine client, aggregator and dispatcher with an
availability probe and emits one telemetry event per completed action.
"""

from collections.abc import Awaitable, Mapping
from typing import Any

import structlog

from ..core.engine_client import EngineClient
from ..core.exceptions import ActionPartiallyApplied
from ..core.settings import EngineSettings
from ..models.stack import ActionOutcome, ActionRequest, Stack, StackNotFound
from ..models.telemetry import TelemetryEvent
from .aggregator import aggregate
from .dispatcher import ActionDispatcher
from .telemetry import (
    FanOutTelemetrySink,
    InMemoryTelemetrySink,
    LoggingTelemetrySink,
    TelemetrySink,
)


class OrchestrationService:
    """Facade for container stack discovery and lifecycle actions."""

    def __init__(
        self,
        engine: EngineClient | None = None,
        telemetry: TelemetrySink | None = None,
        settings: EngineSettings | None = None,
    ):
        if settings is None:
            settings = engine.settings if engine is not None else EngineSettings()
        self.settings = settings
        self.engine = engine if engine is not None else EngineClient(self.settings)
        # In-memory log records first; recent_events reads from it
        self.event_log = InMemoryTelemetrySink(self.settings.telemetry_buffer_size)
        self.telemetry = FanOutTelemetrySink(
            self.event_log, telemetry if telemetry is not None else LoggingTelemetrySink()
        )
        self.dispatcher = ActionDispatcher(self.engine)
        self.logger = structlog.get_logger()

    async def list_stacks(self) -> list[Stack]:
        """All stacks currently visible on the engine, sorted by display name."""
        self.engine.ensure_available()
        containers = await self.engine.list_containers()
        stacks = aggregate(containers)
        self.logger.debug("Listed stacks", stacks=len(stacks), containers=len(containers))
        return stacks

    async def perform_action(
        self, stack_id: str, request: ActionRequest | Mapping[str, Any]
    ) -> Stack | StackNotFound:
        """Apply an action and return the refreshed stack, or StackNotFound."""
        result = await self.execute_action(stack_id, request)
        if isinstance(result, StackNotFound):
            return result
        return result.stack

    async def execute_action(
        self, stack_id: str, request: ActionRequest | Mapping[str, Any]
    ) -> ActionOutcome | StackNotFound:
        """Like perform_action but also reports how many containers were changed.

        Raises:
            EngineUnavailable: socket missing or unreachable; nothing was changed
            EngineRequestFailed: the engine rejected the first container's call
            ActionPartiallyApplied: a later container failed after earlier ones changed
            pydantic.ValidationError: the request payload is invalid
        """
        if not isinstance(request, ActionRequest):
            request = ActionRequest.model_validate(request)

        self.engine.ensure_available()

        try:
            result = await self.dispatcher.dispatch(stack_id, request)
        except ActionPartiallyApplied as e:
            await self._emit(
                TelemetryEvent(
                    status="critical",
                    value=len(e.applied),
                    message=(
                        f"Action '{e.action}' on stack '{stack_id}' partially applied; "
                        f"failed at service '{e.service}': {e.reason}"
                    ),
                    stack_id=stack_id,
                    action=e.action,
                )
            )
            raise

        if isinstance(result, StackNotFound):
            return result

        await self._emit(
            TelemetryEvent(
                status="info",
                value=result.containers_affected,
                message=f"{result.stack.name}: {result.description}",
                stack_id=stack_id,
                action=request.action.value,
            )
        )
        return result

    async def engine_status(self) -> dict[str, Any]:
        """Socket path and reachability, for diagnostics."""
        available = await self.engine.is_available()
        return {
            "socket_path": self.engine.socket_path,
            "available": available,
            "api_version": self.settings.docker_api_version,
        }

    def recent_events(self, limit: int) -> list[TelemetryEvent]:
        """Most recent telemetry events recorded by this process, newest first."""
        return self.event_log.recent(limit)

    async def _emit(self, event: TelemetryEvent) -> None:
        try:
            result = self.telemetry.record(event)
            if isinstance(result, Awaitable):
                await result
        except Exception as e:
            # Telemetry must never fail the action itself
            self.logger.warning(
                "Failed to record telemetry event",
                event_id=event.id,
                stack_id=event.stack_id,
                error=str(e),
                error_type=type(e).__name__,
            )
