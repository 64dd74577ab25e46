"""
Action Dispatcher

Applies a lifecycle action to the containers of one stack. Every dispatch
re-reads the engine, resolves the target containers, mutates them one at a
time, then re-reads again to report the resulting stack.

Multi-container actions are not atomic: a failure part-way through leaves
earlier containers changed and raises ActionPartiallyApplied.
"""

from collections.abc import Awaitable, Callable

import structlog

from ..core.engine_client import EngineClient
from ..core.exceptions import ActionPartiallyApplied, EngineError, EngineResponseMalformed
from ..models.container import ContainerRecord
from ..models.enums import StackAction
from ..models.stack import ActionOutcome, ActionRequest, StackNotFound
from .aggregator import StackGroup, group_containers


class ActionDispatcher:
    """Resolve a stack action to containers and drive the engine."""

    def __init__(self, engine: EngineClient):
        self.engine = engine
        self.logger = structlog.get_logger()

    async def dispatch(
        self, stack_id: str, request: ActionRequest
    ) -> ActionOutcome | StackNotFound:
        groups = group_containers(await self.engine.list_containers())
        group = groups.get(stack_id)
        if group is None:
            self.logger.info("Stack not found for action", stack_id=stack_id)
            return StackNotFound(stack_id=stack_id, services=request.services)

        targets = self.resolve_targets(group, request)
        if not targets:
            self.logger.info(
                "No containers matched requested services",
                stack_id=stack_id,
                services=request.services,
                available=group.stack.service_names(),
            )
            return StackNotFound(
                stack_id=stack_id,
                services=request.services,
                reason="no matching services in stack",
            )

        applied = await self._apply(stack_id, request.action, targets)

        refreshed = group_containers(await self.engine.list_containers()).get(stack_id)
        if refreshed is None:
            self.logger.warning(
                "Stack disappeared after action", stack_id=stack_id, action=request.action.value
            )
            return StackNotFound(
                stack_id=stack_id,
                services=request.services,
                reason="stack disappeared after action",
            )

        # Requested scope, not the number of containers actually mutated
        service_count = (
            len(request.services) if request.is_targeted else len(refreshed.stack.services)
        )
        description = f"{request.action.verb} ({service_count} service(s))"
        stack = refreshed.stack.model_copy(update={"last_action": description})

        self.logger.info(
            "Stack action completed",
            stack_id=stack_id,
            action=request.action.value,
            containers_affected=len(applied),
            status=stack.status,
        )
        return ActionOutcome(stack=stack, containers_affected=len(applied), description=description)

    def resolve_targets(
        self, group: StackGroup, request: ActionRequest
    ) -> list[tuple[str, ContainerRecord]]:
        """(service, container) pairs the request applies to, in service order."""
        pairs = group.containers_by_service()
        if not request.is_targeted:
            return pairs
        wanted = {name.casefold() for name in request.services}
        return [(service, container) for service, container in pairs if service.casefold() in wanted]

    async def _apply(
        self, stack_id: str, action: StackAction, targets: list[tuple[str, ContainerRecord]]
    ) -> list[str]:
        applied: list[str] = []
        for service, container in targets:
            try:
                await self._invoke(action, container)
            except EngineError as e:
                self.logger.error(
                    "Container action failed",
                    stack_id=stack_id,
                    action=action.value,
                    container_id=container.short_id,
                    service=service,
                    applied=len(applied),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                if applied:
                    raise ActionPartiallyApplied(
                        stack_id=stack_id,
                        action=action.value,
                        container_id=container.id,
                        service=service,
                        applied=applied,
                        reason=str(e),
                    ) from e
                raise e.for_container(container.id, service) from e
            applied.append(container.id)
            self.logger.debug(
                "Container action accepted",
                stack_id=stack_id,
                action=action.value,
                container_id=container.short_id,
                service=service,
            )
        return applied

    async def _invoke(self, action: StackAction, container: ContainerRecord) -> None:
        if action is StackAction.PULL:
            if not container.image:
                raise EngineResponseMalformed(
                    f"Container {container.short_id} has no image reference to pull"
                )
            await self.engine.pull_image(container.image)
            return

        handlers: dict[StackAction, Callable[[str], Awaitable[None]]] = {
            StackAction.UP: self.engine.start,
            StackAction.DOWN: self.engine.stop,
            StackAction.RESTART: self.engine.restart,
        }
        await handlers[action](container.id)
