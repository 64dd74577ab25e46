"""Core exceptions for fleet-stacks operations."""

from typing import Any


class FleetStacksError(Exception):
    """Base exception for fleet-stacks operations."""


class ConfigurationError(FleetStacksError):
    """Configuration validation or loading failed."""


class EngineError(FleetStacksError):
    """Container engine call failed.

    ``container_id`` and ``service`` are filled in when the failure happened
    while acting on a specific container of a stack.
    """

    def __init__(
        self,
        message: str,
        *,
        container_id: str | None = None,
        service: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.container_id = container_id
        self.service = service

    def _context_kwargs(self) -> dict[str, Any]:
        return {}

    def for_container(self, container_id: str, service: str) -> "EngineError":
        """Return a copy of this error annotated with the offending container."""
        return type(self)(
            f"{self.message} (container {container_id[:12]}, service {service})",
            container_id=container_id,
            service=service,
            **self._context_kwargs(),
        )


class EngineUnavailable(EngineError):
    """Engine control socket is missing, inaccessible or refusing connections."""

    def __init__(
        self,
        message: str,
        *,
        socket_path: str | None = None,
        container_id: str | None = None,
        service: str | None = None,
    ):
        super().__init__(message, container_id=container_id, service=service)
        self.socket_path = socket_path

    def _context_kwargs(self) -> dict[str, Any]:
        return {"socket_path": self.socket_path}


class EngineRequestFailed(EngineError):
    """Engine was reachable but rejected the request with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
        container_id: str | None = None,
        service: str | None = None,
    ):
        super().__init__(message, container_id=container_id, service=service)
        self.status_code = status_code
        self.body = body

    def _context_kwargs(self) -> dict[str, Any]:
        return {"status_code": self.status_code, "body": self.body}


class EngineResponseMalformed(EngineError):
    """Engine payload could not be parsed into the expected structure."""


class ActionPartiallyApplied(FleetStacksError):
    """A multi-container action failed after some containers were already mutated.

    Already-applied containers are not rolled back; the engine has no
    transactional multi-container semantics.
    """

    def __init__(
        self,
        stack_id: str,
        action: str,
        container_id: str,
        service: str,
        applied: list[str],
        reason: str,
    ):
        self.stack_id = stack_id
        self.action = action
        self.container_id = container_id
        self.service = service
        self.applied = list(applied)
        self.reason = reason
        super().__init__(
            f"Action '{action}' on stack '{stack_id}' failed at service '{service}' "
            f"(container {container_id[:12]}) after {len(self.applied)} container(s) "
            f"were already changed: {reason}"
        )
