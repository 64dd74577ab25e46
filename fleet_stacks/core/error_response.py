"""RFC 7807 compliant error response helpers.

This module provides standardized error response formatting following RFC 7807:
Problem Details for HTTP APIs standard, adapted for MCP tool responses.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .exceptions import (
    ActionPartiallyApplied,
    EngineRequestFailed,
    EngineResponseMalformed,
    EngineUnavailable,
)


class ErrorDetail(BaseModel):
    """RFC 7807 compliant error detail structure.

    Required fields:
    - success: Always False for error responses
    - error: Human-readable error message

    Optional RFC 7807 fields:
    - type: URI reference that identifies the problem type
    - title: Short, human-readable summary of the problem type
    - status: HTTP status code the dashboard's web layer maps this problem to
    - detail: Human-readable explanation specific to this occurrence
    - instance: URI reference that identifies the specific occurrence
    """

    success: bool = Field(default=False, description="Always False for errors")
    error: str = Field(description="Human-readable error message")
    type: str | None = Field(default=None, description="Problem type URI")
    title: str | None = Field(default=None, description="Problem type summary")
    status: int | None = Field(default=None, description="Equivalent HTTP status")
    detail: str | None = Field(default=None, description="Specific problem details")
    instance: str | None = Field(default=None, description="Problem occurrence URI")
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())


class StackErrorResponse:
    """Factory for creating standardized orchestration error responses."""

    PROBLEM_TYPES: dict[str, dict[str, Any]] = {
        "engine-unavailable": {
            "type": "/problems/engine-unavailable",
            "title": "Container Engine Unavailable",
            "status": 503,
        },
        "engine-request-failed": {
            "type": "/problems/engine-request-failed",
            "title": "Container Engine Rejected Request",
            "status": 502,
        },
        "engine-response-malformed": {
            "type": "/problems/engine-response-malformed",
            "title": "Malformed Engine Response",
            "status": 502,
        },
        "stack-not-found": {
            "type": "/problems/stack-not-found",
            "title": "Stack Not Found",
            "status": 404,
        },
        "action-partially-applied": {
            "type": "/problems/action-partially-applied",
            "title": "Stack Action Partially Applied",
            "status": 500,
        },
        "validation-error": {
            "type": "/problems/validation-error",
            "title": "Input Validation Failed",
            "status": 400,
        },
    }

    @classmethod
    def create_error(
        cls,
        error_message: str,
        problem_type: str | None = None,
        detail: str | None = None,
        instance: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a standardized error response.

        Args:
            error_message: Primary error message
            problem_type: Standard problem type key or custom type URI
            detail: Additional problem-specific details
            instance: Identifier for this specific occurrence
            context: Additional context fields (stack_id, container_id, etc.)

        Returns:
            RFC 7807 compliant error response dictionary
        """
        error_detail = ErrorDetail(error=error_message, detail=detail, instance=instance)

        if problem_type and problem_type in cls.PROBLEM_TYPES:
            problem_info = cls.PROBLEM_TYPES[problem_type]
            error_detail.type = problem_info["type"]
            error_detail.title = problem_info["title"]
            error_detail.status = problem_info["status"]
        elif problem_type:
            error_detail.type = problem_type

        response = error_detail.model_dump(exclude_none=True)

        if context:
            # Filter out RFC 7807 reserved fields from context to avoid overwriting
            reserved_fields = set(ErrorDetail.model_fields)
            response.update({k: v for k, v in context.items() if k not in reserved_fields})

        return response

    @classmethod
    def engine_unavailable(cls, error: EngineUnavailable) -> dict[str, Any]:
        return cls.create_error(
            error_message=error.message,
            problem_type="engine-unavailable",
            detail="The container engine control socket is missing or not reachable.",
            instance="/engine",
            context={"socket_path": error.socket_path},
        )

    @classmethod
    def engine_request_failed(
        cls, error: EngineRequestFailed, stack_id: str | None = None
    ) -> dict[str, Any]:
        context: dict[str, Any] = {"status_code": error.status_code, "body": error.body}
        if stack_id:
            context["stack_id"] = stack_id
        if error.container_id:
            context["container_id"] = error.container_id
            context["service"] = error.service
        return cls.create_error(
            error_message=error.message,
            problem_type="engine-request-failed",
            detail="The engine was reachable but rejected the request.",
            instance=f"/stacks/{stack_id}" if stack_id else "/engine",
            context=context,
        )

    @classmethod
    def engine_response_malformed(cls, error: EngineResponseMalformed) -> dict[str, Any]:
        return cls.create_error(
            error_message=error.message,
            problem_type="engine-response-malformed",
            instance="/engine",
        )

    @classmethod
    def stack_not_found(
        cls, stack_id: str, services: list[str] | None = None, reason: str | None = None
    ) -> dict[str, Any]:
        """Standard stack not found error."""
        context: dict[str, Any] = {"stack_id": stack_id}
        if services:
            context["services"] = services
        return cls.create_error(
            error_message=f"Container stack '{stack_id}' not found",
            problem_type="stack-not-found",
            detail=reason or "The stack does not exist on the engine.",
            instance=f"/stacks/{stack_id}",
            context=context,
        )

    @classmethod
    def action_partially_applied(cls, error: ActionPartiallyApplied) -> dict[str, Any]:
        return cls.create_error(
            error_message=str(error),
            problem_type="action-partially-applied",
            detail="Containers changed before the failure were not rolled back.",
            instance=f"/stacks/{error.stack_id}/actions/{error.action}",
            context={
                "stack_id": error.stack_id,
                "action": error.action,
                "container_id": error.container_id,
                "service": error.service,
                "applied": error.applied,
            },
        )

    @classmethod
    def validation_error(cls, error: ValidationError) -> dict[str, Any]:
        """Standard validation error."""
        fields = [".".join(str(part) for part in item["loc"]) for item in error.errors()]
        return cls.create_error(
            error_message="Invalid container action payload",
            problem_type="validation-error",
            detail=str(error),
            instance="/validation",
            context={"fields": fields},
        )
