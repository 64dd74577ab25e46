"""Logging middleware for the fleet-stacks MCP server."""

import time
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..constants import SECURITY_FIELDS
from ..core.logging_config import get_middleware_logger


class LoggingMiddleware(Middleware):
    """FastMCP middleware for request/response logging to middleware.log.

    Request parameters are logged with sensitive fields redacted and long
    values truncated.
    """

    def __init__(self, include_payloads: bool = True, max_payload_length: int = 1000):
        self.logger = get_middleware_logger()
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length

    async def on_message(self, context: MiddlewareContext, call_next):
        start_time = time.time()

        log_data: dict[str, Any] = {
            "method": context.method,
            "source": context.source,
            "message_type": context.type,
        }
        if self.include_payloads and hasattr(context.message, "__dict__"):
            log_data["params"] = self._sanitize_message(context.message)

        self.logger.info("MCP request started", **log_data)

        try:
            result = await call_next(context)
        except Exception as e:
            self.logger.error(
                "MCP request failed",
                method=context.method,
                success=False,
                duration_ms=round((time.time() - start_time) * 1000, 2),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        self.logger.info(
            "MCP request completed",
            method=context.method,
            success=True,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return result

    def _sanitize_message(self, message: Any) -> dict[str, Any]:
        if not hasattr(message, "__dict__"):
            return {"message": str(message)[: self.max_payload_length]}

        sanitized: dict[str, Any] = {}
        for key, value in message.__dict__.items():
            if key.startswith("_"):
                continue
            if self._is_sensitive_field(key):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = {
                    k: "[REDACTED]" if self._is_sensitive_field(k) else self._truncate(v)
                    for k, v in value.items()
                }
            else:
                sanitized[key] = self._truncate(value)
        return sanitized

    def _truncate(self, value: Any) -> Any:
        if isinstance(value, str | list | dict):
            text = value if isinstance(value, str) else str(value)
            if len(text) > self.max_payload_length:
                return text[: self.max_payload_length] + "... [TRUNCATED]"
        return value

    def _is_sensitive_field(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(sensitive in field_lower for sensitive in SECURITY_FIELDS)
