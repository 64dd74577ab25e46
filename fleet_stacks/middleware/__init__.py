"""FastMCP middleware for the fleet-stacks server.

- LoggingMiddleware: Structured request/response logging with redaction
- ErrorHandlingMiddleware: Error tracking and level-aware error logging
- TimingMiddleware: Request timing and slow request detection
"""

from .error_handling import ErrorHandlingMiddleware
from .logging import LoggingMiddleware
from .timing import TimingMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
    "TimingMiddleware",
]
