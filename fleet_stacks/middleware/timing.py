"""Timing middleware for fleet-stacks request performance monitoring."""

import time
from collections import defaultdict, deque
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..core.logging_config import get_middleware_logger


class TimingMiddleware(Middleware):
    """FastMCP middleware that times requests and flags slow ones.

    Stack actions wait on the engine (a stop can take the full stop timeout per
    container), so the slow threshold is configurable.
    """

    def __init__(
        self,
        slow_request_threshold_ms: float = 5000.0,
        track_statistics: bool = True,
        max_history_size: int = 1000,
    ):
        self.logger = get_middleware_logger()
        self.slow_threshold_ms = slow_request_threshold_ms
        self.track_statistics = track_statistics
        self.max_history_size = max_history_size

        self.request_times: dict[str, deque] = defaultdict(lambda: deque(maxlen=max_history_size))
        self.total_requests = 0
        self.slow_requests = 0

    async def on_message(self, context: MiddlewareContext, call_next):
        start_time = time.perf_counter()
        success = False
        try:
            result = await call_next(context)
            success = True
            return result
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            if self.track_statistics:
                self._record(context.method, duration_ms, success)
            self._log_timing(context.method, duration_ms, success)

    def _record(self, method: str, duration_ms: float, success: bool) -> None:
        self.total_requests += 1
        if duration_ms > self.slow_threshold_ms:
            self.slow_requests += 1
        self.request_times[method].append({"duration_ms": duration_ms, "success": success})

    def _log_timing(self, method: str, duration_ms: float, success: bool) -> None:
        log_data = {"method": method, "duration_ms": round(duration_ms, 2), "success": success}
        if duration_ms > self.slow_threshold_ms:
            self.logger.warning(
                "Slow request detected", **log_data, slow_threshold_ms=self.slow_threshold_ms
            )
        else:
            self.logger.debug("Request completed", **log_data)

    def get_performance_statistics(self) -> dict[str, Any]:
        if not self.track_statistics:
            return {"performance_tracking": "disabled"}

        method_stats = {}
        for method, records in self.request_times.items():
            durations = [record["duration_ms"] for record in records]
            if not durations:
                continue
            method_stats[method] = {
                "count": len(durations),
                "avg_ms": sum(durations) / len(durations),
                "max_ms": max(durations),
                "success_rate": sum(1 for r in records if r["success"]) / len(durations),
            }

        return {
            "total_requests": self.total_requests,
            "slow_requests": self.slow_requests,
            "slow_threshold_ms": self.slow_threshold_ms,
            "method_stats": method_stats,
        }
