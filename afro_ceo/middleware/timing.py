"""Timing middleware for MCP tool calls."""

import time
from collections import defaultdict, deque
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..core.logging_config import get_middleware_logger


class TimingMiddleware(Middleware):
    """Measures each MCP request and flags slow ones."""

    def __init__(
        self,
        slow_request_threshold_ms: float = 30000.0,
        track_statistics: bool = True,
        max_history_size: int = 1000,
    ):
        self.logger = get_middleware_logger()
        self.slow_threshold_ms = slow_request_threshold_ms
        self.track_statistics = track_statistics
        self.request_times: dict[str, deque] = defaultdict(lambda: deque(maxlen=max_history_size))
        self.total_requests = 0
        self.slow_requests = 0

    async def on_message(self, context: MiddlewareContext, call_next):
        start_time = time.perf_counter()
        method = context.method or "unknown"
        success = False

        try:
            result = await call_next(context)
            success = True
            return result
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            if self.track_statistics:
                self._update_statistics(method, duration_ms, success)
            self._log_timing(method, duration_ms, success)

    def _update_statistics(self, method: str, duration_ms: float, success: bool) -> None:
        self.total_requests += 1
        if duration_ms > self.slow_threshold_ms:
            self.slow_requests += 1
        self.request_times[method].append({"duration_ms": duration_ms, "success": success})

    def _log_timing(self, method: str, duration_ms: float, success: bool) -> None:
        log_data = {
            "method": method,
            "duration_ms": round(duration_ms, 2),
            "success": success,
        }
        if duration_ms > self.slow_threshold_ms:
            self.logger.warning(
                "Slow MCP request", threshold_ms=self.slow_threshold_ms, **log_data
            )
        else:
            self.logger.debug("MCP request timing", **log_data)

    def get_timing_statistics(self) -> dict[str, Any]:
        methods = {}
        for method, records in self.request_times.items():
            durations = [r["duration_ms"] for r in records]
            if not durations:
                continue
            methods[method] = {
                "count": len(durations),
                "avg_ms": round(sum(durations) / len(durations), 2),
                "max_ms": round(max(durations), 2),
                "success_rate": sum(1 for r in records if r["success"]) / len(records),
            }
        return {
            "total_requests": self.total_requests,
            "slow_requests": self.slow_requests,
            "methods": methods,
        }
