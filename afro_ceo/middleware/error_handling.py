"""Error tracking middleware for MCP tool calls."""

from collections import defaultdict
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..core.exceptions import ExternalServiceError, OperationValidationError
from ..core.logging_config import get_middleware_logger
from .logging import is_sensitive_field


class ErrorHandlingMiddleware(Middleware):
    """Logs and counts errors raised while handling MCP messages, then re-raises them."""

    def __init__(self, include_traceback: bool = True, track_error_stats: bool = True):
        self.logger = get_middleware_logger()
        self.include_traceback = include_traceback
        self.track_error_stats = track_error_stats
        self.error_stats: dict[str, int] = defaultdict(int)
        self.method_errors: dict[str, int] = defaultdict(int)

    async def on_message(self, context: MiddlewareContext, call_next):
        try:
            return await call_next(context)
        except Exception as e:
            self._handle_error(e, context)
            raise

    def _handle_error(self, error: Exception, context: MiddlewareContext) -> None:
        error_type = type(error).__name__
        method = context.method or "unknown"

        if self.track_error_stats:
            self.error_stats[f"{error_type}:{method}"] += 1
            self.method_errors[method] += 1

        error_data: dict[str, Any] = {
            "error_type": error_type,
            "error_message": str(error),
            "method": method,
            "source": context.source,
        }
        if self.track_error_stats:
            error_data["error_occurrence_count"] = self.error_stats[f"{error_type}:{method}"]

        if hasattr(context.message, "__dict__"):
            error_data["message_context"] = {
                key: str(value)[:100]
                for key, value in vars(context.message).items()
                if not key.startswith("_") and not is_sensitive_field(key)
            }

        if self._is_warning_level_error(error):
            self.logger.warning("Warning-level error in MCP request", **error_data)
        else:
            self.logger.error(
                "Error in MCP request", **error_data, exc_info=self.include_traceback
            )

    def _is_warning_level_error(self, error: Exception) -> bool:
        """Caller mistakes and unreachable collaborators are not server faults."""
        warning_types = (
            OperationValidationError,
            ExternalServiceError,
            TimeoutError,
            ConnectionError,
        )
        return isinstance(error, warning_types)

    def get_error_statistics(self) -> dict[str, Any]:
        if not self.track_error_stats:
            return {"error_tracking": "disabled"}

        top_errors = sorted(self.error_stats.items(), key=lambda x: x[1], reverse=True)[:10]
        return {
            "total_errors": sum(self.error_stats.values()),
            "unique_error_types": len(self.error_stats),
            "top_errors": top_errors,
            "error_distribution": dict(self.error_stats),
        }

    def reset_statistics(self) -> None:
        self.error_stats.clear()
        self.method_errors.clear()
        self.logger.info("Error statistics reset")
