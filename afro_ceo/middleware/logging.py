"""Request logging middleware for MCP tool calls."""

import time
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..core.logging_config import get_middleware_logger

SENSITIVE_KEYWORDS = (
    "password",
    "token",
    "secret",
    "key",
    "credential",
    "auth",
)


def is_sensitive_field(field_name: str) -> bool:
    """True if a field name suggests the value must not be logged."""
    field_lower = field_name.lower()
    return any(keyword in field_lower for keyword in SENSITIVE_KEYWORDS)


class LoggingMiddleware(Middleware):
    """Logs every MCP message to the console and middleware.log.

    Payload strings are truncated and sensitive fields redacted.
    """

    def __init__(self, include_payloads: bool = True, max_payload_length: int = 1000):
        self.logger = get_middleware_logger()
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length

    async def on_message(self, context: MiddlewareContext, call_next):
        start_time = time.time()

        log_data = {
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
        sanitized: dict[str, Any] = {}
        for key, value in vars(message).items():
            if key.startswith("_"):
                continue
            if is_sensitive_field(key):
                sanitized[key] = "[REDACTED]"
                continue
            text = value if isinstance(value, str) else str(value)
            if len(text) > self.max_payload_length:
                sanitized[key] = text[: self.max_payload_length] + "... [TRUNCATED]"
            else:
                sanitized[key] = value
        return sanitized
