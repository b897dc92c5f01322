"""FastMCP middleware for the CEO Agent's MCP tool surface.

- LoggingMiddleware: structured request logging to middleware.log
- ErrorHandlingMiddleware: error categorisation and counts
- TimingMiddleware: request durations and slow-request warnings
"""

from .error_handling import ErrorHandlingMiddleware
from .logging import LoggingMiddleware
from .timing import TimingMiddleware

__all__ = [
    "LoggingMiddleware",
    "ErrorHandlingMiddleware",
    "TimingMiddleware",
]
