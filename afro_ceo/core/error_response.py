"""RFC 7807 compliant error response helpers.

This module provides standardized error response formatting following RFC 7807:
Problem Details for HTTP APIs, used by both the HTTP routes and the MCP tool.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """RFC 7807 compliant error detail structure.

    Required fields:
    - success: Always False for error responses
    - error: Human-readable error message

    Optional RFC 7807 fields:
    - type: URI reference that identifies the problem type
    - title: Short, human-readable summary of the problem type
    - detail: Human-readable explanation specific to this occurrence
    - instance: URI reference that identifies the specific occurrence
    """

    success: bool = Field(default=False, description="Always False for errors")
    error: str = Field(description="Human-readable error message")
    type: str | None = Field(default=None, description="Problem type URI")
    title: str | None = Field(default=None, description="Problem type summary")
    detail: str | None = Field(default=None, description="Specific problem details")
    instance: str | None = Field(default=None, description="Problem occurrence URI")
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class AfroCeoErrorResponse:
    """Factory for creating standardized CEO Agent error responses."""

    PROBLEM_TYPES: dict[str, dict[str, str]] = {
        "validation-error": {
            "type": "/problems/validation-error",
            "title": "Input Validation Failed",
        },
        "command-not-permitted": {
            "type": "/problems/command-not-permitted",
            "title": "Command Not Permitted",
        },
        "proposal-not-found": {
            "type": "/problems/proposal-not-found",
            "title": "Proposal Not Found",
        },
        "llm-unavailable": {
            "type": "/problems/llm-unavailable",
            "title": "LLM Service Unavailable",
        },
        "internal-error": {
            "type": "/problems/internal-error",
            "title": "Internal Server Error",
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
            context: Additional context fields (mode, command, ...)

        Returns:
            RFC 7807 compliant error response dictionary
        """
        error_detail = ErrorDetail(error=error_message, detail=detail, instance=instance)

        if problem_type and problem_type in cls.PROBLEM_TYPES:
            problem_info = cls.PROBLEM_TYPES[problem_type]
            error_detail.type = problem_info["type"]
            error_detail.title = problem_info["title"]
        elif problem_type:
            error_detail.type = problem_type

        response = error_detail.model_dump(exclude_none=True)

        if context:
            # Reserved RFC 7807 fields are never overwritten by context
            reserved_fields = set(ErrorDetail.model_fields)
            response.update({k: v for k, v in context.items() if k not in reserved_fields})

        return response

    @classmethod
    def validation_error(cls, field: str, value: Any, reason: str) -> dict[str, Any]:
        """Standard validation error."""
        return cls.create_error(
            error_message=f"Validation failed for '{field}': {reason}",
            problem_type="validation-error",
            detail=f"The value '{value}' for field '{field}' is invalid: {reason}",
            instance=f"/validation/{field}",
            context={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def command_not_permitted(cls, command: str, reason: str) -> dict[str, Any]:
        """Standard allow-list rejection."""
        return cls.create_error(
            error_message=f"command not permitted: {reason}",
            problem_type="command-not-permitted",
            detail=f"'{command}' does not match any allow-listed command prefix",
            instance="/docker-execute",
            context={"command": command},
        )

    @classmethod
    def proposal_not_found(cls, proposal_id: str) -> dict[str, Any]:
        """Standard missing proposal error."""
        return cls.create_error(
            error_message=f"Proposal '{proposal_id}' not found",
            problem_type="proposal-not-found",
            instance=f"/proposals/{proposal_id}",
            context={"proposal_id": proposal_id},
        )

    @classmethod
    def llm_unavailable(cls, cause: str) -> dict[str, Any]:
        """Standard LLM collaborator failure."""
        return cls.create_error(
            error_message="Failed to get response from CEO agent",
            problem_type="llm-unavailable",
            detail=cause,
        )

    @classmethod
    def generic_error(
        cls,
        error_message: str,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Generic error response for unexpected errors."""
        return cls.create_error(
            error_message=error_message,
            problem_type="internal-error",
            context=context or {},
        )
