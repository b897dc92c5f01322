"""Stack orchestration data models."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import FailureKind


class CEOModel(BaseModel):
    """Base model with common serialization settings."""

    def model_dump(self, **kwargs) -> dict[str, Any]:
        """Convert to dict in JSON-safe mode by default."""
        kwargs.setdefault("mode", "json")
        return super().model_dump(**kwargs)


class OperationMode(CEOModel):
    """Named deployment profile selecting a set of compose services."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    services: tuple[str, ...] = Field(min_length=1)

    @field_validator("services")
    @classmethod
    def validate_services(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Drop duplicates while keeping declaration order."""
        if any(not s or not s.strip() for s in v):
            raise ValueError("service ids cannot be empty")
        return tuple(dict.fromkeys(s.strip() for s in v))


class ContainerState(CEOModel):
    """One parsed line of the container listing."""

    name: str
    state: str
    running: bool


class StackStatus(CEOModel):
    """Derived running/stopped flag per service group."""

    mainnet: bool = False
    testnet: bool = False
    explorer: bool = False
    website: bool = False
    ceo: bool = False
    connected: bool = False
    containers: list[ContainerState] = Field(default_factory=list)
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CommandResult(CEOModel):
    """Outcome of one executor invocation. Always produced, never raised."""

    success: bool
    output: str = ""
    error: str = ""
    exit_code: int | None = None
    truncated: bool = False
    command: str = ""
    warnings: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0


class OperationRequest(CEOModel):
    """Transient stack operation request."""

    operation: str
    mode: str | None = None
    services: list[str] = Field(default_factory=list)

    @field_validator("services", mode="before")
    @classmethod
    def normalize_services(cls, v):
        """Accept null and strip whitespace around ids."""
        if v is None:
            return []
        if isinstance(v, list):
            return [s.strip() if isinstance(s, str) else s for s in v]
        return v

    @field_validator("operation", mode="before")
    @classmethod
    def normalize_operation(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class OperationResponse(CommandResult):
    """Dispatcher/repository result: command outcome plus reporting fields."""

    message: str
    logs: list[str] = Field(default_factory=list)
    operation: str = ""
    mode: str | None = None
    services: list[str] = Field(default_factory=list)
    failure: FailureKind | None = None

    @classmethod
    def rejected(
        cls,
        message: str,
        *,
        operation: str = "",
        mode: str | None = None,
        services: list[str] | None = None,
    ) -> "OperationResponse":
        """Validation failure: nothing was executed."""
        return cls(
            success=False,
            error=message,
            message=message,
            operation=operation,
            mode=mode,
            services=services or [],
            failure="validation",
        )

    @classmethod
    def from_result(
        cls,
        result: CommandResult,
        message: str,
        *,
        operation: str,
        mode: str | None = None,
        services: list[str] | None = None,
    ) -> "OperationResponse":
        """Execution outcome, with output split into log lines."""
        return cls(
            **result.model_dump(mode="python"),
            message=message,
            logs=[line for line in result.output.splitlines() if line.strip()],
            operation=operation,
            mode=mode,
            services=services or [],
            failure=None if result.success else "execution",
        )
