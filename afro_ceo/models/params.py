"""Request body models for the HTTP routes and the MCP tool."""

from typing import Annotated, Any

from pydantic import Field, StringConstraints, field_validator

from .enums import ProposalStatus, StackAction
from .stack import CEOModel

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _validate_enum_action(value: Any, enum_class: type) -> Any:
    """Generic validator for enum action fields."""
    if isinstance(value, str):
        # Handle "EnumClass.VALUE" format
        if "." in value:
            enum_value = value.split(".")[-1].lower()
        else:
            enum_value = value.strip().lower()

        for action in enum_class:
            if action.value == enum_value or action.name.lower() == enum_value:
                return action
    elif isinstance(value, enum_class):
        return value

    # Let Pydantic handle the error if no match
    return value


class StackToolParams(CEOModel):
    """Parameters for the afro_stack consolidated tool."""

    action: StackAction = Field(..., description="Action to perform")
    mode: str | None = Field(default=None, description="Operation mode id")
    services: list[str] = Field(default_factory=list, description="Target service ids")
    service: str = Field(default="", description="Service id (logs action)")
    lines: int = Field(default=100, ge=1, le=5000, description="Log lines to retrieve")

    @field_validator("action", mode="before")
    @classmethod
    def validate_action(cls, v):
        """Validate action field to handle various enum input formats."""
        return _validate_enum_action(v, StackAction)


class GitOperationParams(CEOModel):
    """Body of POST /git-operation."""

    operation: NonEmptyStr


class DockerExecuteParams(CEOModel):
    """Body of POST /docker-execute."""

    command: NonEmptyStr = Field(max_length=1000)


class ChatParams(CEOModel):
    """Body of POST /chat."""

    message: NonEmptyStr = Field(max_length=10000)
    context: str = Field(default="", max_length=20000)


class ProposalCreateParams(CEOModel):
    """Body of POST /proposals."""

    title: NonEmptyStr = Field(max_length=200)
    description: str = Field(default="", max_length=20000)
    author: str = Field(default="ceo-agent", max_length=100)
    labels: list[str] = Field(default_factory=list)


class ProposalUpdateParams(CEOModel):
    """Body of PUT /proposals/{id}; omitted fields are left unchanged."""

    title: NonEmptyStr | None = None
    description: str | None = None
    status: ProposalStatus | None = None
    labels: list[str] | None = None


class GenerateProposalParams(CEOModel):
    """Body of POST /generate-proposal."""

    topic: NonEmptyStr = Field(max_length=500)
    context: str = Field(default="", max_length=20000)


class PublishProposalParams(CEOModel):
    """Body of POST /agentic-proposals/publish."""

    id: NonEmptyStr
    create_issue: bool = False
