"""Data models for the CEO Agent."""

from .enums import (  # noqa: F401
    GitOperation,
    ProbeState,
    ServiceGroup,
    StackAction,
    StackOperation,
)
from .params import (  # noqa: F401
    ChatParams,
    DockerExecuteParams,
    GenerateProposalParams,
    GitOperationParams,
    ProposalCreateParams,
    ProposalUpdateParams,
    PublishProposalParams,
    StackToolParams,
)
from .proposals import AgenticProposal, Conversation, Proposal  # noqa: F401
from .stack import (  # noqa: F401
    CommandResult,
    ContainerState,
    OperationMode,
    OperationRequest,
    OperationResponse,
    StackStatus,
)

__all__ = [
    # Enums
    "GitOperation",
    "ProbeState",
    "ServiceGroup",
    "StackAction",
    "StackOperation",
    # Stack models
    "CommandResult",
    "ContainerState",
    "OperationMode",
    "OperationRequest",
    "OperationResponse",
    "StackStatus",
    # Records
    "AgenticProposal",
    "Conversation",
    "Proposal",
    # Parameter models
    "ChatParams",
    "DockerExecuteParams",
    "GenerateProposalParams",
    "GitOperationParams",
    "ProposalCreateParams",
    "ProposalUpdateParams",
    "PublishProposalParams",
    "StackToolParams",
]
