"""Enum definitions for CEO Agent operations."""

from enum import Enum
from typing import Literal

# Type aliases
FailureKind = Literal["validation", "execution"]
ProposalStatus = Literal["draft", "open", "approved", "rejected", "implemented"]
AgenticProposalStatus = Literal["draft", "published"]


class StackOperation(Enum):
    """Lifecycle operations accepted by the stack dispatcher."""

    START = "start"
    STOP = "stop"
    RESTART = "restart"


class GitOperation(Enum):
    """Repository sync operations (fixed commands, no interpolation)."""

    PULL = "pull"
    BUILD = "build"


class ServiceGroup(Enum):
    """Logical service groups reported by the status reconciler."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    EXPLORER = "explorer"
    WEBSITE = "website"
    CEO = "ceo"


class StackAction(Enum):
    """Actions for the afro_stack MCP tool."""

    STATUS = "status"
    MODES = "modes"
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    PULL = "pull"
    BUILD = "build"
    LOGS = "logs"


class ProbeState(Enum):
    """Client-side view of backend reachability."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    CHECKING = "checking"
