"""
CEO Agent Services

Stack orchestration and the sibling chat/proposal features.
"""

from .chat import ChatService  # noqa: F401
from .dispatcher import StackOperationDispatcher  # noqa: F401
from .docker_cli import DockerCliService  # noqa: F401
from .github import GitHubIssueClient  # noqa: F401
from .llm import OllamaClient  # noqa: F401
from .modes import OperationModeRegistry  # noqa: F401
from .network import NetworkMonitor, NetworkStatusChecker  # noqa: F401
from .proposals import ProposalService  # noqa: F401
from .repository import RepositorySyncService  # noqa: F401
from .status import StackStatusReconciler  # noqa: F401

__all__ = [
    "OperationModeRegistry",
    "StackStatusReconciler",
    "StackOperationDispatcher",
    "RepositorySyncService",
    "DockerCliService",
    "OllamaClient",
    "GitHubIssueClient",
    "NetworkStatusChecker",
    "NetworkMonitor",
    "ChatService",
    "ProposalService",
]
