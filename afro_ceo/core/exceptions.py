"""Core exceptions for Afro CEO Agent operations."""


class AfroCeoError(Exception):
    """Base exception for Afro CEO Agent operations."""


class OperationValidationError(AfroCeoError):
    """Request failed validation before any command was built."""


class ModeNotFoundError(OperationValidationError):
    """Operation mode id is not in the registry."""

    def __init__(self, mode_id: str, available: list[str] | None = None):
        self.mode_id = mode_id
        self.available = available or []
        super().__init__(f"unknown operation mode '{mode_id}'")


class UnknownServiceError(OperationValidationError):
    """Service id is not part of the closed set of known services."""

    def __init__(self, service_ids: list[str]):
        self.service_ids = service_ids
        super().__init__(f"unknown service(s): {', '.join(service_ids)}")


class CommandNotPermittedError(AfroCeoError):
    """Raw command does not match the configured allow-list."""

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"command not permitted: {reason}")


class ConfigurationError(AfroCeoError):
    """Configuration validation or loading failed."""


class ExternalServiceError(AfroCeoError):
    """An external collaborator (LLM, issue tracker, RPC) failed."""


class LLMUnavailableError(ExternalServiceError):
    """The LLM server could not be reached or returned an unusable reply."""


class GitHubError(ExternalServiceError):
    """GitHub issue API call failed."""


class BackendUnreachableError(AfroCeoError):
    """The CEO Agent backend is not reachable from the client."""


class ProposalNotFoundError(AfroCeoError):
    """Proposal id does not exist in the store."""


class BackendRequestError(AfroCeoError):
    """The backend rejected a request with a problem-details error body."""

    def __init__(self, problem: dict):
        self.problem = problem
        self.problem_type = problem.get("type")
        super().__init__(problem.get("error") or "request rejected by backend")
