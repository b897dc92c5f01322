"""Raw docker command passthrough and per-service log retrieval."""

import structlog

from ..core.command_executor import CommandExecutor
from ..core.exceptions import CommandNotPermittedError, OperationValidationError, UnknownServiceError
from ..models.stack import CommandResult
from .modes import OperationModeRegistry

MAX_LOG_LINES = 5000


class DockerCliService:
    """Allow-listed command execution for the dashboard's CLI and log views."""

    def __init__(self, executor: CommandExecutor, registry: OperationModeRegistry):
        self.executor = executor
        self.registry = registry
        self.logger = structlog.get_logger().bind(component="docker_cli")

    async def execute(self, command: str) -> CommandResult:
        """Run a caller-supplied command if it matches the allow-list.

        Raises:
            CommandNotPermittedError: If the command is rejected by the policy
        """
        permitted, reason = self.executor.policy.check(command)
        if not permitted:
            self.logger.warning("Raw command rejected", command=command, reason=reason)
            raise CommandNotPermittedError(command, reason)

        self.logger.info("Raw command requested", command=command)
        return await self.executor.execute(command)

    async def service_logs(self, service_id: str, tail: int = 100) -> CommandResult:
        """Fetch the last ``tail`` log lines of a service's container.

        ``service_id`` may be a compose service id (``ceo``) or the container
        name it runs as (``afro-ceo``).

        Raises:
            UnknownServiceError: If ``service_id`` names no known service or container
            OperationValidationError: If ``tail`` is out of range
        """
        container = self.registry.container_name(service_id)
        if container is None:
            raise UnknownServiceError([service_id])
        if not 1 <= tail <= MAX_LOG_LINES:
            raise OperationValidationError(f"tail must be between 1 and {MAX_LOG_LINES}")

        result = await self.executor.run(["docker", "logs", "--tail", str(tail), container])
        if not result.success:
            self.logger.warning(
                "Failed to fetch service logs",
                service=service_id,
                container=container,
                error=result.error,
            )
        return result
