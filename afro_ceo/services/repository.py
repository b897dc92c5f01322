"""Repository sync operations: fixed git pull / image build commands."""

from collections.abc import Sequence

import structlog

from ..core.command_executor import CommandExecutor
from ..models.enums import GitOperation
from ..models.stack import OperationResponse


class RepositorySyncService:
    """Runs the closed set of source-control and build commands."""

    def __init__(
        self,
        executor: CommandExecutor,
        *,
        compose_base: Sequence[str] = ("docker-compose",),
        git_remote: str = "origin",
        git_branch: str = "main",
        timeout: float = 30,
        build_timeout: float = 600,
    ):
        self.executor = executor
        self.compose_base = list(compose_base)
        self.git_remote = git_remote
        self.git_branch = git_branch
        self.timeout = timeout
        self.build_timeout = build_timeout
        self.logger = structlog.get_logger().bind(component="repository_sync")

    def command_for(self, operation: GitOperation) -> tuple[list[str], float]:
        """Argument vector and timeout class for an operation."""
        if operation is GitOperation.PULL:
            return ["git", "pull", self.git_remote, self.git_branch], self.timeout
        return [*self.compose_base, "build", "--no-cache"], self.build_timeout

    async def git_operation(self, operation: str | GitOperation) -> OperationResponse:
        """Run ``pull`` or ``build`` once and report the outcome."""
        op_name = operation.value if isinstance(operation, GitOperation) else str(operation)
        try:
            op = GitOperation(op_name.strip().lower())
        except ValueError:
            allowed = ", ".join(o.value for o in GitOperation)
            return OperationResponse.rejected(
                f"invalid operation: '{op_name}' (expected one of {allowed})",
                operation=op_name,
            )

        cmd, timeout = self.command_for(op)
        self.logger.info("Running repository operation", operation=op.value, timeout=timeout)
        result = await self.executor.run(cmd, timeout=timeout)

        if result.success:
            message = f"Git {op.value} completed successfully"
        else:
            message = f"command failed: {result.error}"
            self.logger.error(
                "Repository operation failed",
                operation=op.value,
                exit_code=result.exit_code,
                error=result.error,
            )

        return OperationResponse.from_result(result, message, operation=op.value)
