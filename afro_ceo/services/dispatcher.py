"""
Stack Operation Dispatcher

Turns an OperationRequest into exactly one compose command, runs it once and
reports the outcome. Stages: validate, build command, execute, report.

Stop semantics differ by scope: stopping named services keeps their
containers (``stop``), stopping the whole deployment removes them (``down``).
"""

from collections.abc import Sequence

import structlog

from ..core.command_executor import CommandExecutor
from ..core.exceptions import ModeNotFoundError
from ..models.enums import StackOperation
from ..models.stack import OperationRequest, OperationResponse
from .modes import OperationModeRegistry


class StackOperationDispatcher:
    """Validates, builds and runs start/stop/restart compose commands."""

    def __init__(
        self,
        executor: CommandExecutor,
        registry: OperationModeRegistry,
        *,
        compose_command: Sequence[str] = ("docker-compose",),
        compose_file: str | None = None,
        timeout: float = 30,
        enforce_mode_subset: bool = True,
    ):
        self.executor = executor
        self.registry = registry
        self.compose_command = list(compose_command)
        self.compose_file = compose_file
        self.timeout = timeout
        self.enforce_mode_subset = enforce_mode_subset
        self.logger = structlog.get_logger().bind(component="stack_dispatcher")

    def compose_base(self) -> list[str]:
        """Compose invocation shared by every stack command."""
        base = list(self.compose_command)
        if self.compose_file:
            base.extend(["-f", self.compose_file])
        return base

    def build_command(self, operation: StackOperation, services: Sequence[str]) -> list[str]:
        """Map (operation, services) to an argument vector.

        Services must already be validated against the registry.
        """
        targets = list(services)
        if operation is StackOperation.START:
            tail = ["up", "-d", *targets]
        elif operation is StackOperation.STOP:
            tail = ["stop", *targets] if targets else ["down"]
        else:
            tail = ["restart", *targets]
        return [*self.compose_base(), *tail]

    def validate(self, request: OperationRequest) -> tuple[StackOperation | None, str]:
        """Return the parsed operation, or None and the rejection reason."""
        try:
            operation = StackOperation(request.operation)
        except ValueError:
            allowed = ", ".join(op.value for op in StackOperation)
            return None, f"invalid operation: '{request.operation}' (expected one of {allowed})"

        unknown = self.registry.unknown_services(request.services)
        if unknown:
            return None, f"invalid operation: unknown service(s) {', '.join(unknown)}"

        if request.mode:
            try:
                mode = self.registry.resolve(request.mode)
            except ModeNotFoundError as e:
                return None, f"invalid operation: {e}"

            if self.enforce_mode_subset:
                outside = [s for s in request.services if s not in mode.services]
                if outside:
                    return None, (
                        f"invalid operation: service(s) {', '.join(outside)} "
                        f"are not part of mode '{mode.id}'"
                    )

        return operation, ""

    async def dispatch(self, request: OperationRequest) -> OperationResponse:
        """Run one stack operation. Execution failures are reported, never retried."""
        operation, reason = self.validate(request)
        if operation is None:
            self.logger.info(
                "Stack operation rejected",
                operation=request.operation,
                mode=request.mode,
                services=request.services,
                reason=reason,
            )
            return OperationResponse.rejected(
                reason, operation=request.operation, mode=request.mode, services=request.services
            )

        # Duplicates are not meaningful
        services = list(dict.fromkeys(request.services))
        cmd = self.build_command(operation, services)
        self.logger.info(
            "Dispatching stack operation",
            operation=operation.value,
            mode=request.mode,
            services=services,
            scope="services" if services else "deployment",
        )

        result = await self.executor.run(cmd, timeout=self.timeout)

        if result.success:
            message = f"Stack {operation.value} completed successfully"
        else:
            message = f"command failed: {result.error}"
            self.logger.error(
                "Stack operation failed",
                operation=operation.value,
                command=result.command,
                exit_code=result.exit_code,
                error=result.error,
            )

        return OperationResponse.from_result(
            result,
            message,
            operation=operation.value,
            mode=request.mode,
            services=services,
        )
