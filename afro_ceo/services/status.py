"""
Stack Status Reconciler

Derives a running/stopped flag per logical service group from the live
container listing. Container names are matched by substring so that
compose-generated names (``project_afro-validator_1``) still count.
"""

import asyncio
import re
from dataclasses import dataclass

import structlog

from ..core.command_executor import CommandExecutor
from ..models.enums import ServiceGroup
from ..models.stack import ContainerState, StackStatus

RUNNING_PATTERN = re.compile(r"\b(up|running)\b", re.IGNORECASE)

SERVICE_GROUP_PATTERNS: dict[ServiceGroup, tuple[str, ...]] = {
    ServiceGroup.MAINNET: ("afro-validator",),
    ServiceGroup.TESTNET: ("afro-testnet-validator",),
    ServiceGroup.EXPLORER: ("afro-explorer", "afro-testnet-explorer"),
    ServiceGroup.WEBSITE: ("afro-web",),
    ServiceGroup.CEO: ("afro-ceo",),
}


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for the container listing."""

    max_attempts: int = 1
    initial_backoff: float = 0.5
    multiplier: float = 2.0

    def delays(self) -> list[float]:
        """Sleep before each retry (one entry fewer than attempts)."""
        return [
            self.initial_backoff * (self.multiplier**i) for i in range(max(self.max_attempts - 1, 0))
        ]


def parse_container_lines(output: str) -> list[ContainerState]:
    """Parse ``name<TAB>status`` lines, skipping blanks and header rows."""
    containers = []
    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("NAMES"):
            continue
        name, _, state = line.partition("\t")
        if not state:
            # Fall back to whitespace split for tab-less output
            name, _, state = line.partition(" ")
        state = state.strip()
        containers.append(
            ContainerState(name=name.strip(), state=state, running=bool(RUNNING_PATTERN.search(state)))
        )
    return containers


def reconcile(containers: list[ContainerState], connected: bool = True) -> StackStatus:
    """A group is up iff any container matching one of its patterns is up."""
    flags = {
        group.value: any(
            container.running and any(pattern in container.name for pattern in patterns)
            for container in containers
        )
        for group, patterns in SERVICE_GROUP_PATTERNS.items()
    }
    return StackStatus(**flags, connected=connected, containers=containers)


class StackStatusReconciler:
    """Queries the container runtime and reports per-group status."""

    def __init__(
        self,
        executor: CommandExecutor,
        *,
        container_prefix: str = "afro",
        timeout: float = 15,
        retry_policy: RetryPolicy | None = None,
    ):
        self.executor = executor
        self.container_prefix = container_prefix
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = structlog.get_logger().bind(component="status_reconciler")

    def listing_command(self) -> list[str]:
        return [
            "docker",
            "ps",
            "--all",
            "--filter",
            f"name={self.container_prefix}",
            "--format",
            "{{.Names}}\t{{.Status}}",
        ]

    async def get_status(self) -> StackStatus:
        """Return the current StackStatus. Never raises.

        When the listing itself fails, every group is reported stopped and
        ``connected`` is False.
        """
        delays = self.retry_policy.delays()
        attempts = len(delays) + 1
        for attempt in range(1, attempts + 1):
            result = await self.executor.run(self.listing_command(), timeout=self.timeout)
            if result.success:
                status = reconcile(parse_container_lines(result.output))
                self.logger.debug(
                    "Stack status reconciled",
                    mainnet=status.mainnet,
                    testnet=status.testnet,
                    explorer=status.explorer,
                    website=status.website,
                    ceo=status.ceo,
                    containers=len(status.containers),
                )
                return status

            self.logger.warning(
                "Container listing failed",
                attempt=attempt,
                max_attempts=attempts,
                error=result.error,
            )
            if attempt < attempts:
                await asyncio.sleep(delays[attempt - 1])

        return StackStatus(connected=False)
