"""Shared pytest fixtures for CEO Agent tests."""

import asyncio
import shlex
from collections import deque
from collections.abc import AsyncGenerator
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastmcp import Client
from starlette.testclient import TestClient

from afro_ceo.core.command_policy import CommandPolicy
from afro_ceo.core.config_loader import CeoAgentConfig, ServerConfig
from afro_ceo.core.store import RecordStore
from afro_ceo.models.stack import CommandResult
from afro_ceo.server import AfroCeoServer
from afro_ceo.services.modes import CEO_CONTAINER, OperationModeRegistry


class FakeExecutor:
    """Records argument vectors and replays queued results instead of spawning."""

    def __init__(self, *results: CommandResult, policy: CommandPolicy | None = None):
        self.policy = policy or CommandPolicy()
        self.calls: list[tuple[list[str], float | None]] = []
        self.executed: list[str] = []
        self._results: deque[CommandResult] = deque(results)

    def queue(self, *results: CommandResult) -> None:
        self._results.extend(results)

    @property
    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls]

    async def run(self, cmd, *, timeout=None, cwd=None, max_output_bytes=None) -> CommandResult:
        self.calls.append((list(cmd), timeout))
        result = self._results.popleft() if self._results else self.respond(list(cmd))
        return result.model_copy(update={"command": shlex.join(cmd)})

    def respond(self, cmd: list[str]) -> CommandResult:
        return CommandResult(success=True, exit_code=0)

    async def execute(self, command: str, *, timeout=None, cwd=None) -> CommandResult:
        self.executed.append(command)
        permitted, reason = self.policy.check(command)
        if not permitted:
            return CommandResult(success=False, error=f"command not permitted: {reason}", command=command)
        return await self.run(self.policy.split(command), timeout=timeout)

    async def cleanup_all(self) -> None:
        pass


class SimulatedDocker(FakeExecutor):
    """FakeExecutor that keeps container state across compose and ps calls.

    Compose service ``ceo`` runs as container ``afro-ceo``; every other
    service's container carries the service name.
    """

    def __init__(self, services: list[str], running: set[str] | None = None):
        super().__init__()
        self.services = list(services)
        self.running: set[str] = set(running or ())
        self.created: set[str] = set(self.running)

    @staticmethod
    def container(service: str) -> str:
        return CEO_CONTAINER if service == "ceo" else service

    def respond(self, cmd: list[str]) -> CommandResult:
        if cmd[:2] == ["docker", "ps"]:
            lines = [
                f"{name}\t{'Up 5 minutes' if name in self.running else 'Exited (0) 1 minute ago'}"
                for name in sorted(self.created)
            ]
            return CommandResult(success=True, output="\n".join(lines), exit_code=0)

        verb_index = next(i for i, arg in enumerate(cmd) if arg in ("up", "stop", "down", "restart"))
        verb = cmd[verb_index]
        targets = [a for a in cmd[verb_index + 1:] if not a.startswith("-")] or self.services
        names = {self.container(s) for s in targets}
        if verb in ("up", "restart"):
            self.running |= names
            self.created |= names
        elif verb == "stop":
            self.running -= names
        else:
            self.running.clear()
            self.created.clear()
        return CommandResult(success=True, exit_code=0)


class MockCall:
    """Mock call_next function for middleware testing."""

    def __init__(self, return_value=None, exception=None, delay=0):
        self.return_value = return_value or {"status": "success"}
        self.exception = exception
        self.delay = delay
        self.call_count = 0

    async def __call__(self, context):
        self.call_count += 1
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        if self.exception:
            raise self.exception
        return self.return_value


def ok(output: str = "") -> CommandResult:
    return CommandResult(success=True, output=output, exit_code=0)


def failed(error: str, exit_code: int | None = 1) -> CommandResult:
    return CommandResult(success=False, error=error, exit_code=exit_code)


@pytest.fixture
def registry() -> OperationModeRegistry:
    return OperationModeRegistry()


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def config(tmp_path) -> CeoAgentConfig:
    """Default configuration with data kept under tmp_path."""
    return CeoAgentConfig(server=ServerConfig(data_dir=str(tmp_path / "data")))


@pytest.fixture
def store(tmp_path) -> RecordStore:
    return RecordStore(tmp_path / "data")


@pytest.fixture
def server(config, fake_executor, store) -> AfroCeoServer:
    """Server wired to the fake executor, with its app built."""
    server = AfroCeoServer(config, executor=fake_executor, store=store)
    server.build_app()
    return server


@pytest.fixture
def http_client(server: AfroCeoServer) -> TestClient:
    return TestClient(server.app.http_app())


@pytest.fixture
async def client(server: AfroCeoServer) -> AsyncGenerator[Client, None]:
    """FastMCP client connected to the server in-memory."""
    async with Client(server.app) as client:
        yield client


@pytest.fixture
def mock_context():
    """Mock MiddlewareContext for unit tests."""
    context = MagicMock()
    context.method = "tools/call"
    context.source = "client"
    context.type = "request"
    context.message = SimpleNamespace(name="afro_stack", arguments={"action": "status"})
    return context
