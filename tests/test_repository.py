"""Tests for repository sync operations and the docker CLI service."""

import pytest

from afro_ceo.core.exceptions import CommandNotPermittedError, OperationValidationError, UnknownServiceError
from afro_ceo.models.enums import GitOperation
from afro_ceo.services.docker_cli import DockerCliService
from afro_ceo.services.repository import RepositorySyncService

from .conftest import FakeExecutor, failed, ok


@pytest.fixture
def repository(fake_executor) -> RepositorySyncService:
    return RepositorySyncService(fake_executor, timeout=30, build_timeout=600)


class TestRepositorySync:
    async def test_pull(self, repository, fake_executor):
        response = await repository.git_operation("pull")

        assert response.success
        assert response.message == "Git pull completed successfully"
        assert fake_executor.calls == [(["git", "pull", "origin", "main"], 30)]

    async def test_build_uses_long_timeout(self, repository, fake_executor):
        response = await repository.git_operation(GitOperation.BUILD)

        assert response.success
        assert fake_executor.calls == [(["docker-compose", "build", "--no-cache"], 600)]

    async def test_custom_remote_and_compose(self, fake_executor):
        repository = RepositorySyncService(
            fake_executor,
            compose_base=["docker", "compose", "-f", "stack.yml"],
            git_remote="upstream",
            git_branch="release",
        )

        await repository.git_operation("pull")
        await repository.git_operation("build")

        assert fake_executor.commands == [
            ["git", "pull", "upstream", "release"],
            ["docker", "compose", "-f", "stack.yml", "build", "--no-cache"],
        ]

    async def test_unknown_operation_is_rejected(self, repository, fake_executor):
        response = await repository.git_operation("push")

        assert not response.success
        assert response.failure == "validation"
        assert response.message.startswith("invalid operation: 'push'")
        assert fake_executor.calls == []

    async def test_failed_pull(self):
        executor = FakeExecutor(failed("fatal: not a git repository", exit_code=128))
        repository = RepositorySyncService(executor)

        response = await repository.git_operation("pull")

        assert not response.success
        assert response.failure == "execution"
        assert response.exit_code == 128
        assert response.message == "command failed: fatal: not a git repository"


class TestDockerCli:
    @pytest.fixture
    def docker_cli(self, fake_executor, registry) -> DockerCliService:
        return DockerCliService(fake_executor, registry)

    async def test_execute_permitted(self, docker_cli, fake_executor):
        fake_executor.queue(ok("afro-web\tUp 1 hour"))

        result = await docker_cli.execute("docker ps --all")

        assert result.success
        assert fake_executor.commands == [["docker", "ps", "--all"]]

    async def test_execute_not_permitted(self, docker_cli, fake_executor):
        with pytest.raises(CommandNotPermittedError) as exc_info:
            await docker_cli.execute("docker rm -f afro-web")

        assert exc_info.value.command == "docker rm -f afro-web"
        assert fake_executor.calls == []

    async def test_service_logs(self, docker_cli, fake_executor):
        fake_executor.queue(ok("block 1\nblock 2"))

        result = await docker_cli.service_logs("afro-validator", tail=50)

        assert result.output == "block 1\nblock 2"
        assert fake_executor.commands == [["docker", "logs", "--tail", "50", "afro-validator"]]

    @pytest.mark.parametrize("name", ["ceo", "afro-ceo"])
    async def test_ceo_logs_target_its_container(self, docker_cli, fake_executor, name):
        await docker_cli.service_logs(name)

        assert fake_executor.commands == [["docker", "logs", "--tail", "100", "afro-ceo"]]

    async def test_service_logs_unknown_service(self, docker_cli, fake_executor):
        with pytest.raises(UnknownServiceError):
            await docker_cli.service_logs("postgres")

        assert fake_executor.calls == []

    @pytest.mark.parametrize("tail", [0, -5, 5001])
    async def test_service_logs_tail_bounds(self, docker_cli, tail):
        with pytest.raises(OperationValidationError):
            await docker_cli.service_logs("afro-web", tail=tail)
