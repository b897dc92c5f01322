"""Tests for the client-side health probe and API client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from afro_ceo.client import CeoAgentClient, HealthProbe
from afro_ceo.core.exceptions import BackendRequestError, BackendUnreachableError
from afro_ceo.models.enums import ProbeState


class TestHealthProbe:
    async def test_starts_in_checking_state(self):
        probe = HealthProbe(AsyncMock(return_value=True))

        assert probe.state is ProbeState.CHECKING
        with pytest.raises(BackendUnreachableError, match="backend unreachable"):
            probe.require_connected()

    async def test_check_once_transitions(self):
        check = AsyncMock(side_effect=[True, False])
        changes = []
        probe = HealthProbe(check, on_change=changes.append)

        assert await probe.check_once() is ProbeState.CONNECTED
        probe.require_connected()
        assert await probe.check_once() is ProbeState.DISCONNECTED

        assert changes == [ProbeState.CONNECTED, ProbeState.DISCONNECTED]
        with pytest.raises(BackendUnreachableError):
            probe.require_connected()

    async def test_failing_callback_does_not_stop_polling(self):
        results = iter([True, False])
        check = AsyncMock(side_effect=lambda: next(results, True))
        on_change = MagicMock(side_effect=RuntimeError("ui gone"))

        async with HealthProbe(check, interval=0.01, failure_backoff=1, on_change=on_change) as probe:
            for _ in range(100):
                if check.await_count >= 3:
                    break
                await asyncio.sleep(0.01)
            assert probe.running

        assert check.await_count >= 3
        assert on_change.call_count >= 2
        assert probe.state is ProbeState.CONNECTED

    async def test_exception_counts_as_failure(self):
        probe = HealthProbe(AsyncMock(side_effect=aiohttp.ClientError("refused")))

        assert await probe.check_once() is ProbeState.DISCONNECTED
        assert probe.consecutive_failures == 1

    async def test_backoff_is_capped(self):
        probe = HealthProbe(
            AsyncMock(return_value=False), interval=10, failure_backoff=2, max_interval=60
        )

        delays = []
        for _ in range(4):
            await probe.check_once()
            delays.append(probe.next_delay())

        assert delays == [20, 40, 60, 60]

    async def test_success_resets_backoff(self):
        probe = HealthProbe(AsyncMock(side_effect=[False, False, True]), interval=5)
        for _ in range(3):
            await probe.check_once()

        assert probe.consecutive_failures == 0
        assert probe.next_delay() == 5

    async def test_background_polling_and_stop(self):
        check = AsyncMock(return_value=True)

        async with HealthProbe(check, interval=0.01) as probe:
            assert probe.running
            for _ in range(100):
                if check.await_count >= 3:
                    break
                await asyncio.sleep(0.01)

        assert check.await_count >= 3
        assert not probe.running
        assert probe.connected

    async def test_start_is_idempotent(self):
        probe = HealthProbe(AsyncMock(return_value=True), interval=10)
        probe.start()
        task = probe._task
        probe.start()

        assert probe._task is task
        await probe.stop()
        await probe.stop()

    @pytest.mark.parametrize(
        "kwargs",
        [{"interval": 0}, {"interval": -1}, {"failure_backoff": 0.5}],
    )
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ValueError):
            HealthProbe(AsyncMock(), **kwargs)


class TestCeoAgentClient:
    @pytest.fixture
    def api(self) -> CeoAgentClient:
        return CeoAgentClient("http://ceo:3000/", api_prefix="api")

    async def test_health(self, api):
        with patch.object(
            api, "_request_json", AsyncMock(return_value={"status": "healthy"})
        ) as req:
            assert await api.health()

        req.assert_awaited_once_with("GET", "http://ceo:3000/health")

    async def test_health_false_when_unreachable(self, api):
        with patch.object(
            api, "_request_json", AsyncMock(side_effect=BackendUnreachableError("down"))
        ):
            assert not await api.health()

    async def test_stack_operation_posts_body(self, api):
        body = {"success": True, "message": "Stack start completed successfully"}
        with patch.object(api, "_request_json", AsyncMock(return_value=body)) as req:
            response = await api.stack_operation("start", "testnet", ["afro-testnet-validator"])

        assert response.success
        req.assert_awaited_once_with(
            "POST",
            "http://ceo:3000/api/stack-operation",
            json={"operation": "start", "mode": "testnet", "services": ["afro-testnet-validator"]},
        )

    async def test_mutating_calls_gated_by_probe(self, api):
        probe = api.create_probe(interval=10)
        probe.state = ProbeState.DISCONNECTED

        with patch.object(api, "_request_json", AsyncMock()) as req:
            for call in (
                api.stack_operation("start"),
                api.git_operation("pull"),
                api.docker_execute("docker ps"),
            ):
                with pytest.raises(BackendUnreachableError):
                    await call

        req.assert_not_awaited()

    async def test_read_calls_not_gated(self, api):
        api.create_probe(interval=10)
        status = {"mainnet": True, "connected": True}

        with patch.object(api, "_request_json", AsyncMock(return_value=status)):
            result = await api.stack_status()

        assert result.mainnet

    async def test_docker_execute_returns_error_body(self, api):
        error = {"success": False, "error": "command not permitted: x", "type": "/problems/command-not-permitted"}

        with patch.object(api, "_request_json", AsyncMock(return_value=error)):
            assert await api.docker_execute("rm -rf /") == error

    async def test_error_body_raises_typed_error(self, api):
        error = {
            "success": False,
            "error": "Validation failed for 'operation': Field required",
            "type": "/problems/validation-error",
        }

        with patch.object(api, "_request_json", AsyncMock(return_value=error)):
            with pytest.raises(BackendRequestError, match="Field required") as exc_info:
                await api.stack_operation("start")

        assert exc_info.value.problem_type == "/problems/validation-error"
        assert exc_info.value.problem == error

    async def test_rejected_operation_is_returned(self, api):
        rejected = {
            "success": False,
            "error": "invalid operation: unknown service(s) postgres",
            "message": "invalid operation: unknown service(s) postgres",
            "failure": "validation",
        }

        with patch.object(api, "_request_json", AsyncMock(return_value=rejected)):
            response = await api.stack_operation("start", services=["postgres"])

        assert response.failure == "validation"

    async def test_service_logs_unknown_service_raises(self, api):
        error = {"success": False, "error": "unknown service(s): postgres", "type": "/problems/validation-error"}

        with patch.object(api, "_request_json", AsyncMock(return_value=error)):
            with pytest.raises(BackendRequestError):
                await api.service_logs("postgres")

    async def test_transport_error_maps_to_unreachable(self, api):
        with patch("aiohttp.ClientSession.request", side_effect=aiohttp.ClientConnectionError("refused")):
            with pytest.raises(BackendUnreachableError):
                await api.modes()
