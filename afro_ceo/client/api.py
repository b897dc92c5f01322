"""Async HTTP client for the CEO Agent API."""

import asyncio
from typing import Any

import aiohttp
import structlog

from ..core.exceptions import BackendRequestError, BackendUnreachableError
from ..models.stack import CommandResult, OperationMode, OperationResponse, StackStatus
from .probe import HealthProbe


def _is_problem(data: Any) -> bool:
    """True for an RFC 7807 error body (as opposed to an operation result)."""
    return isinstance(data, dict) and data.get("success") is False and "type" in data


class CeoAgentClient:
    """Thin wrapper over the HTTP routes.

    Error bodies from the backend raise ``BackendRequestError``; operation
    results with ``success: false`` are returned. When a probe is attached,
    mutating calls fail fast with ``BackendUnreachableError`` while the
    backend is not known to be reachable.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_prefix: str = "/api",
        timeout: float = 30,
        probe: HealthProbe | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
        self.timeout = timeout
        self.probe = probe
        self.logger = structlog.get_logger().bind(component="ceo_client")

    def create_probe(self, **kwargs) -> HealthProbe:
        """Attach and return a probe that polls this client's health endpoint."""
        self.probe = HealthProbe(self.health, **kwargs)
        return self.probe

    def _url(self, path: str) -> str:
        return f"{self.base_url}{self.api_prefix}{path}"

    def _require_connected(self) -> None:
        if self.probe is not None:
            self.probe.require_connected()

    async def health(self) -> bool:
        try:
            data = await self._request_json("GET", f"{self.base_url}/health")
        except BackendUnreachableError:
            return False
        return isinstance(data, dict) and data.get("status") == "healthy"

    async def stack_status(self) -> StackStatus:
        return StackStatus(**await self._request_model_data("GET", self._url("/stack-status")))

    async def modes(self) -> list[OperationMode]:
        return [OperationMode(**m) for m in await self._request_json("GET", self._url("/modes"))]

    async def stack_operation(
        self, operation: str, mode: str | None = None, services: list[str] | None = None
    ) -> OperationResponse:
        self._require_connected()
        body = {"operation": operation, "mode": mode, "services": services or []}
        data = await self._request_model_data("POST", self._url("/stack-operation"), json=body)
        return OperationResponse(**data)

    async def git_operation(self, operation: str) -> OperationResponse:
        self._require_connected()
        data = await self._request_model_data(
            "POST", self._url("/git-operation"), json={"operation": operation}
        )
        return OperationResponse(**data)

    async def docker_execute(self, command: str) -> dict[str, Any]:
        """Run an allow-listed command; a 403 error body is returned as-is."""
        self._require_connected()
        data = await self._request_json(
            "POST", self._url("/docker-execute"), json={"command": command}
        )
        if _is_problem(data):
            return data
        return CommandResult(**data).model_dump()

    async def service_logs(self, service_id: str, tail: int = 100) -> CommandResult:
        data = await self._request_model_data(
            "GET", self._url(f"/service-logs/{service_id}"), params={"tail": str(tail)}
        )
        return CommandResult(**data)

    async def _request_model_data(self, method: str, url: str, **kwargs) -> Any:
        data = await self._request_json(method, url, **kwargs)
        if _is_problem(data):
            raise BackendRequestError(data)
        return data

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        """Client errors (4xx) carry a JSON body and are returned, not raised."""
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, **kwargs) as response:
                    if response.status >= 500:
                        raise BackendUnreachableError(
                            f"backend error {response.status} for {method} {url}"
                        )
                    return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning("CEO Agent request failed", method=method, url=url, error=str(e))
            raise BackendUnreachableError(f"backend unreachable: {e}") from e
