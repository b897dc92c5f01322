"""Afro Network reachability checks and the periodic monitor."""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any

import aiohttp
import structlog

from ..core.config_loader import NetworkConfig
from .github import GitHubIssueClient

RPC_PROBE = {"jsonrpc": "2.0", "method": "eth_chainId", "params": [], "id": 1}
EXPLORER_STATUS_PATH = "/api/v1/status"


class NetworkStatusChecker:
    """Probes mainnet and testnet RPC nodes and block explorers."""

    def __init__(self, config: NetworkConfig):
        self.config = config
        self.logger = structlog.get_logger().bind(component="network_status")

    async def check(self) -> dict[str, Any]:
        """Return ``{mainnet: {rpc, explorer}, testnet: {rpc, explorer}, timestamp}``.

        Unconfigured endpoints and failed probes both report False.
        """
        mainnet_rpc, testnet_rpc, mainnet_explorer, testnet_explorer = await asyncio.gather(
            self._probe_rpc("mainnet", self.config.mainnet_rpc_url),
            self._probe_rpc("testnet", self.config.testnet_rpc_url),
            self._probe_explorer("mainnet", self.config.mainnet_explorer_url),
            self._probe_explorer("testnet", self.config.testnet_explorer_url),
        )
        return {
            "mainnet": {"rpc": mainnet_rpc, "explorer": mainnet_explorer},
            "testnet": {"rpc": testnet_rpc, "explorer": testnet_explorer},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def _probe_rpc(self, network: str, url: str | None) -> bool:
        if not url:
            return False
        return await self._probe(network, "rpc", "POST", url, json=RPC_PROBE)

    async def _probe_explorer(self, network: str, url: str | None) -> bool:
        if not url:
            return False
        return await self._probe(
            network, "explorer", "GET", f"{url.rstrip('/')}{EXPLORER_STATUS_PATH}"
        )

    async def _probe(self, network: str, target: str, method: str, url: str, **kwargs) -> bool:
        try:
            await self._request(method, url, **kwargs)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.info(
                "Network check failed", network=network, target=target, url=url, error=str(e)
            )
            return False
        return True

    async def _request(self, method: str, url: str, **kwargs) -> None:
        timeout = aiohttp.ClientTimeout(total=self.config.check_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(method, url, **kwargs) as response:
                response.raise_for_status()


class NetworkMonitor:
    """Periodically checks the networks and files issues for outages."""

    ISSUE_LABELS = {
        "mainnet": ["critical", "mainnet", "auto-generated"],
        "testnet": ["testnet", "auto-generated"],
    }

    def __init__(
        self,
        checker: NetworkStatusChecker,
        github: GitHubIssueClient,
        interval_seconds: float = 300,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.checker = checker
        self.github = github
        self.interval_seconds = interval_seconds
        self._stopped = asyncio.Event()
        self.logger = structlog.get_logger().bind(component="network_monitor")

    async def run_once(self) -> dict[str, Any]:
        status = await self.checker.check()
        self.logger.info("Network status check", status=status)

        for network in ("mainnet", "testnet"):
            state = status[network]
            if state["rpc"] and state["explorer"]:
                continue
            body = (
                f"**Issue:** {network.capitalize()} services are experiencing problems.\n\n"
                f"**Status:** {json.dumps(state, indent=2)}\n\n"
                f"**Time:** {status['timestamp']}\n\n"
                "*This issue was automatically created by the CEO Agent monitoring system.*"
            )
            await self.github.create_issue_safely(
                f"Network Issue: {network.capitalize()} Services Down",
                body,
                self.ISSUE_LABELS[network],
            )
        return status

    async def run_forever(self) -> None:
        """Check on every interval until ``stop()`` is called."""
        self.logger.info("Network monitor started", interval_seconds=self.interval_seconds)
        while not self._stopped.is_set():
            try:
                await self.run_once()
            except Exception as e:
                self.logger.error("Scheduled monitoring error", error=str(e))
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
        self.logger.info("Network monitor stopped")

    def stop(self) -> None:
        self._stopped.set()
