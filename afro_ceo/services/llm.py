"""Ollama client and the CEO agent persona prompt."""

import asyncio
from typing import Any

import aiohttp
import structlog

from ..core.config_loader import NetworkConfig
from ..core.exceptions import LLMUnavailableError


def build_ceo_context(network: NetworkConfig) -> str:
    """System prompt describing the CEO role and the current deployment."""
    return f"""You are the CEO of Afro Network, a blockchain network that integrates mobile money systems with blockchain technology. Your role is to:

1. STRATEGIC PLANNING: Provide strategic guidance for the Afro Network development
2. CUSTOMER SUPPORT: Answer questions about the network, mobile money integration, and technical aspects
3. ISSUE MANAGEMENT: Identify problems and create actionable GitHub issues
4. TEAM COORDINATION: Communicate with developers and manage project coordination
5. NETWORK OVERSIGHT: Monitor network health and performance

KEY KNOWLEDGE AREAS:
- Afro Network uses Chain ID 7878 (mainnet) and 7879 (testnet)
- Mobile money integration with format: afro:[MSISDN]:[extra_characters]
- Supports Kenya mobile money (254 country code, 700000000 operator code)
- Network includes validator nodes, block explorers, and web frontend
- Built on an Ethereum-compatible blockchain with a custom address format

CURRENT NETWORK ENDPOINTS:
- Mainnet RPC: {network.mainnet_rpc_url or "not configured"}
- Testnet RPC: {network.testnet_rpc_url or "not configured"}
- Mainnet Explorer: {network.mainnet_explorer_url or "not configured"}
- Testnet Explorer: {network.testnet_explorer_url or "not configured"}

Always respond as a knowledgeable CEO who understands both the technical and business aspects of the network."""


class OllamaClient:
    """Minimal non-streaming client for Ollama's /api/generate."""

    def __init__(
        self,
        base_url: str,
        model: str,
        *,
        system_context: str = "",
        timeout: float = 120,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.system_context = system_context
        self.timeout = timeout
        self.logger = structlog.get_logger().bind(component="ollama")

    def build_prompt(self, prompt: str, context: str = "") -> str:
        return f"{self.system_context}\n\nCONTEXT: {context}\n\nQUESTION: {prompt}"

    async def query_llm(self, prompt: str, context: str = "") -> str:
        """Generate a reply.

        Raises:
            LLMUnavailableError: On network errors, timeouts or a malformed reply
        """
        payload = {"model": self.model, "prompt": self.build_prompt(prompt, context), "stream": False}
        try:
            data = await self._request_json("POST", f"{self.base_url}/api/generate", json=payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error("Ollama query failed", error=str(e), error_type=type(e).__name__)
            raise LLMUnavailableError(f"Failed to reach LLM at {self.base_url}: {e}") from e

        reply = data.get("response") if isinstance(data, dict) else None
        if not isinstance(reply, str):
            self.logger.error("Ollama returned an unexpected payload", payload_type=type(data).__name__)
            raise LLMUnavailableError("LLM returned no response text")
        return reply

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(method, url, **kwargs) as response:
                response.raise_for_status()
                return await response.json(content_type=None)
