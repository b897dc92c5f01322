"""GitHub issue creation for the CEO agent."""

import asyncio
from typing import Any

import aiohttp
import structlog

from ..core.config_loader import GitHubConfig
from ..core.exceptions import GitHubError

BASE_LABEL = "ceo-agent"


class GitHubIssueClient:
    """Creates issues in the configured repository via the REST API."""

    def __init__(self, config: GitHubConfig, timeout: float = 15):
        self.config = config
        self.timeout = timeout
        self.logger = structlog.get_logger().bind(component="github")

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def create_issue(
        self, title: str, body: str, labels: list[str] | None = None
    ) -> dict[str, Any] | None:
        """Open an issue, or return None when the integration is not configured.

        Raises:
            GitHubError: If the API call fails
        """
        if not self.enabled:
            self.logger.info("GitHub not configured, skipping issue creation", title=title)
            return None

        owner, repo = self.config.repo.split("/", 1)
        url = f"{self.config.api_url.rstrip('/')}/repos/{owner}/{repo}/issues"
        payload = {
            "title": title,
            "body": body,
            "labels": [BASE_LABEL, *(labels or [])],
        }
        try:
            issue = await self._request_json("POST", url, json=payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error("GitHub issue creation failed", title=title, error=str(e))
            raise GitHubError(f"Failed to create GitHub issue: {e}") from e

        self.logger.info(
            "Created GitHub issue", number=issue.get("number"), url=issue.get("html_url")
        )
        return issue

    async def create_issue_safely(
        self, title: str, body: str, labels: list[str] | None = None
    ) -> dict[str, Any] | None:
        """Like ``create_issue`` but logs failures instead of raising."""
        try:
            return await self.create_issue(title, body, labels)
        except GitHubError as e:
            self.logger.warning("Continuing without GitHub issue", error=str(e))
            return None

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        headers = {
            "Authorization": f"Bearer {self.config.token}",
            "Accept": "application/vnd.github+json",
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
            async with session.request(method, url, **kwargs) as response:
                response.raise_for_status()
                return await response.json()
