"""CEO chat: LLM reply with live network context, persisted history."""

import json
import re
from typing import Any

import structlog

from ..core.store import RecordStore
from ..models.proposals import Conversation
from .github import GitHubIssueClient
from .llm import OllamaClient
from .network import NetworkStatusChecker

CONVERSATIONS = "conversations"
HISTORY_LIMIT = 50
ISSUE_KEYWORDS = re.compile(r"issue|problem|bug", re.IGNORECASE)
ISSUE_LABELS = ["auto-generated", "ceo-identified"]


class ChatService:
    """Answers questions as the CEO agent."""

    def __init__(
        self,
        store: RecordStore,
        llm: OllamaClient,
        github: GitHubIssueClient,
        network: NetworkStatusChecker,
    ):
        self.store = store
        self.llm = llm
        self.github = github
        self.network = network
        self.logger = structlog.get_logger().bind(component="chat")

    async def chat(self, message: str, context: str = "") -> dict[str, Any]:
        """Reply to ``message``; files an issue when the reply reports one.

        Raises:
            LLMUnavailableError: If the LLM cannot be queried
        """
        network_status = await self.network.check()
        full_context = f"{context}\n\nCURRENT NETWORK STATUS: {json.dumps(network_status)}"

        response = await self.llm.query_llm(message, full_context)

        conversation = Conversation(
            message=message,
            response=response,
            context=full_context,
            network_status=network_status,
        )
        await self.store.put(CONVERSATIONS, conversation.id, conversation.model_dump())

        if ISSUE_KEYWORDS.search(response):
            issue = await self.github.create_issue_safely(
                f"CEO Agent Issue: {message[:50]}...",
                f"**Original Question:** {message}\n\n"
                f"**CEO Response:** {response}\n\n"
                f"**Network Status:** {json.dumps(network_status, indent=2)}\n\n"
                "*This issue was automatically created by the CEO Agent.*",
                ISSUE_LABELS,
            )
            if issue:
                self.logger.info(
                    "Created GitHub issue from chat", number=issue.get("number")
                )

        return {
            "response": response,
            "network_status": network_status,
            "timestamp": conversation.timestamp.isoformat(),
        }

    async def recent_conversations(self, limit: int = HISTORY_LIMIT) -> list[Conversation]:
        records = await self.store.list_records(CONVERSATIONS, limit=limit)
        return [Conversation(**data) for data in records]
