"""Persisted records: conversations, proposals, AI-drafted proposals."""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import Field

from .enums import AgenticProposalStatus, ProposalStatus
from .stack import CEOModel


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class Conversation(CEOModel):
    """One chat exchange with the CEO agent."""

    id: str = Field(default_factory=_new_id)
    message: str
    response: str
    context: str = ""
    network_status: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_now)


class Proposal(CEOModel):
    """Governance/roadmap proposal tracked by the dashboard."""

    id: str = Field(default_factory=_new_id)
    title: str
    description: str = ""
    status: ProposalStatus = "open"
    author: str = "ceo-agent"
    labels: list[str] = Field(default_factory=list)
    source_draft_id: str | None = None
    issue_url: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class AgenticProposal(CEOModel):
    """Proposal drafted by the LLM, awaiting publication."""

    id: str = Field(default_factory=_new_id)
    topic: str
    title: str
    body: str
    status: AgenticProposalStatus = "draft"
    published_proposal_id: str | None = None
    created_at: datetime = Field(default_factory=_now)
    published_at: datetime | None = None
