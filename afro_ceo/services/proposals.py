"""Proposal tracking and LLM-drafted (agentic) proposals."""

from datetime import datetime, timezone

import structlog

from ..core.exceptions import OperationValidationError, ProposalNotFoundError
from ..core.store import RecordStore
from ..models.params import ProposalCreateParams, ProposalUpdateParams
from ..models.proposals import AgenticProposal, Proposal
from .github import GitHubIssueClient
from .llm import OllamaClient

PROPOSALS = "proposals"
AGENTIC_PROPOSALS = "agentic_proposals"

DRAFT_INSTRUCTIONS = (
    "Draft a governance proposal for the Afro Network on the topic below. "
    "Start with a single title line, then describe the motivation, the proposed "
    "change and the expected impact."
)


def split_draft(text: str, fallback_title: str) -> tuple[str, str]:
    """Split an LLM draft into (title, body); the first non-empty line is the title."""
    lines = text.strip().splitlines()
    for index, line in enumerate(lines):
        title = line.strip().lstrip("#").strip()
        if title.lower().startswith("title:"):
            title = title[len("title:"):].strip()
        title = title.strip("*").strip()
        if title:
            body = "\n".join(lines[index + 1:]).strip()
            return title[:200], body or text.strip()
    return fallback_title[:200], text.strip()


class ProposalService:
    """CRUD over proposals plus draft generation and publication."""

    def __init__(self, store: RecordStore, llm: OllamaClient, github: GitHubIssueClient):
        self.store = store
        self.llm = llm
        self.github = github
        self.logger = structlog.get_logger().bind(component="proposals")

    async def list_proposals(self) -> list[Proposal]:
        return [Proposal(**data) for data in await self.store.list_records(PROPOSALS)]

    async def get_proposal(self, proposal_id: str) -> Proposal:
        data = await self.store.get(PROPOSALS, proposal_id)
        if data is None:
            raise ProposalNotFoundError(proposal_id)
        return Proposal(**data)

    async def create_proposal(self, params: ProposalCreateParams) -> Proposal:
        proposal = Proposal(**params.model_dump())
        await self.store.put(PROPOSALS, proposal.id, proposal.model_dump())
        self.logger.info("Proposal created", proposal_id=proposal.id, title=proposal.title)
        return proposal

    async def update_proposal(self, proposal_id: str, params: ProposalUpdateParams) -> Proposal:
        """Apply the fields present in ``params``.

        Raises:
            ProposalNotFoundError: If no proposal has this id
        """
        proposal = await self.get_proposal(proposal_id)
        changes = params.model_dump(exclude_none=True)
        updated = proposal.model_copy(
            update={**changes, "updated_at": datetime.now(timezone.utc)}
        )
        await self.store.put(PROPOSALS, updated.id, updated.model_dump())
        self.logger.info("Proposal updated", proposal_id=proposal_id, fields=sorted(changes))
        return updated

    async def list_agentic(self) -> list[AgenticProposal]:
        return [
            AgenticProposal(**data) for data in await self.store.list_records(AGENTIC_PROPOSALS)
        ]

    async def generate_proposal(self, topic: str, context: str = "") -> AgenticProposal:
        """Ask the LLM for a draft and store it.

        Raises:
            LLMUnavailableError: If the LLM cannot produce a draft
        """
        text = await self.llm.query_llm(f"{DRAFT_INSTRUCTIONS}\n\nTOPIC: {topic}", context)
        title, body = split_draft(text, fallback_title=topic)
        draft = AgenticProposal(topic=topic, title=title, body=body)
        await self.store.put(AGENTIC_PROPOSALS, draft.id, draft.model_dump())
        self.logger.info("Agentic proposal drafted", draft_id=draft.id, topic=topic)
        return draft

    async def publish(self, draft_id: str, create_issue: bool = False) -> Proposal:
        """Copy a draft into the proposal list with status ``open``.

        Raises:
            ProposalNotFoundError: If no draft has this id
            OperationValidationError: If the draft was already published
        """
        data = await self.store.get(AGENTIC_PROPOSALS, draft_id)
        if data is None:
            raise ProposalNotFoundError(draft_id)
        draft = AgenticProposal(**data)
        if draft.status == "published":
            raise OperationValidationError(
                f"draft '{draft_id}' was already published as {draft.published_proposal_id}"
            )

        proposal = Proposal(
            title=draft.title,
            description=draft.body,
            status="open",
            labels=["agentic"],
            source_draft_id=draft.id,
        )
        if create_issue:
            issue = await self.github.create_issue_safely(
                f"Proposal: {proposal.title}", proposal.description, ["proposal"]
            )
            if issue:
                proposal.issue_url = issue.get("html_url")

        await self.store.put(PROPOSALS, proposal.id, proposal.model_dump())
        published = draft.model_copy(
            update={
                "status": "published",
                "published_proposal_id": proposal.id,
                "published_at": datetime.now(timezone.utc),
            }
        )
        await self.store.put(AGENTIC_PROPOSALS, published.id, published.model_dump())
        self.logger.info("Agentic proposal published", draft_id=draft_id, proposal_id=proposal.id)
        return proposal
