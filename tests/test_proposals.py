"""Tests for chat and proposal services."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from afro_ceo.core.exceptions import LLMUnavailableError, OperationValidationError, ProposalNotFoundError
from afro_ceo.models.params import ProposalCreateParams, ProposalUpdateParams
from afro_ceo.services.chat import ChatService
from afro_ceo.services.proposals import ProposalService, split_draft

NETWORK_STATUS = {
    "mainnet": {"rpc": True, "explorer": True},
    "testnet": {"rpc": False, "explorer": True},
    "timestamp": "2026-01-01T00:00:00+00:00",
}


@pytest.fixture
def llm():
    llm = MagicMock()
    llm.query_llm = AsyncMock(return_value="All systems nominal.")
    return llm


@pytest.fixture
def github():
    github = MagicMock()
    github.create_issue_safely = AsyncMock(return_value={"number": 7, "html_url": "https://gh/7"})
    return github


@pytest.fixture
def network():
    network = MagicMock()
    network.check = AsyncMock(return_value=NETWORK_STATUS)
    return network


class TestChatService:
    @pytest.fixture
    def chat(self, store, llm, github, network) -> ChatService:
        return ChatService(store, llm, github, network)

    async def test_reply_includes_network_context(self, chat, llm):
        reply = await chat.chat("How is the testnet?", context="dashboard")

        assert reply["response"] == "All systems nominal."
        assert reply["network_status"] == NETWORK_STATUS
        prompt, context = llm.query_llm.await_args.args
        assert prompt == "How is the testnet?"
        assert context.startswith("dashboard")
        assert "CURRENT NETWORK STATUS" in context

    async def test_conversation_is_saved(self, chat):
        await chat.chat("first")
        await chat.chat("second")

        history = await chat.recent_conversations()

        assert [c.message for c in history] == ["first", "second"]
        assert history[0].network_status == NETWORK_STATUS

    async def test_history_is_capped(self, chat):
        for i in range(4):
            await chat.chat(f"q{i}")

        history = await chat.recent_conversations(limit=2)

        assert [c.message for c in history] == ["q2", "q3"]

    async def test_issue_keywords_open_github_issue(self, chat, llm, github):
        llm.query_llm.return_value = "There is a Problem with the testnet RPC."

        await chat.chat("Why is the testnet down?")

        github.create_issue_safely.assert_awaited_once()
        title, body, labels = github.create_issue_safely.await_args.args
        assert title.startswith("CEO Agent Issue: Why is the testnet down?")
        assert "**CEO Response:**" in body
        assert labels == ["auto-generated", "ceo-identified"]

    async def test_no_issue_without_keywords(self, chat, github):
        await chat.chat("Hello")

        github.create_issue_safely.assert_not_awaited()

    async def test_llm_failure_propagates_and_saves_nothing(self, chat, llm):
        llm.query_llm.side_effect = LLMUnavailableError("ollama down")

        with pytest.raises(LLMUnavailableError):
            await chat.chat("Hello")

        assert await chat.recent_conversations() == []


class TestProposalService:
    @pytest.fixture
    def proposals(self, store, llm, github) -> ProposalService:
        return ProposalService(store, llm, github)

    async def test_create_and_list(self, proposals):
        created = await proposals.create_proposal(
            ProposalCreateParams(title="Add Uganda operators", labels=["mobile-money"])
        )

        listed = await proposals.list_proposals()

        assert [p.id for p in listed] == [created.id]
        assert listed[0].status == "open"
        assert listed[0].labels == ["mobile-money"]

    async def test_update_changes_only_given_fields(self, proposals):
        created = await proposals.create_proposal(
            ProposalCreateParams(title="Fee change", description="Lower gas")
        )

        updated = await proposals.update_proposal(
            created.id, ProposalUpdateParams(status="approved")
        )

        assert updated.status == "approved"
        assert updated.title == "Fee change"
        assert updated.description == "Lower gas"
        assert updated.updated_at >= created.updated_at
        assert (await proposals.get_proposal(created.id)).status == "approved"

    async def test_update_missing_proposal(self, proposals):
        with pytest.raises(ProposalNotFoundError):
            await proposals.update_proposal("nope", ProposalUpdateParams(title="x"))

    async def test_generate_and_publish(self, proposals, llm, github):
        llm.query_llm.return_value = "# Title: Validator rewards\n\nIncrease rewards by 5%."

        draft = await proposals.generate_proposal("validator incentives")
        published = await proposals.publish(draft.id, create_issue=True)

        assert draft.status == "draft"
        assert draft.title == "Validator rewards"
        assert draft.body == "Increase rewards by 5%."
        assert published.status == "open"
        assert published.source_draft_id == draft.id
        assert published.issue_url == "https://gh/7"
        drafts = await proposals.list_agentic()
        assert drafts[0].status == "published"
        assert drafts[0].published_proposal_id == published.id
        assert [p.id for p in await proposals.list_proposals()] == [published.id]

    async def test_publish_without_issue(self, proposals, github):
        draft = await proposals.generate_proposal("fees")

        await proposals.publish(draft.id)

        github.create_issue_safely.assert_not_awaited()

    async def test_publish_twice_rejected(self, proposals):
        draft = await proposals.generate_proposal("fees")
        await proposals.publish(draft.id)

        with pytest.raises(OperationValidationError, match="already published"):
            await proposals.publish(draft.id)

    async def test_publish_unknown_draft(self, proposals):
        with pytest.raises(ProposalNotFoundError):
            await proposals.publish("missing")


@pytest.mark.parametrize(
    "text, title, body",
    [
        ("Title: A\nBody", "A", "Body"),
        ("\n\n## **Bold title**\nline 1\nline 2", "Bold title", "line 1\nline 2"),
        ("Only one line", "Only one line", "Only one line"),
        ("   ", "fallback", ""),
    ],
)
def test_split_draft(text, title, body):
    assert split_draft(text, fallback_title="fallback") == (title, body)
