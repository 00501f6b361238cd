"""Unit tests for session persistence."""
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import update

from brewchat.core.errors import NotFound, SessionBusy
from brewchat.db.models import SessionRecord
from brewchat.services.agent.modes import AgentMode
from brewchat.services.ordering.models import OrderDraft, OrderLineItem
from brewchat.services.session.models import (
    ChatMessage,
    MessageRole,
    ToolCallPayload,
    ToolResultPayload,
)


def user(content):
    return ChatMessage(role=MessageRole.USER, content=content)


class TestSessionStore:
    """Test session store operations."""

    @pytest.mark.asyncio
    async def test_create_and_load(self, session_store):
        """Test that a created session can be loaded back."""
        created = await session_store.create(owner="customer-1", session_id="s1")

        loaded = await session_store.load("s1")

        assert loaded.id == created.id == "s1"
        assert loaded.owner == "customer-1"
        assert loaded.mode == AgentMode.RECOMMENDATION
        assert loaded.messages == []
        assert loaded.draft is None
        assert loaded.version == 0

    @pytest.mark.asyncio
    async def test_load_missing(self, session_store):
        assert await session_store.load("nope") is None

    @pytest.mark.asyncio
    async def test_append_assigns_positions_and_bumps_version(self, session_store):
        await session_store.create(owner="customer-1", session_id="s1")

        await session_store.append("s1", user("hi"))
        session = await session_store.append("s1", user("a latte please"))

        assert [m.position for m in session.messages] == [0, 1]
        assert session.version == 2
        assert (await session_store.load("s1")).messages[1].content == "a latte please"

    @pytest.mark.asyncio
    async def test_record_tool_step_commits_together(self, session_store):
        """Test that call, result and draft land in one write."""
        await session_store.create(owner="customer-1", session_id="s1")
        draft = OrderDraft(
            draft_id="s1:1",
            items=[OrderLineItem(beverage_id="hot-chocolate", beverage_name="Hot Chocolate", unit_price=3.5)],
        )
        call = ChatMessage(
            role=MessageRole.AGENT,
            tool_call=ToolCallPayload(id="c1", name="add_item", arguments={"beverage_id": "hot-chocolate"}),
        )
        result = ChatMessage(
            role=MessageRole.TOOL,
            tool_result=ToolResultPayload(tool_call_id="c1", name="add_item", ok=True, data={}),
        )

        await session_store.record_tool_step("s1", call, result, draft)
        loaded = await session_store.load("s1")

        assert loaded.version == 1
        assert loaded.draft == draft
        assert loaded.draft_sequence == 1
        assert loaded.messages[0].tool_call.arguments == {"beverage_id": "hot-chocolate"}
        assert loaded.messages[1].tool_result.tool_call_id == "c1"

    @pytest.mark.asyncio
    async def test_switch_mode(self, session_store):
        await session_store.create(owner="customer-1", session_id="s1")

        session = await session_store.switch_mode("s1", AgentMode.ORDERING)

        assert session.mode == AgentMode.ORDERING
        assert (await session_store.load("s1")).mode == AgentMode.ORDERING

    @pytest.mark.asyncio
    async def test_cannot_leave_ordering_with_active_draft(self, session_store):
        """Test that a failed mutation writes nothing."""
        await session_store.create(owner="customer-1", session_id="s1")
        await session_store.switch_mode("s1", AgentMode.ORDERING)
        await session_store.upsert_draft("s1", OrderDraft(draft_id="s1:1"))

        with pytest.raises(ValueError):
            await session_store.switch_mode("s1", AgentMode.RECOMMENDATION)

        loaded = await session_store.load("s1")
        assert loaded.mode == AgentMode.ORDERING
        assert loaded.version == 2

    @pytest.mark.asyncio
    async def test_apply_missing_session(self, session_store):
        with pytest.raises(NotFound):
            await session_store.append("nope", user("hi"))

    @pytest.mark.asyncio
    async def test_concurrent_write_is_rejected(self, session_store, test_db):
        """Test that a write based on a stale version raises SessionBusy."""
        await session_store.create(owner="customer-1", session_id="s1")
        stale = await session_store._get_record("s1")

        # Another writer gets in first
        await test_db.execute(
            update(SessionRecord)
            .where(SessionRecord.id == "s1")
            .values(version=SessionRecord.version + 1)
            .execution_options(synchronize_session=False)
        )
        await test_db.commit()

        session_store._get_record = AsyncMock(return_value=stale)
        with pytest.raises(SessionBusy):
            await session_store.append("s1", user("hi"))
