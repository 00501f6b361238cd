"""Unit tests for the tool registry and mode router."""
import json

import pytest

from brewchat.core.errors import ProtocolViolation, StoreUnavailable
from brewchat.services.agent.model import ToolCall
from brewchat.services.agent.modes import AgentMode
from brewchat.services.agent.registry import (
    ORDER_TOOLS,
    RECOMMENDATION_TOOLS,
    TOOL_SPECS,
    ToolName,
    tools_for_mode,
)
from brewchat.services.agent.router import ModeRouter
from brewchat.services.ordering.models import OrderDraft
from brewchat.services.session.models import Session


class TestToolRegistry:
    """Test tool specs and permitted sets."""

    def test_every_tool_has_a_spec(self):
        assert set(TOOL_SPECS) == set(ToolName)

    def test_permitted_sets(self):
        assert tools_for_mode(AgentMode.RECOMMENDATION) == RECOMMENDATION_TOOLS
        assert tools_for_mode(AgentMode.ORDERING) == ORDER_TOOLS | RECOMMENDATION_TOOLS
        assert not ORDER_TOOLS & tools_for_mode(AgentMode.RECOMMENDATION)

    def test_schemas_are_self_contained(self, tool_executor):
        """Test that nested argument models are inlined for the API."""
        schemas = tool_executor.schemas_for(AgentMode.ORDERING)

        modify = next(s for s in schemas if s["function"]["name"] == "modify_item")
        encoded = json.dumps(modify)
        assert "$ref" not in encoded
        assert "$defs" not in encoded
        assert modify["function"]["parameters"]["properties"]["patch"]["type"] == "object"

    def test_resolve_rejects_extra_arguments(self, tool_executor):
        call = ToolCall(id="c1", name="view_order", arguments={"verbose": True})

        with pytest.raises(ProtocolViolation):
            tool_executor.resolve(call, AgentMode.ORDERING)

    def test_resolve_rejects_wrong_types(self, tool_executor):
        call = ToolCall(id="c1", name="set_quantity", arguments={"line_index": "first", "quantity": 2})

        with pytest.raises(ProtocolViolation, match="line_index"):
            tool_executor.resolve(call, AgentMode.ORDERING)

    @pytest.mark.asyncio
    async def test_infrastructure_errors_propagate(self, order_tools, recommendation_tools, tool_executor):
        """Test that store failures are not turned into tool results."""

        async def broken(*args, **kwargs):
            raise StoreUnavailable("down")

        recommendation_tools.suggest = broken
        session = Session(id="s1", owner="customer-1")

        with pytest.raises(StoreUnavailable):
            await tool_executor.execute(ToolCall(id="c1", name="suggest", arguments={}), session)


class TestModeRouter:
    """Test mode routing decisions."""

    @pytest.fixture
    def router(self, catalog_repository):
        return ModeRouter(catalog_repository)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [
            "I'd like a large latte with oat milk",
            "Can I get a mocha?",
            "I’ll have the cold brew",
            "give me two hot chocolates please",
        ],
    )
    async def test_ordering_intent(self, router, message):
        assert await router.has_ordering_intent(message)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [
            "what do you recommend?",
            "can I get something sweet?",
            "tell me about the latte",
            "what's the difference between a latte and a mocha?",
        ],
    )
    async def test_no_ordering_intent(self, router, message):
        assert not await router.has_ordering_intent(message)

    @pytest.mark.asyncio
    async def test_ordering_sticks_while_draft_active(self, router):
        session = Session(
            id="s1", owner="customer-1", mode=AgentMode.ORDERING, draft=OrderDraft(draft_id="s1:1")
        )

        assert await router.route(session, "what do you recommend?") == AgentMode.ORDERING

    @pytest.mark.asyncio
    async def test_ordering_without_draft_can_go_back(self, router):
        session = Session(id="s1", owner="customer-1", mode=AgentMode.ORDERING)

        assert await router.route(session, "what do you recommend?") == AgentMode.RECOMMENDATION
        assert await router.route(session, "yes please") == AgentMode.ORDERING
