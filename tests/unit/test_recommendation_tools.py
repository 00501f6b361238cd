"""Unit tests for recommendation tools."""
from datetime import datetime, timezone

import pytest

from brewchat.core.errors import StoreUnavailable, ValidationError
from brewchat.services.ordering.models import OrderLineItem, SubmittedOrder
from brewchat.services.persistence.orders import SubmittedOrderStore
from brewchat.services.recommendation.tools import RecommendationTools


async def add_past_order(test_db, owner, beverage_id, quantity=1):
    """Insert a submitted order straight into the store."""
    line = OrderLineItem(
        beverage_id=beverage_id, beverage_name=beverage_id.title(), quantity=quantity, unit_price=3.5
    )
    order = SubmittedOrder(
        id=f"order-{owner}-{beverage_id}",
        session_id="old-session",
        draft_id=f"old-session:{beverage_id}",
        owner=owner,
        items=[line],
        subtotal=line.line_total,
        tax=0.0,
        total=line.line_total,
        summary=line.describe(),
        submitted_at=datetime.now(timezone.utc),
    )
    test_db.add(SubmittedOrderStore.build_record(order))
    await test_db.commit()


class TestSuggest:
    """Test preference-based suggestions."""

    @pytest.mark.asyncio
    async def test_suggest_by_tag(self, recommendation_tools):
        """Test that tag matches rank in catalog order."""
        suggestions = await recommendation_tools.suggest("customer-1", ["something sweet"])

        assert [s.beverage_id for s in suggestions] == ["mocha", "hot-chocolate"]
        assert suggestions[0].rationale == "sweet"
        assert suggestions[0].price == 4.5

    @pytest.mark.asyncio
    async def test_name_match_outranks_tag(self, recommendation_tools):
        suggestions = await recommendation_tools.suggest("customer-1", ["chocolate"])

        assert [s.beverage_id for s in suggestions] == ["hot-chocolate", "mocha"]

    @pytest.mark.asyncio
    async def test_nothing_matches(self, recommendation_tools):
        """Test that unmatched hints return an empty list instead of guesses."""
        assert await recommendation_tools.suggest("customer-1", ["green tea"]) == []

    @pytest.mark.asyncio
    async def test_no_hints_returns_house_favorites(self, recommendation_tools):
        suggestions = await recommendation_tools.suggest("customer-1", [], limit=3)

        assert [s.beverage_id for s in suggestions] == ["latte", "mocha", "cold-brew"]
        assert all(s.rationale == "a house favorite" for s in suggestions)

    @pytest.mark.asyncio
    async def test_negated_hint_excludes_matches(self, recommendation_tools):
        """Test that "no coffee" drops coffee drinks instead of ranking them first."""
        suggestions = await recommendation_tools.suggest("customer-1", ["no coffee"])

        ids = [s.beverage_id for s in suggestions]
        assert "cold-brew" not in ids
        assert ids == ["latte", "mocha", "hot-chocolate"]

    @pytest.mark.asyncio
    async def test_exclusion_combines_with_wanted_terms(self, recommendation_tools):
        suggestions = await recommendation_tools.suggest(
            "customer-1", ["something sweet", "without chocolate"]
        )

        assert suggestions == []

    @pytest.mark.asyncio
    async def test_non_prefix_excludes(self, recommendation_tools):
        suggestions = await recommendation_tools.suggest("customer-1", ["non-espresso", "milk"])

        assert [s.beverage_id for s in suggestions] == ["hot-chocolate"]

    @pytest.mark.asyncio
    async def test_never_suggests_unavailable(self, recommendation_tools):
        suggestions = await recommendation_tools.suggest("customer-1", ["seasonal"])

        assert suggestions == []

    @pytest.mark.asyncio
    async def test_order_history_boosts_familiar_drinks(self, recommendation_tools, test_db):
        """Test that drinks the customer ordered before rank higher."""
        await add_past_order(test_db, "customer-1", "hot-chocolate", quantity=2)

        suggestions = await recommendation_tools.suggest("customer-1", ["sweet"])

        assert suggestions[0].beverage_id == "hot-chocolate"
        assert "ordered it 2 times before" in suggestions[0].rationale

    @pytest.mark.asyncio
    async def test_other_customers_history_ignored(self, recommendation_tools, test_db):
        await add_past_order(test_db, "customer-2", "hot-chocolate")

        suggestions = await recommendation_tools.suggest("customer-1", ["sweet"])

        assert suggestions[0].beverage_id == "mocha"

    @pytest.mark.asyncio
    async def test_history_failure_is_tolerated(self, catalog_repository):
        """Test that suggestions still work when order history is unavailable."""

        class BrokenOrderStore:
            async def list_for_owner(self, owner, limit=20):
                raise StoreUnavailable("down")

        tools = RecommendationTools(catalog_repository, order_store=BrokenOrderStore())

        suggestions = await tools.suggest("customer-1", ["iced"])

        assert [s.beverage_id for s in suggestions] == ["cold-brew"]


class TestDescribeBeverage:
    """Test beverage descriptions."""

    @pytest.mark.asyncio
    async def test_describe_lists_options(self, recommendation_tools):
        description = await recommendation_tools.describe_beverage("Latte")

        assert description["beverage_id"] == "latte"
        assert description["base_price"] == 4.0
        size = description["options"][0]
        assert size["name"] == "size"
        assert size["required"] is True
        assert size["upcharges"] == {"medium": 0.5, "large": 1.0}

    @pytest.mark.asyncio
    async def test_describe_unknown(self, recommendation_tools):
        with pytest.raises(ValidationError):
            await recommendation_tools.describe_beverage("flat white")
