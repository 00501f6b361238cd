"""Unit tests for order totals and summaries with tax."""
import pytest

from brewchat.services.ordering.models import OrderDraft, OrderLineItem
from brewchat.services.ordering.summary import draft_view, format_draft_summary, order_totals


def line(name, unit_price, quantity=1, **customizations):
    return OrderLineItem(
        beverage_id=name.lower().replace(" ", "-"),
        beverage_name=name,
        customizations=customizations,
        quantity=quantity,
        unit_price=unit_price,
    )


class TestOrderTotalCalculation:
    """Test order total calculation with tax."""

    def test_single_item(self):
        """Test total calculation for single item order."""
        # 1x $4.50, tax (9.25%) = $0.42, total = $4.92
        subtotal, tax, total = order_totals([line("Latte", 4.50)], tax_rate=0.0925)

        assert subtotal == 4.50
        assert tax == 0.42
        assert total == 4.92

    def test_multiple_items_with_quantity(self):
        """Test total calculation for multiple lines and quantities."""
        # 2x$5.60 + 3x$3.50 = $21.70, tax = $2.01, total = $23.71
        items = [line("Latte", 5.60, 2), line("Hot Chocolate", 3.50, 3)]

        subtotal, tax, total = order_totals(items, tax_rate=0.0925)

        assert subtotal == 21.70
        assert tax == 2.01
        assert total == 23.71

    def test_no_tax(self):
        subtotal, tax, total = order_totals([line("Latte", 5.60, 2)])

        assert (subtotal, tax, total) == (11.20, 0.0, 11.20)

    def test_empty(self):
        assert order_totals([]) == (0.0, 0.0, 0.0)


class TestOrderSummary:
    """Test human-readable summaries."""

    def test_summary_lists_numbered_lines(self):
        draft = OrderDraft(draft_id="s1:1", items=[line("Latte", 5.60, 2, size="large", milk="oat")])

        summary = format_draft_summary(draft)

        assert summary == "0. 2x Latte (size: large, milk: oat) - $11.20\nTotal: $11.20"

    def test_summary_with_tax(self):
        draft = OrderDraft(draft_id="s1:1", items=[line("Hot Chocolate", 3.50)])

        summary = format_draft_summary(draft, tax_rate=0.10)

        assert "Subtotal: $3.50" in summary
        assert "Tax: $0.35" in summary
        assert summary.endswith("Total: $3.85")

    @pytest.mark.parametrize("draft", [None, OrderDraft(draft_id="s1:1")])
    def test_empty_summary(self, draft):
        assert format_draft_summary(draft) == "No items in order yet."

    def test_draft_view_marks_missing_options(self):
        draft = OrderDraft(draft_id="s1:1", items=[line("Latte", 4.00), line("Hot Chocolate", 3.50)])

        view = draft_view(draft, missing=[["size"], []])

        assert view["items"][0]["missing_required"] == ["size"]
        assert "missing_required" not in view["items"][1]
        assert view["status"] == "building"
        assert view["total"] == 7.50
