"""Human-readable order summaries."""
from typing import Any, Dict, List, Optional, Tuple

from brewchat.services.ordering.models import OrderDraft, OrderLineItem


def order_totals(items: List[OrderLineItem], tax_rate: float = 0.0) -> Tuple[float, float, float]:
    """Return (subtotal, tax, total) rounded to cents."""
    subtotal = round(sum(item.line_total for item in items), 2)
    tax = round(subtotal * tax_rate, 2)
    return subtotal, tax, round(subtotal + tax, 2)


def format_items(items: List[OrderLineItem], tax_rate: float = 0.0) -> str:
    """Numbered item list with prices and totals."""
    if not items:
        return "No items in order yet."
    lines = [
        f"{index}. {item.describe()} - ${item.line_total:.2f}"
        for index, item in enumerate(items)
    ]
    subtotal, tax, total = order_totals(items, tax_rate)
    if tax:
        lines.append(f"Subtotal: ${subtotal:.2f}")
        lines.append(f"Tax: ${tax:.2f}")
    lines.append(f"Total: ${total:.2f}")
    return "\n".join(lines)


def format_draft_summary(draft: Optional[OrderDraft], tax_rate: float = 0.0) -> str:
    """Get a text summary of a draft."""
    if draft is None or not draft.items:
        return "No items in order yet."
    return format_items(draft.items, tax_rate)


def draft_view(
    draft: OrderDraft,
    missing: Optional[List[List[str]]] = None,
    tax_rate: float = 0.0,
) -> Dict[str, Any]:
    """Structured draft description returned to the model by order tools."""
    subtotal, tax, total = order_totals(draft.items, tax_rate)
    items = []
    for index, item in enumerate(draft.items):
        entry: Dict[str, Any] = {
            "line_index": index,
            "beverage_id": item.beverage_id,
            "beverage_name": item.beverage_name,
            "customizations": item.customizations,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
            "line_total": item.line_total,
        }
        if missing is not None and missing[index]:
            entry["missing_required"] = missing[index]
        items.append(entry)
    return {
        "draft_id": draft.draft_id,
        "status": draft.status.value,
        "items": items,
        "subtotal": subtotal,
        "tax": tax,
        "total": total,
        "summary": format_draft_summary(draft, tax_rate),
    }
