"""Order-building tools.

Each tool is a pure function of the session's current draft, its arguments
and the live catalog. Tools never write anything themselves: they return the
draft they produced and the orchestrator commits it together with the tool
call and result. Running the same call twice against the same draft state
therefore yields the same draft.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from brewchat.core.errors import IncompleteOrder, NotFound
from brewchat.services.ordering.models import DraftStatus, OrderDraft
from brewchat.services.ordering.summary import draft_view, format_draft_summary
from brewchat.services.ordering.validator import LineItemValidator
from brewchat.services.session.models import Session

logger = logging.getLogger(__name__)


@dataclass
class ToolOutcome:
    """What a tool hands back: data for the model, and the new draft if it changed."""

    data: Dict[str, Any]
    draft: Optional[OrderDraft] = None


class OrderTools:
    """Operations that mutate the in-progress draft."""

    def __init__(self, validator: LineItemValidator, tax_rate: float = 0.0):
        self.validator = validator
        self.tax_rate = tax_rate

    async def add_item(
        self,
        session: Session,
        beverage_id: str,
        customizations: Optional[Dict[str, Any]] = None,
        quantity: int = 1,
    ) -> ToolOutcome:
        """Append a new line; starts a new draft if none is active."""
        line, missing = await self.validator.build_line(beverage_id, customizations, quantity)
        draft = self._working_draft(session)
        draft.items.append(line)
        logger.info(
            f"[ORDER TOOLS] add_item - Session: {session.id}, Line: {line.describe()}, "
            f"Missing: {missing}"
        )
        message = f"Added {line.describe()}."
        if missing:
            message += f" Still need: {', '.join(missing)}."
        return await self._finish(draft, message)

    async def modify_item(
        self, session: Session, line_index: int, patch: Dict[str, Any]
    ) -> ToolOutcome:
        """
        Patch an existing line and re-validate it as a whole.

        When the beverage changes only the customizations in the patch carry
        over; otherwise they are merged onto the line's current values.
        """
        draft = self._require_draft(session)
        current = draft.items[self._check_index(draft, line_index)]

        beverage_id = patch.get("beverage_id") or current.beverage_id
        beverage_changed = (
            beverage_id.lower().strip() != current.beverage_id.lower()
            and beverage_id.lower().strip() != current.beverage_name.lower()
        )
        if beverage_changed:
            customizations = dict(patch.get("customizations") or {})
        else:
            customizations = {**current.customizations, **(patch.get("customizations") or {})}
        quantity = patch.get("quantity") if patch.get("quantity") is not None else current.quantity

        line, missing = await self.validator.build_line(beverage_id, customizations, quantity)
        draft.items[line_index] = line
        logger.info(
            f"[ORDER TOOLS] modify_item - Session: {session.id}, Index: {line_index}, "
            f"Line: {line.describe()}"
        )
        message = f"Line {line_index} is now {line.describe()}."
        if missing:
            message += f" Still need: {', '.join(missing)}."
        return await self._finish(draft, message)

    async def remove_item(self, session: Session, line_index: int) -> ToolOutcome:
        """Remove a line."""
        draft = self._require_draft(session)
        removed = draft.items.pop(self._check_index(draft, line_index))
        logger.info(
            f"[ORDER TOOLS] remove_item - Session: {session.id}, Index: {line_index}, "
            f"Removed: {removed.describe()}"
        )
        return await self._finish(draft, f"Removed {removed.describe()}.")

    async def set_quantity(self, session: Session, line_index: int, quantity: int) -> ToolOutcome:
        """Change how many of a line are ordered."""
        draft = self._require_draft(session)
        index = self._check_index(draft, line_index)
        quantity = self.validator.check_quantity(quantity)
        draft.items[index] = draft.items[index].model_copy(update={"quantity": quantity})
        logger.info(
            f"[ORDER TOOLS] set_quantity - Session: {session.id}, Index: {index}, "
            f"Quantity: {quantity}"
        )
        return await self._finish(draft, f"Line {index} quantity set to {quantity}.")

    async def request_confirmation(self, session: Session) -> ToolOutcome:
        """
        Move the draft to awaiting_confirmation.

        Raises:
            IncompleteOrder: if there is nothing to confirm or a line misses a
                required option; the draft status is left unchanged
        """
        draft = session.active_draft
        if draft is None or not draft.items:
            raise IncompleteOrder("There are no items in the order to confirm.")

        fresh, missing = await self.validator.revalidate_draft(draft)
        incomplete = [index for index, line_missing in enumerate(missing) if line_missing]
        if incomplete:
            details = "; ".join(
                f"line {index} ({fresh.items[index].beverage_name}) needs {', '.join(missing[index])}"
                for index in incomplete
            )
            logger.info(
                f"[ORDER TOOLS] request_confirmation rejected - Session: {session.id}, {details}"
            )
            raise IncompleteOrder(f"The order is not complete: {details}.", incomplete_lines=incomplete)

        confirmed = fresh.model_copy(update={"status": DraftStatus.AWAITING_CONFIRMATION})
        summary = format_draft_summary(confirmed, self.tax_rate)
        logger.info(f"[ORDER TOOLS] request_confirmation - Session: {session.id}, awaiting approval")
        data = draft_view(confirmed, missing, self.tax_rate)
        data["message"] = (
            "The order is ready. Read this summary back to the customer and ask them "
            "to approve it:\n" + summary
        )
        return ToolOutcome(data=data, draft=confirmed)

    async def view_order(self, session: Session) -> ToolOutcome:
        """Read-only view of the active draft."""
        draft = session.active_draft
        if draft is None:
            return ToolOutcome(data={"order": None, "message": "No order in progress."})
        return ToolOutcome(data={"order": draft_view(draft, tax_rate=self.tax_rate)})

    async def cancel_order(self, session: Session) -> ToolOutcome:
        """Abandon the active draft."""
        draft = self._require_draft(session)
        abandoned = draft.model_copy(update={"status": DraftStatus.ABANDONED})
        logger.info(f"[ORDER TOOLS] cancel_order - Session: {session.id}, Draft: {draft.draft_id}")
        return ToolOutcome(
            data={"message": "The order was cancelled.", "draft_id": draft.draft_id},
            draft=abandoned,
        )

    def _working_draft(self, session: Session) -> OrderDraft:
        draft = session.active_draft
        if draft is None:
            return OrderDraft(draft_id=session.next_draft_id())
        return draft.model_copy(deep=True)

    @staticmethod
    def _require_draft(session: Session) -> OrderDraft:
        draft = session.active_draft
        if draft is None:
            raise NotFound("There is no order in progress.")
        return draft.model_copy(deep=True)

    @staticmethod
    def _check_index(draft: OrderDraft, line_index: int) -> int:
        if not 0 <= line_index < len(draft.items):
            raise NotFound(
                f"There is no line {line_index}; the order has {len(draft.items)} line(s) "
                f"numbered from 0."
            )
        return line_index

    async def _finish(self, draft: OrderDraft, message: str) -> ToolOutcome:
        """Re-validate the whole draft and reopen it for building."""
        fresh, missing = await self.validator.revalidate_draft(draft)
        fresh = fresh.model_copy(update={"status": DraftStatus.BUILDING})
        data = draft_view(fresh, missing, self.tax_rate)
        data["message"] = message
        return ToolOutcome(data=data, draft=fresh)
