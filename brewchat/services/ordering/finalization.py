"""Order approval: turns a confirmed draft into a submitted order."""
import logging
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError

from brewchat.core.errors import IncompleteOrder, NotFound, StaleOrderError
from brewchat.services.ordering.models import (
    DraftStatus,
    OrderConfirmation,
    OrderDraft,
    SubmittedOrder,
)
from brewchat.services.ordering.summary import format_draft_summary, order_totals
from brewchat.services.ordering.validator import LineItemValidator
from brewchat.services.persistence.orders import SubmittedOrderStore
from brewchat.services.session.locks import SessionLockRegistry
from brewchat.services.session.models import ChatMessage, MessageRole, Session, utcnow
from brewchat.services.session.store import SessionStore

logger = logging.getLogger(__name__)


def _confirmation(order: SubmittedOrder) -> OrderConfirmation:
    return OrderConfirmation(
        order_id=order.id,
        summary=order.summary,
        submitted_at=order.submitted_at,
        items=order.items,
        total=order.total,
        session_id=order.session_id,
    )


class OrderFinalizer:
    """
    Approves the draft a customer has confirmed.

    Approval runs under the session lease so it never interleaves with a chat
    turn. The submitted order and the draft's move to ``confirmed`` are written
    in one transaction; approving twice returns the order from the first call.
    """

    def __init__(
        self,
        store: SessionStore,
        order_store: SubmittedOrderStore,
        validator: LineItemValidator,
        locks: SessionLockRegistry,
        tax_rate: float = 0.0,
        lock_wait: float = 0.0,
    ):
        self.store = store
        self.order_store = order_store
        self.validator = validator
        self.locks = locks
        self.tax_rate = tax_rate
        self.lock_wait = lock_wait

    async def approve(self, session_id: str, principal: str) -> OrderConfirmation:
        """
        Submit the session's confirmed draft.

        Raises:
            NotFound: unknown session, or one owned by someone else
            IncompleteOrder: no draft awaiting confirmation
            StaleOrderError: the catalog changed since confirmation; the draft
                goes back to building
        """
        async with self.locks.hold(session_id, wait=self.lock_wait) as lease:
            session = await self.store.load(session_id)
            if session is None or session.owner != principal:
                raise NotFound(f"Session {session_id} not found")

            draft = session.draft
            if draft is not None and draft.status == DraftStatus.CONFIRMED:
                existing = await self.order_store.get_order_by_draft(draft.draft_id)
                if existing is not None:
                    logger.info(
                        f"[FINALIZE] Draft {draft.draft_id} already submitted as {existing.id}"
                    )
                    return _confirmation(existing)

            if draft is None or draft.status != DraftStatus.AWAITING_CONFIRMATION:
                raise IncompleteOrder("There is no confirmed order waiting for approval.")

            reasons = await self.validator.find_invalid_lines(draft)
            if reasons:
                await self._reopen(session, draft, reasons)
                raise StaleOrderError(
                    "The menu changed since the order was confirmed.",
                    invalid_lines=sorted(reasons),
                    reasons=reasons,
                )

            order = self._build_order(session, draft)
            try:
                await self.store.apply(
                    session_id,
                    lambda s: self._mark_confirmed(s, order),
                    attach=[SubmittedOrderStore.build_record(order)],
                )
            except IntegrityError:
                # Another approval for the same draft won the race
                existing = await self.order_store.get_order_by_draft(draft.draft_id)
                if existing is None:
                    raise
                return _confirmation(existing)

            logger.info(
                f"[FINALIZE] Order {order.id} submitted - Session: {session_id}, "
                f"Lease: {lease.generation}, Total: ${order.total:.2f}"
            )
            return _confirmation(order)

    def _build_order(self, session: Session, draft: OrderDraft) -> SubmittedOrder:
        subtotal, tax, total = order_totals(draft.items, self.tax_rate)
        return SubmittedOrder(
            id=uuid.uuid4().hex,
            session_id=session.id,
            draft_id=draft.draft_id,
            owner=session.owner,
            items=draft.items,
            subtotal=subtotal,
            tax=tax,
            total=total,
            summary=format_draft_summary(draft, self.tax_rate),
            submitted_at=utcnow(),
        )

    @staticmethod
    def _mark_confirmed(session: Session, order: SubmittedOrder) -> None:
        session.set_draft(session.draft.model_copy(update={"status": DraftStatus.CONFIRMED}))
        session.append_message(
            ChatMessage(
                role=MessageRole.AGENT,
                content=f"Your order {order.id} has been placed. Total: ${order.total:.2f}.",
            )
        )

    async def _reopen(self, session: Session, draft: OrderDraft, reasons) -> None:
        details = "; ".join(f"line {index}: {reason}" for index, reason in sorted(reasons.items()))
        logger.warning(f"[FINALIZE] Stale draft {draft.draft_id} - Session: {session.id}, {details}")

        def _mutate(s: Session) -> None:
            s.set_draft(s.draft.model_copy(update={"status": DraftStatus.BUILDING}))
            s.append_message(
                ChatMessage(
                    role=MessageRole.AGENT,
                    content=f"Some items changed on the menu since you confirmed ({details}). "
                    f"Please update your order and confirm again.",
                )
            )

        await self.store.apply(session.id, _mutate)
